"""License manager for SPDX 3.0.1 documents.

Every assignment becomes a relationship from the element to a license
expression element (or to the NoAssertion/None individuals); extracted
licenses become ``CustomLicense`` elements.  The assigned value is also kept
on the element for reporting.
"""

from __future__ import annotations

from typing import Any

from spdxforge.core.licenses.manager import LicenseManager
from spdxforge.core.model.licenses import AnyLicenseInfo, ExtractedLicense
from spdxforge.core.model.v3 import extracted_to_custom_license

HAS_DECLARED_LICENSE = "hasDeclaredLicense"
HAS_CONCLUDED_LICENSE = "hasConcludedLicense"


class SpdxV3LicenseManager(LicenseManager):
    def _record_extracted(self, lic: ExtractedLicense) -> None:
        self.document.add(extracted_to_custom_license(self.document, lic))

    def set_declared(self, element: Any, info: AnyLicenseInfo) -> None:
        element.declared_license = info
        self.document.relate(element.spdx_id, HAS_DECLARED_LICENSE, [self.document.license_element(info)])

    def set_concluded(self, element: Any, info: AnyLicenseInfo) -> None:
        if hasattr(element, "concluded_license"):
            element.concluded_license = info
        self.document.relate(element.spdx_id, HAS_CONCLUDED_LICENSE, [self.document.license_element(info)])

    def set_license_info_in_file(self, element: Any, infos: list[AnyLicenseInfo]) -> None:
        if not infos:
            return
        targets = [self.document.license_element(info) for info in infos]
        if hasattr(element, "declared_license"):
            element.declared_license = infos[0] if len(infos) == 1 else None
        self.document.relate(element.spdx_id, HAS_DECLARED_LICENSE, targets)

    def set_license_comment(self, element: Any, comment: str) -> None:
        # SPDX 3 has no license comment property; it is folded into the comment.
        note = f"License: {comment}"
        element.comment = f"{element.comment} ;{note}" if element.comment else note
