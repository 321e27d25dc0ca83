"""License manager for SPDX 2.3 documents.

Licenses are attributes of the element; extracted licenses are listed once
in the document's ``hasExtractedLicensingInfos``.
"""

from __future__ import annotations

from typing import Any

from spdxforge.core.licenses.manager import LicenseManager
from spdxforge.core.model.licenses import AnyLicenseInfo, ExtractedLicense
from spdxforge.core.model.v2 import Snippet, SpdxFile, SpdxPackage


class SpdxV2LicenseManager(LicenseManager):
    def _record_extracted(self, lic: ExtractedLicense) -> None:
        self.document.add_extracted_license(lic)

    def set_declared(self, element: Any, info: AnyLicenseInfo) -> None:
        if isinstance(element, SpdxPackage):
            element.license_declared = info
        elif isinstance(element, SpdxFile):
            # SPDX 2 files have no declared license; it is what the file says.
            element.license_info_in_file = [info]
        else:
            raise TypeError(f"Cannot declare a license on {type(element).__name__}")

    def set_concluded(self, element: Any, info: AnyLicenseInfo) -> None:
        element.license_concluded = info

    def set_license_info_in_file(self, element: Any, infos: list[AnyLicenseInfo]) -> None:
        if isinstance(element, Snippet):
            element.license_info = list(infos)
        else:
            element.license_info_in_file = list(infos)

    def set_license_comment(self, element: Any, comment: str) -> None:
        element.license_comments = comment
