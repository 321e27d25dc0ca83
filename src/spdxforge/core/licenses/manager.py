"""Document-scoped license resolution shared by both schema generations.

A ``LicenseManager`` owns the license state of one document under
construction: the extracted (non-standard) licenses minted or registered so
far, and the URL/name aliases user-supplied licenses add on top of the
registry.  It turns build-tool license metadata into license values and
writes them onto packages, files and snippets.

The mapping algorithm lives here once.  The v2 and v3 subclasses only
decide how an extracted license and a license assignment are recorded in
their document model.

Mapping a declared license
--------------------------
1. If URL matching is enabled and the entry has a URL: registry URL lookup,
   then URLs of user-supplied non-standard licenses.
2. The entry's name: registry id or name lookup, then names and ids of
   user-supplied non-standard licenses.
3. Otherwise mint an extracted license keyed by the normalised name (or
   URL).  Minting the same key twice returns the first license.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from spdxforge.config import LicenseCombination
from spdxforge.core.ids import fix_external_ref_id
from spdxforge.core.licenses.expression import parse_license_expression
from spdxforge.core.licenses.registry import LicenseRegistry, normalize_name, normalize_url
from spdxforge.core.licenses.source_parser import MAXIMUM_SOURCE_FILE_LENGTH, parse_file_for_license_tags
from spdxforge.core.model.licenses import (
    LICENSE_REF_PREFIX,
    NO_ASSERTION,
    AnyLicenseInfo,
    ExtractedLicense,
    ListedLicense,
    NoAssertionLicense,
    combine,
)
from spdxforge.core.project import DeclaredLicense, NonStandardLicense
from spdxforge.exceptions import LicenseMappingError

logger = logging.getLogger(__name__)


class LicenseManager(ABC):
    """Resolve and record license information for one document."""

    def __init__(
        self,
        document: Any,
        registry: LicenseRegistry,
        *,
        combination: LicenseCombination = LicenseCombination.DISJUNCTIVE,
        match_urls: bool = True,
    ) -> None:
        self.document = document
        self.registry = registry
        self.combination = combination
        self.match_urls = match_urls
        self._extracted: dict[str, ExtractedLicense] = {}
        self._minted: dict[str, str] = {}
        self._url_aliases: dict[str, str] = {}
        self._name_aliases: dict[str, str] = {}

    # -- Recording (schema specific) ------------------------------------------

    @abstractmethod
    def _record_extracted(self, lic: ExtractedLicense) -> None:
        """Add an extracted license to the document."""

    @abstractmethod
    def set_declared(self, element: Any, info: AnyLicenseInfo) -> None:
        """Record ``info`` as the declared license of a package or file."""

    @abstractmethod
    def set_concluded(self, element: Any, info: AnyLicenseInfo) -> None:
        """Record ``info`` as the concluded license of a package, file or snippet."""

    @abstractmethod
    def set_license_info_in_file(self, element: Any, infos: list[AnyLicenseInfo]) -> None:
        """Record the licenses found in a file's (or snippet's) text."""

    @abstractmethod
    def set_license_comment(self, element: Any, comment: str) -> None:
        """Record a license comment on a package or file."""

    # -- Extracted licenses ---------------------------------------------------

    @property
    def extracted_licenses(self) -> list[ExtractedLicense]:
        return list(self._extracted.values())

    def add_non_standard_license(self, license_: NonStandardLicense) -> ExtractedLicense:
        """Register a user-supplied license with its text.

        Raises:
            LicenseMappingError: If the id is missing, not a ``LicenseRef-``
                id, or already used in this document.
        """
        license_id = (license_.license_id or "").strip()
        if not license_id.startswith(LICENSE_REF_PREFIX):
            raise LicenseMappingError(
                f"Non-standard license id {license_id or '[missing]'!r} must start with {LICENSE_REF_PREFIX}"
            )
        if license_id in self._extracted:
            raise LicenseMappingError(f"Unable to add non-standard license {license_id}: id already exists")
        lic = ExtractedLicense(
            license_id=license_id,
            text=license_.extracted_text or "NOASSERTION",
            name=license_.name,
            comment=license_.comment,
            see_also=tuple(license_.cross_references),
        )
        self._register(lic)
        for url in license_.cross_references:
            key = normalize_url(url)
            if key in self._url_aliases:
                logger.warning(
                    "Duplicate URL for non-standard license. Replacing %s with %s for %s",
                    self._url_aliases[key], license_id, url,
                )
            self._url_aliases[key] = license_id
        if license_.name:
            self._name_aliases[normalize_name(license_.name)] = license_id
        logger.debug("Registered non-standard license %s", license_id)
        return lic

    def _register(self, lic: ExtractedLicense) -> None:
        self._extracted[lic.license_id] = lic
        self._record_extracted(lic)

    def _mint(self, declared: DeclaredLicense) -> ExtractedLicense:
        key = normalize_name(declared.name) if declared.name.strip() else "url:" + normalize_url(declared.url)
        existing = self._minted.get(key)
        if existing is not None:
            return self._extracted[existing]
        label = declared.name.strip() or declared.url.strip()
        base = LICENSE_REF_PREFIX + (fix_external_ref_id(label).strip("-") or "unnamed")
        license_id = base
        counter = 0
        taken = {i.lower() for i in self._extracted}
        while license_id.lower() in taken:
            counter += 1
            license_id = f"{base}-{counter}"
        text = declared.text.strip() or _fallback_text(declared)
        lic = ExtractedLicense(
            license_id=license_id,
            text=text,
            name=declared.name.strip() or license_id,
            comment=declared.comments,
            see_also=(declared.url.strip(),) if declared.url.strip() else (),
        )
        self._minted[key] = license_id
        self._register(lic)
        logger.debug("Created extracted license %s for %r", license_id, label)
        return lic

    # -- Mapping ------------------------------------------------------------

    def map_declared_license(self, declared: DeclaredLicense | None) -> AnyLicenseInfo:
        """Map one build-tool license entry to license information.

        Raises:
            LicenseMappingError: If the entry has neither a name nor a URL.
        """
        if declared is None or (not (declared.name or "").strip() and not (declared.url or "").strip()):
            raise LicenseMappingError("License entry has neither a name nor a URL")
        if self.match_urls and declared.url.strip():
            listed = self.registry.lookup_url(declared.url)
            if listed is not None:
                return ListedLicense(listed)
            alias = self._url_aliases.get(normalize_url(declared.url))
            if alias is not None:
                return self._extracted[alias]
        if declared.name.strip():
            listed = self.registry.lookup_name(declared.name)
            if listed is not None:
                return ListedLicense(listed)
            alias = self._name_aliases.get(normalize_name(declared.name))
            if alias is None and declared.name.strip() in self._extracted:
                alias = declared.name.strip()
            if alias is not None:
                return self._extracted[alias]
        return self._mint(declared)

    def map_declared_licenses(self, licenses: list[DeclaredLicense] | None) -> AnyLicenseInfo:
        """Combine a license list: none is NOASSERTION, one is itself, more are joined.

        Raises:
            LicenseMappingError: If any entry cannot be mapped.
        """
        if not licenses:
            return NO_ASSERTION
        mapped = [self.map_declared_license(lic) for lic in licenses]
        return combine(mapped, self.combination.value)

    def map_declared_licenses_or_warn(
        self, licenses: list[DeclaredLicense] | None, context: str
    ) -> AnyLicenseInfo:
        """Like ``map_declared_licenses`` but degrades failures to NOASSERTION.

        Each entry is mapped independently; a failing entry is dropped and
        recorded as a document warning.
        """
        mapped: list[AnyLicenseInfo] = []
        for lic in licenses or []:
            try:
                mapped.append(self.map_declared_license(lic))
            except LicenseMappingError as exc:
                self.warn(f"Unable to map license for {context}: {exc}")
        if not mapped:
            return NO_ASSERTION
        return combine(mapped, self.combination.value)

    def parse(self, expression: str) -> AnyLicenseInfo:
        """Parse a license expression against the registry and this document.

        Raises:
            LicenseMappingError: If the expression is malformed or names an
                unknown identifier.
        """
        return parse_license_expression(expression, self.registry, self._resolve_ref)

    def parse_or_warn(self, expression: str, context: str) -> AnyLicenseInfo:
        """Parse ``expression``; an empty or invalid one is NOASSERTION plus a warning."""
        if not (expression or "").strip():
            return NO_ASSERTION
        try:
            return self.parse(expression)
        except LicenseMappingError as exc:
            self.warn(f"Invalid license expression {expression!r} for {context}: {exc}")
            return NO_ASSERTION

    def _resolve_ref(self, token: str) -> AnyLicenseInfo:
        lic = self._extracted.get(token)
        if lic is None:
            raise LicenseMappingError(f"Unknown license reference {token!r}")
        return lic

    # -- Files ----------------------------------------------------------------

    def resolve_files(self, entries: Any, max_source_length: int = MAXIMUM_SOURCE_FILE_LENGTH) -> None:
        for entry in entries:
            self.resolve_file(entry, max_source_length)

    def resolve_file(self, entry: Any, max_source_length: int = MAXIMUM_SOURCE_FILE_LENGTH) -> None:
        """Fill the license fields of one collected file and its snippets.

        Source files below ``max_source_length`` bytes are scanned for
        ``SPDX-License-Identifier`` tags.  Tags found become both the
        concluded license and the license in the file (several tags are
        joined with AND) and are noted in the license comment.  Otherwise
        the file's default information applies.
        """
        info = entry.info
        license_comment = info.license_comment
        tagged = self._scan_tags(entry, max_source_length)
        if tagged is not None:
            concluded = tagged
            in_file = [tagged]
            note = f"This file contains SPDX-License-Identifiers for {tagged}"
            license_comment = f"{license_comment};  {note}" if license_comment else note
        else:
            concluded = self.parse_or_warn(info.concluded_license, entry.path)
            declared = self.parse_or_warn(info.declared_license, entry.path)
            in_file = [] if isinstance(declared, NoAssertionLicense) else [declared]
        self.set_concluded(entry.element, concluded)
        self.set_license_info_in_file(entry.element, in_file)
        if license_comment:
            self.set_license_comment(entry.element, license_comment)

        for snippet, element in entry.snippets:
            context = f"snippet {snippet.name or snippet.byte_range} of {entry.path}"
            self.set_concluded(element, self.parse_or_warn(snippet.concluded_license, context))
            in_snippet = self.parse_or_warn(snippet.license_info_in_snippet, context)
            self.set_license_info_in_file(element, [in_snippet])

    def _scan_tags(self, entry: Any, max_source_length: int) -> AnyLicenseInfo | None:
        if not entry.is_source or entry.size >= max_source_length:
            return None
        try:
            expressions = parse_file_for_license_tags(entry.source)
            if not expressions:
                return None
            return combine([self.parse(expression) for expression in expressions], "AND")
        except LicenseMappingError as exc:
            self.warn(f"Invalid SPDX-License-Identifier in {entry.path}, using default file licenses: {exc}")
            return None

    def warn(self, message: str) -> None:
        logger.warning("%s", message)
        self.document.warnings.append(message)


def _fallback_text(declared: DeclaredLicense) -> str:
    parts = []
    if declared.name.strip():
        parts.append(f"name: {declared.name.strip()}")
    if declared.url.strip():
        parts.append(f"url: {declared.url.strip()}")
    return "The license information found in the build descriptor: " + ", ".join(parts)
