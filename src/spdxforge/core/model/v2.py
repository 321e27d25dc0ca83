"""SPDX 2.3 object model (flat document of packages, files and snippets).

The model is generated as plain dataclasses and serialised to the SPDX 2.3
JSON layout via ``to_dict``.  There is no dependency on an SPDX model
library; the structural checks that library would run live in
``SpdxDocument.verify``.

Relationship direction follows SPDX 2: dependency edges are recorded with
the dependency as the subject (``<dep> DEPENDENCY_OF <parent>``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from spdxforge.core.ids import IdGenerator
from spdxforge.core.model.licenses import (
    NO_ASSERTION,
    NOASSERTION,
    NONE,
    AnyLicenseInfo,
    ExtractedLicense,
    extracted_licenses_in,
)

SPDX_VERSION = "SPDX-2.3"
DATA_LICENSE = "CC0-1.0"
DOCUMENT_ID = "SPDXRef-DOCUMENT"

# SHA-1 of the empty string; the verification code before files are collected.
NULL_SHA1 = "da39a3ee5e6b4b0d3255bfef95601890afd80709"

_SPDX_ID_RE = re.compile(r"^SPDXRef-[A-Za-z0-9.\-]+$")
_EXT_DOC_ID_RE = re.compile(r"^DocumentRef-[A-Za-z0-9.\-]+$")
_SHA1_RE = re.compile(r"^[0-9a-f]{40}$")

DEPENDENCY_RELATIONSHIP_TYPES = frozenset({
    "DEPENDENCY_OF",
    "RUNTIME_DEPENDENCY_OF",
    "TEST_DEPENDENCY_OF",
    "OPTIONAL_DEPENDENCY_OF",
    "PROVIDED_DEPENDENCY_OF",
    "DEV_DEPENDENCY_OF",
    "BUILD_DEPENDENCY_OF",
    "OTHER",
})


def _drop_empty(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v not in (None, "", [], {})}


# ---------------------------------------------------------------------------
# Leaf value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Checksum:
    algorithm: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"algorithm": self.algorithm.replace("_", "-"), "checksumValue": self.value}


@dataclass(frozen=True)
class ExternalRef:
    category: str
    reference_type: str
    locator: str
    comment: str = ""

    def to_dict(self) -> dict[str, str]:
        return _drop_empty({
            "referenceCategory": self.category.replace("-", "_"),
            "referenceType": self.reference_type,
            "referenceLocator": self.locator,
            "comment": self.comment,
        })


@dataclass(frozen=True)
class Annotation:
    annotator: str
    date: str
    annotation_type: str
    comment: str

    def to_dict(self) -> dict[str, str]:
        return {
            "annotationDate": self.date,
            "annotationType": self.annotation_type.upper(),
            "annotator": self.annotator,
            "comment": self.comment,
        }


@dataclass(frozen=True)
class Relationship:
    element_id: str
    relationship_type: str
    related_element: str
    comment: str = ""

    def to_dict(self) -> dict[str, str]:
        return _drop_empty({
            "spdxElementId": self.element_id,
            "relationshipType": self.relationship_type,
            "relatedSpdxElement": self.related_element,
            "comment": self.comment,
        })


@dataclass(frozen=True)
class ExternalDocumentRef:
    ref_id: str
    document_uri: str
    checksum: Checksum

    def to_dict(self) -> dict[str, Any]:
        return {
            "externalDocumentId": self.ref_id,
            "spdxDocument": self.document_uri,
            "checksum": self.checksum.to_dict(),
        }


@dataclass
class VerificationCode:
    value: str = NULL_SHA1
    excluded_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _drop_empty({
            "packageVerificationCodeValue": self.value,
            "packageVerificationCodeExcludedFiles": list(self.excluded_files),
        })


# ---------------------------------------------------------------------------
# Elements
# ---------------------------------------------------------------------------


@dataclass
class Snippet:
    spdx_id: str
    file_id: str
    byte_range: tuple[int, int]
    line_range: tuple[int, int] | None = None
    name: str = ""
    comment: str = ""
    license_concluded: AnyLicenseInfo = NO_ASSERTION
    license_info: list[AnyLicenseInfo] = field(default_factory=list)
    copyright_text: str = NOASSERTION
    license_comments: str = ""

    def licenses(self) -> list[AnyLicenseInfo]:
        return [self.license_concluded, *self.license_info]

    def to_dict(self) -> dict[str, Any]:
        ranges = [{
            "startPointer": {"offset": self.byte_range[0], "reference": self.file_id},
            "endPointer": {"offset": self.byte_range[1], "reference": self.file_id},
        }]
        if self.line_range is not None:
            ranges.append({
                "startPointer": {"lineNumber": self.line_range[0], "reference": self.file_id},
                "endPointer": {"lineNumber": self.line_range[1], "reference": self.file_id},
            })
        return _drop_empty({
            "SPDXID": self.spdx_id,
            "snippetFromFile": self.file_id,
            "ranges": ranges,
            "name": self.name,
            "comment": self.comment,
            "licenseConcluded": self.license_concluded.render(),
            "licenseInfoInSnippets": [lic.render() for lic in self.license_info],
            "copyrightText": self.copyright_text,
            "licenseComments": self.license_comments,
        })


@dataclass
class SpdxFile:
    spdx_id: str
    file_name: str
    checksums: list[Checksum] = field(default_factory=list)
    file_types: list[str] = field(default_factory=list)
    license_concluded: AnyLicenseInfo = NO_ASSERTION
    license_info_in_file: list[AnyLicenseInfo] = field(default_factory=list)
    copyright_text: str = NOASSERTION
    comment: str = ""
    notice: str = ""
    contributors: list[str] = field(default_factory=list)
    license_comments: str = ""
    annotations: list[Annotation] = field(default_factory=list)

    def sha1(self) -> str | None:
        for checksum in self.checksums:
            if checksum.algorithm == "SHA1":
                return checksum.value
        return None

    def licenses(self) -> list[AnyLicenseInfo]:
        return [self.license_concluded, *self.license_info_in_file]

    def to_dict(self) -> dict[str, Any]:
        return _drop_empty({
            "SPDXID": self.spdx_id,
            "fileName": self.file_name,
            "fileTypes": list(self.file_types),
            "checksums": [c.to_dict() for c in self.checksums],
            "licenseConcluded": self.license_concluded.render(),
            "licenseInfoInFiles": [lic.render() for lic in self.license_info_in_file] or [NOASSERTION],
            "licenseComments": self.license_comments,
            "copyrightText": self.copyright_text,
            "comment": self.comment,
            "noticeText": self.notice,
            "fileContributors": list(self.contributors),
            "annotations": [a.to_dict() for a in self.annotations],
        })


@dataclass
class SpdxPackage:
    spdx_id: str
    name: str
    version: str = ""
    supplier: str = ""
    originator: str = ""
    download_location: str = NOASSERTION
    files_analyzed: bool = False
    verification_code: VerificationCode | None = None
    checksums: list[Checksum] = field(default_factory=list)
    home_page: str = ""
    source_info: str = ""
    license_concluded: AnyLicenseInfo = NO_ASSERTION
    license_declared: AnyLicenseInfo = NO_ASSERTION
    license_info_from_files: list[AnyLicenseInfo] = field(default_factory=list)
    license_comments: str = ""
    copyright_text: str = NOASSERTION
    summary: str = ""
    description: str = ""
    comment: str = ""
    primary_purpose: str = ""
    package_file_name: str = ""
    external_refs: list[ExternalRef] = field(default_factory=list)
    annotations: list[Annotation] = field(default_factory=list)

    def licenses(self) -> list[AnyLicenseInfo]:
        return [self.license_concluded, self.license_declared, *self.license_info_from_files]

    @property
    def purl(self) -> str | None:
        for ref in self.external_refs:
            if ref.reference_type == "purl":
                return ref.locator
        return None

    def to_dict(self, file_ids: list[str] | None = None) -> dict[str, Any]:
        data: dict[str, Any] = {
            "SPDXID": self.spdx_id,
            "name": self.name,
            "versionInfo": self.version,
            "packageFileName": self.package_file_name,
            "supplier": self.supplier,
            "originator": self.originator,
            "downloadLocation": self.download_location,
            "filesAnalyzed": self.files_analyzed,
            "checksums": [c.to_dict() for c in self.checksums],
            "homepage": self.home_page,
            "sourceInfo": self.source_info,
            "licenseConcluded": self.license_concluded.render(),
            "licenseDeclared": self.license_declared.render(),
            "licenseComments": self.license_comments,
            "copyrightText": self.copyright_text,
            "summary": self.summary,
            "description": self.description,
            "comment": self.comment,
            "primaryPackagePurpose": self.primary_purpose,
            "externalRefs": [r.to_dict() for r in self.external_refs],
            "annotations": [a.to_dict() for a in self.annotations],
        }
        if self.files_analyzed:
            from_files = [lic.render() for lic in self.license_info_from_files]
            data["licenseInfoFromFiles"] = from_files or [NOASSERTION]
            if self.verification_code is not None:
                data["packageVerificationCode"] = self.verification_code.to_dict()
            data["hasFiles"] = list(file_ids or [])
        return _drop_empty(data)


# ---------------------------------------------------------------------------
# SpdxDocument
# ---------------------------------------------------------------------------


@dataclass
class SpdxDocument:
    """An SPDX 2.3 document under construction.

    Elements are appended by the builder stages; relationships are
    append-only.  ``warnings`` collects degradations that did not abort the
    build (unmapped dependency licenses, skipped files, bad source tags).
    """

    name: str
    namespace: str
    created: str
    creators: list[str] = field(default_factory=list)
    creator_comment: str = ""
    license_list_version: str = ""
    comment: str = ""
    data_license: str = DATA_LICENSE
    packages: list[SpdxPackage] = field(default_factory=list)
    files: list[SpdxFile] = field(default_factory=list)
    snippets: list[Snippet] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)
    extracted_licenses: list[ExtractedLicense] = field(default_factory=list)
    external_document_refs: list[ExternalDocumentRef] = field(default_factory=list)
    annotations: list[Annotation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    spdx_id: str = DOCUMENT_ID
    id_generator: IdGenerator = field(default_factory=IdGenerator, repr=False)

    # -- Mutation -----------------------------------------------------------

    def new_id(self, seed: str) -> str:
        return self.id_generator.generate(seed)

    def add_relationship(
        self, element_id: str, relationship_type: str, related: str, comment: str = ""
    ) -> Relationship:
        rel = Relationship(element_id, relationship_type, related, comment)
        self.relationships.append(rel)
        return rel

    def add_extracted_license(self, lic: ExtractedLicense) -> None:
        self.extracted_licenses.append(lic)

    # -- Queries ------------------------------------------------------------

    def element_ids(self) -> set[str]:
        ids = {self.spdx_id}
        ids.update(p.spdx_id for p in self.packages)
        ids.update(f.spdx_id for f in self.files)
        ids.update(s.spdx_id for s in self.snippets)
        return ids

    def package_by_id(self, spdx_id: str) -> SpdxPackage | None:
        for pkg in self.packages:
            if pkg.spdx_id == spdx_id:
                return pkg
        return None

    def described_package(self) -> SpdxPackage | None:
        for rel in self.relationships:
            if rel.element_id == self.spdx_id and rel.relationship_type == "DESCRIBES":
                return self.package_by_id(rel.related_element)
        return None

    def files_of(self, package_id: str) -> list[SpdxFile]:
        ids = {
            r.related_element for r in self.relationships
            if r.element_id == package_id and r.relationship_type == "CONTAINS"
        }
        return [f for f in self.files if f.spdx_id in ids]

    def dependency_edges(self) -> list[tuple[str, str, str]]:
        """Dependency edges as ``(parent id, dependency id, type)`` triples."""
        return [
            (r.related_element, r.element_id, r.relationship_type)
            for r in self.relationships
            if r.relationship_type in DEPENDENCY_RELATIONSHIP_TYPES
        ]

    # -- Verification -------------------------------------------------------

    def verify(self) -> list[str]:
        """Run the structural self-checks and return every violation found."""
        violations: list[str] = []
        if not self.name:
            violations.append("Document name is missing")
        if not self.namespace or "#" in self.namespace or ":" not in self.namespace:
            violations.append(f"Invalid document namespace {self.namespace!r}")
        if not self.creators:
            violations.append("Document has no creators")
        if not self.created:
            violations.append("Document creation date is missing")

        seen: set[str] = set()
        for element_id in [self.spdx_id, *(p.spdx_id for p in self.packages),
                           *(f.spdx_id for f in self.files), *(s.spdx_id for s in self.snippets)]:
            if not _SPDX_ID_RE.match(element_id):
                violations.append(f"Invalid SPDX identifier {element_id!r}")
            if element_id in seen:
                violations.append(f"Duplicate SPDX identifier {element_id!r}")
            seen.add(element_id)

        for pkg in self.packages:
            if not pkg.name:
                violations.append(f"Package {pkg.spdx_id} has no name")
            if not pkg.download_location:
                violations.append(f"Package {pkg.spdx_id} has no download location")
            if pkg.files_analyzed:
                code = pkg.verification_code
                if code is None or not _SHA1_RE.match(code.value):
                    violations.append(f"Package {pkg.spdx_id} has an invalid verification code")

        names: set[str] = set()
        for spdx_file in self.files:
            if not spdx_file.file_name:
                violations.append(f"File {spdx_file.spdx_id} has no name")
            elif spdx_file.file_name in names:
                violations.append(f"Duplicate file name {spdx_file.file_name!r}")
            names.add(spdx_file.file_name)
            if spdx_file.sha1() is None:
                violations.append(f"File {spdx_file.file_name} has no SHA1 checksum")

        file_ids = {f.spdx_id for f in self.files}
        for snippet in self.snippets:
            if snippet.file_id not in file_ids:
                violations.append(f"Snippet {snippet.spdx_id} refers to unknown file {snippet.file_id}")
            start, end = snippet.byte_range
            if start < 0 or end < start:
                violations.append(f"Snippet {snippet.spdx_id} has an invalid byte range")
            first, last = snippet.line_range or (1, 1)
            if first < 1 or last < first:
                violations.append(f"Snippet {snippet.spdx_id} has an invalid line range")

        ext_ids: set[str] = set()
        for ref in self.external_document_refs:
            if not _EXT_DOC_ID_RE.match(ref.ref_id):
                violations.append(f"Invalid external document id {ref.ref_id!r}")
            if ref.ref_id in ext_ids:
                violations.append(f"Duplicate external document id {ref.ref_id!r}")
            ext_ids.add(ref.ref_id)

        for rel in self.relationships:
            for endpoint in (rel.element_id, rel.related_element):
                if not self._resolvable(endpoint, seen, ext_ids):
                    violations.append(
                        f"Relationship {rel.element_id} {rel.relationship_type} "
                        f"{rel.related_element} has unresolvable endpoint {endpoint}"
                    )

        violations.extend(self._verify_licenses())
        return violations

    def _resolvable(self, endpoint: str, ids: set[str], ext_ids: set[str]) -> bool:
        if endpoint in ids or endpoint in (NOASSERTION, NONE):
            return True
        if ":" in endpoint:
            doc_ref, _, element = endpoint.partition(":")
            return doc_ref in ext_ids and bool(_SPDX_ID_RE.match(element))
        return False

    def _verify_licenses(self) -> list[str]:
        violations: list[str] = []
        extracted: set[str] = set()
        for lic in self.extracted_licenses:
            if lic.license_id in extracted:
                violations.append(f"Duplicate extracted license identifier {lic.license_id}")
            extracted.add(lic.license_id)
            if not lic.text:
                violations.append(f"Extracted license {lic.license_id} has no text")

        elements: list[Any] = [*self.packages, *self.files, *self.snippets]
        for element in elements:
            for info in element.licenses():
                for ref in extracted_licenses_in(info):
                    if ref.license_id not in extracted:
                        violations.append(
                            f"{element.spdx_id} references undeclared license {ref.license_id}"
                        )
        return violations

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        file_ids_by_pkg = {p.spdx_id: [f.spdx_id for f in self.files_of(p.spdx_id)] for p in self.packages}
        return _drop_empty({
            "spdxVersion": SPDX_VERSION,
            "dataLicense": self.data_license,
            "SPDXID": self.spdx_id,
            "name": self.name,
            "documentNamespace": self.namespace,
            "comment": self.comment,
            "creationInfo": _drop_empty({
                "created": self.created,
                "creators": list(self.creators),
                "licenseListVersion": self.license_list_version,
                "comment": self.creator_comment,
            }),
            "externalDocumentRefs": [r.to_dict() for r in self.external_document_refs],
            "hasExtractedLicensingInfos": [
                _drop_empty({
                    "licenseId": lic.license_id,
                    "extractedText": lic.text,
                    "name": lic.name,
                    "comment": lic.comment,
                    "seeAlsos": list(lic.see_also),
                })
                for lic in self.extracted_licenses
            ],
            "annotations": [a.to_dict() for a in self.annotations],
            "documentDescribes": [r.related_element for r in self.relationships
                                  if r.element_id == self.spdx_id and r.relationship_type == "DESCRIBES"],
            "packages": [p.to_dict(file_ids_by_pkg[p.spdx_id]) for p in self.packages],
            "files": [f.to_dict() for f in self.files],
            "snippets": [s.to_dict() for s in self.snippets],
            "relationships": [r.to_dict() for r in self.relationships],
        })
