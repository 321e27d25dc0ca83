"""SPDX 3.0.1 object model (linked-data graph of elements).

Every element carries a document-scoped URI (``<namespace>#SPDXRef-...``)
and a reference to the shared ``CreationInfo`` blank node.  Licensing is
expressed with relationships (``hasDeclaredLicense``/``hasConcludedLicense``)
from a package, file or snippet to a ``simplelicensing_LicenseExpression``
element; document-local licenses become ``expandedlicensing_CustomLicense``
elements.  The graph serialises to JSON-LD with ``to_jsonld``.

Relationship direction follows SPDX 3: dependency edges are recorded with
the parent as the subject (``<parent> dependsOn <dep>``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from spdxforge.core.ids import IdGenerator
from spdxforge.core.model.licenses import (
    AnyLicenseInfo,
    ExtractedLicense,
    NoAssertionLicense,
    NoneLicense,
    extracted_licenses_in,
)

SPEC_VERSION = "3.0.1"
JSONLD_CONTEXT = "https://spdx.org/rdf/3.0.1/spdx-context.jsonld"
CREATION_INFO_ID = "_:creationinfo"

NO_ASSERTION_LICENSE_URI = "https://spdx.org/rdf/3.0.1/terms/Licensing/NoAssertion"
NONE_LICENSE_URI = "https://spdx.org/rdf/3.0.1/terms/Licensing/None"
WELL_KNOWN_INDIVIDUALS = frozenset({
    NO_ASSERTION_LICENSE_URI,
    NONE_LICENSE_URI,
    "https://spdx.org/rdf/3.0.1/terms/Core/NoAssertionElement",
    "https://spdx.org/rdf/3.0.1/terms/Core/NoneElement",
})

PROFILES = ["core", "software", "simpleLicensing", "expandedLicensing"]

# SPDX 2 style algorithm names to the SPDX 3 HashAlgorithm vocabulary.
HASH_ALGORITHMS: dict[str, str] = {
    "SHA1": "sha1",
    "SHA224": "sha224",
    "SHA256": "sha256",
    "SHA384": "sha384",
    "SHA512": "sha512",
    "SHA3_256": "sha3_256",
    "SHA3_384": "sha3_384",
    "SHA3_512": "sha3_512",
    "BLAKE2b_256": "blake2b256",
    "BLAKE2b_384": "blake2b384",
    "BLAKE2b_512": "blake2b512",
    "MD2": "md2",
    "MD4": "md4",
    "MD5": "md5",
    "MD6": "md6",
}

DEPENDENCY_RELATIONSHIP_TYPES = frozenset({
    "dependsOn",
    "hasOptionalDependency",
    "hasProvidedDependency",
    "other",
})

_LICENSE_REF_RE = re.compile(r"(?:DocumentRef-[A-Za-z0-9.\-]+:)?LicenseRef-[A-Za-z0-9.\-]+")


def _drop_empty(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v not in (None, "", [], {})}


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Hash:
    algorithm: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"type": "Hash", "algorithm": HASH_ALGORITHMS.get(self.algorithm, self.algorithm.lower()),
                "hashValue": self.value}


@dataclass
class PackageVerificationCode:
    value: str
    excluded_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _drop_empty({
            "type": "PackageVerificationCode",
            "algorithm": "sha1",
            "hashValue": self.value,
            "packageVerificationCodeExcludedFile": list(self.excluded_files),
        })


@dataclass(frozen=True)
class ExternalIdentifier:
    identifier_type: str
    identifier: str
    comment: str = ""

    def to_dict(self) -> dict[str, str]:
        return _drop_empty({
            "type": "ExternalIdentifier",
            "externalIdentifierType": self.identifier_type,
            "identifier": self.identifier,
            "comment": self.comment,
        })


@dataclass(frozen=True)
class ExternalRef:
    ref_type: str
    locator: str
    comment: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _drop_empty({
            "type": "ExternalRef",
            "externalRefType": self.ref_type,
            "locator": [self.locator],
            "comment": self.comment,
        })


@dataclass(frozen=True)
class ExternalMap:
    external_spdx_id: str
    verified_using: tuple[Hash, ...] = ()
    location_hint: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _drop_empty({
            "type": "ExternalMap",
            "externalSpdxId": self.external_spdx_id,
            "verifiedUsing": [h.to_dict() for h in self.verified_using],
            "locationHint": self.location_hint,
        })


@dataclass
class CreationInfo:
    created: str
    created_by: list[str] = field(default_factory=list)
    created_using: list[str] = field(default_factory=list)
    comment: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _drop_empty({
            "type": "CreationInfo",
            "@id": CREATION_INFO_ID,
            "specVersion": SPEC_VERSION,
            "created": self.created,
            "createdBy": list(self.created_by),
            "createdUsing": list(self.created_using),
            "comment": self.comment,
        })


# ---------------------------------------------------------------------------
# Elements
# ---------------------------------------------------------------------------


@dataclass
class Element:
    """Common attributes of every SPDX 3 element."""

    spdx_id: str
    name: str = ""
    comment: str = ""
    summary: str = ""
    description: str = ""
    verified_using: list[Any] = field(default_factory=list)
    external_identifiers: list[ExternalIdentifier] = field(default_factory=list)
    external_refs: list[ExternalRef] = field(default_factory=list)

    type_name = "Element"

    def references(self) -> list[str]:
        """Ids of other elements this element points at."""
        return []

    def to_dict(self) -> dict[str, Any]:
        return _drop_empty({
            "type": self.type_name,
            "spdxId": self.spdx_id,
            "creationInfo": CREATION_INFO_ID,
            "name": self.name,
            "comment": self.comment,
            "summary": self.summary,
            "description": self.description,
            "verifiedUsing": [v.to_dict() for v in self.verified_using],
            "externalIdentifier": [e.to_dict() for e in self.external_identifiers],
            "externalRef": [r.to_dict() for r in self.external_refs],
        })


@dataclass
class Agent(Element):
    kind: str = "Organization"

    @property
    def type_name(self) -> str:  # type: ignore[override]
        return self.kind


@dataclass
class Tool(Element):
    type_name = "Tool"


@dataclass
class Package(Element):
    version: str = ""
    download_location: str = ""
    home_page: str = ""
    source_info: str = ""
    copyright_text: str = ""
    primary_purpose: str = ""
    package_url: str = ""
    supplied_by: str = ""
    originated_by: list[str] = field(default_factory=list)
    declared_license: AnyLicenseInfo | None = None
    concluded_license: AnyLicenseInfo | None = None

    type_name = "software_Package"

    def references(self) -> list[str]:
        return [ref for ref in [self.supplied_by, *self.originated_by] if ref]

    def sha1(self) -> str | None:
        return _sha1_of(self.verified_using)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(_drop_empty({
            "software_packageVersion": self.version,
            "software_downloadLocation": self.download_location,
            "software_homePage": self.home_page,
            "software_sourceInfo": self.source_info,
            "software_copyrightText": self.copyright_text,
            "software_primaryPurpose": self.primary_purpose.lower(),
            "software_packageUrl": self.package_url,
            "suppliedBy": self.supplied_by,
            "originatedBy": list(self.originated_by),
        }))
        return data


@dataclass
class File(Element):
    primary_purpose: str = ""
    additional_purposes: list[str] = field(default_factory=list)
    content_type: str = ""
    copyright_text: str = ""
    attribution_texts: list[str] = field(default_factory=list)
    originated_by: list[str] = field(default_factory=list)
    declared_license: AnyLicenseInfo | None = None
    concluded_license: AnyLicenseInfo | None = None

    type_name = "software_File"

    def references(self) -> list[str]:
        return list(self.originated_by)

    def sha1(self) -> str | None:
        return _sha1_of(self.verified_using)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(_drop_empty({
            "software_primaryPurpose": self.primary_purpose.lower(),
            "software_additionalPurpose": [p.lower() for p in self.additional_purposes],
            "contentType": self.content_type,
            "software_copyrightText": self.copyright_text,
            "software_attributionText": list(self.attribution_texts),
            "originatedBy": list(self.originated_by),
        }))
        return data


@dataclass
class Snippet(Element):
    snippet_from_file: str = ""
    byte_range: tuple[int, int] = (0, 0)
    line_range: tuple[int, int] | None = None
    copyright_text: str = ""

    type_name = "software_Snippet"

    def references(self) -> list[str]:
        return [self.snippet_from_file]

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["snippetFromFile"] = self.snippet_from_file
        data["software_byteRange"] = _range(self.byte_range)
        if self.line_range is not None:
            data["software_lineRange"] = _range(self.line_range)
        if self.copyright_text:
            data["software_copyrightText"] = self.copyright_text
        return data


@dataclass
class Relationship(Element):
    from_element: str = ""
    relationship_type: str = ""
    to: list[str] = field(default_factory=list)
    completeness: str = ""

    type_name = "Relationship"

    def references(self) -> list[str]:
        return [self.from_element, *self.to]

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(_drop_empty({
            "from": self.from_element,
            "relationshipType": self.relationship_type,
            "to": list(self.to),
            "completeness": self.completeness,
        }))
        return data


@dataclass
class LifecycleScopedRelationship(Relationship):
    scope: str = ""

    type_name = "LifecycleScopedRelationship"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.scope:
            data["scope"] = self.scope
        return data


@dataclass
class LicenseExpression(Element):
    expression: str = ""
    custom_id_to_uri: dict[str, str] = field(default_factory=dict)
    license_list_version: str = ""

    type_name = "simplelicensing_LicenseExpression"

    def references(self) -> list[str]:
        return list(self.custom_id_to_uri.values())

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["simplelicensing_licenseExpression"] = self.expression
        if self.custom_id_to_uri:
            data["simplelicensing_customIdToUri"] = [
                {"type": "DictionaryEntry", "key": key, "value": value}
                for key, value in self.custom_id_to_uri.items()
            ]
        if self.license_list_version:
            data["simplelicensing_licenseListVersion"] = self.license_list_version
        return data


@dataclass
class CustomLicense(Element):
    license_id: str = ""
    license_text: str = ""
    see_also: list[str] = field(default_factory=list)

    type_name = "expandedlicensing_CustomLicense"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["simplelicensing_licenseText"] = self.license_text
        if self.see_also:
            data["expandedlicensing_seeAlso"] = list(self.see_also)
        return data


@dataclass
class Annotation(Element):
    annotation_type: str = "other"
    subject: str = ""
    statement: str = ""
    annotator: str = ""
    date: str = ""

    type_name = "Annotation"

    def references(self) -> list[str]:
        return [self.subject]

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(_drop_empty({
            "annotationType": self.annotation_type.lower(),
            "subject": self.subject,
            "statement": self.statement,
        }))
        return data


@dataclass
class Sbom(Element):
    root_elements: list[str] = field(default_factory=list)
    elements: list[str] = field(default_factory=list)
    sbom_types: list[str] = field(default_factory=lambda: ["build"])

    type_name = "software_Sbom"

    def references(self) -> list[str]:
        return list(self.root_elements)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(_drop_empty({
            "rootElement": list(self.root_elements),
            "element": list(self.elements),
            "software_sbomType": list(self.sbom_types),
        }))
        return data


def _range(bounds: tuple[int, int]) -> dict[str, Any]:
    return {"type": "PositiveIntegerRange", "beginIntegerRange": bounds[0], "endIntegerRange": bounds[1]}


def _sha1_of(verified_using: list[Any]) -> str | None:
    for item in verified_using:
        if isinstance(item, Hash) and item.algorithm == "SHA1":
            return item.value
    return None


# ---------------------------------------------------------------------------
# SpdxDocument
# ---------------------------------------------------------------------------


@dataclass
class SpdxDocument:
    """An SPDX 3 document: creation info plus an ordered element graph.

    The document element itself is kept apart from ``elements``; its root
    element is the ``software_Sbom`` describing the project package.
    """

    spdx_id: str
    name: str
    namespace: str
    creation_info: CreationInfo
    comment: str = ""
    data_license: str = ""
    license_list_version: str = ""
    elements: dict[str, Element] = field(default_factory=dict)
    imports: list[ExternalMap] = field(default_factory=list)
    root_elements: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    _expressions: dict[str, str] = field(default_factory=dict, repr=False)
    _agents: dict[tuple[str, str], str] = field(default_factory=dict, repr=False)
    id_generator: IdGenerator = field(default_factory=IdGenerator, repr=False)

    # -- Mutation -----------------------------------------------------------

    def add(self, element: Element) -> Element:
        if element.spdx_id in self.elements:
            raise ValueError(f"Duplicate element id {element.spdx_id}")
        self.elements[element.spdx_id] = element
        return element

    def uri(self, local_id: str) -> str:
        return f"{self.namespace}#{local_id}"

    def new_id(self, seed: str) -> str:
        return self.uri(self.id_generator.generate(seed))

    def relate(
        self,
        from_element: str,
        relationship_type: str,
        to: list[str],
        *,
        scope: str = "",
        comment: str = "",
    ) -> Relationship:
        """Append a relationship; lifecycle-scoped when ``scope`` is given."""
        seed = from_element + relationship_type + "".join(to)
        rel: Relationship
        if scope:
            rel = LifecycleScopedRelationship(
                spdx_id=self.new_id(seed), from_element=from_element,
                relationship_type=relationship_type, to=list(to), comment=comment, scope=scope,
            )
        else:
            rel = Relationship(
                spdx_id=self.new_id(seed), from_element=from_element,
                relationship_type=relationship_type, to=list(to), comment=comment,
            )
        self.add(rel)
        return rel

    def agent(self, name: str, kind: str = "Organization", description: str = "") -> str:
        """Id of the agent (or tool) element called ``name``, created on first use."""
        key = (kind, name)
        existing = self._agents.get(key)
        if existing is None:
            agent = Agent(
                spdx_id=self.new_id(f"{kind}:{name}"), name=name, description=description, kind=kind
            )
            self.add(agent)
            existing = self._agents[key] = agent.spdx_id
        return existing

    def custom_license_uri(self, license_id: str) -> str:
        return self.uri(license_id)

    def license_element(self, info: AnyLicenseInfo) -> str:
        """Id of the element representing ``info``, created on first use."""
        if isinstance(info, NoAssertionLicense):
            return NO_ASSERTION_LICENSE_URI
        if isinstance(info, NoneLicense):
            return NONE_LICENSE_URI
        text = info.render()
        existing = self._expressions.get(text)
        if existing is not None:
            return existing
        custom = {
            lic.license_id: self.custom_license_uri(lic.license_id) for lic in extracted_licenses_in(info)
        }
        element = LicenseExpression(
            spdx_id=self.uri(f"SPDXRef-LicenseExpression-{len(self._expressions)}"),
            expression=text,
            custom_id_to_uri=custom,
            license_list_version=self.license_list_version,
        )
        self.add(element)
        self._expressions[text] = element.spdx_id
        return element.spdx_id

    # -- Queries ------------------------------------------------------------

    def of_type(self, cls: type[Element]) -> list[Any]:
        return [e for e in self.elements.values() if type(e) is cls]

    @property
    def packages(self) -> list[Package]:
        return self.of_type(Package)

    @property
    def files(self) -> list[File]:
        return self.of_type(File)

    @property
    def snippets(self) -> list[Snippet]:
        return self.of_type(Snippet)

    @property
    def relationships(self) -> list[Relationship]:
        return [e for e in self.elements.values() if isinstance(e, Relationship)]

    @property
    def custom_licenses(self) -> list[CustomLicense]:
        return self.of_type(CustomLicense)

    def sbom(self) -> Sbom | None:
        for root in self.root_elements:
            element = self.elements.get(root)
            if isinstance(element, Sbom):
                return element
        return None

    def described_package(self) -> Package | None:
        sbom = self.sbom()
        if sbom is None:
            return None
        for root in sbom.root_elements:
            element = self.elements.get(root)
            if isinstance(element, Package):
                return element
        return None

    def files_of(self, package_id: str) -> list[File]:
        ids: set[str] = set()
        for rel in self.relationships:
            if rel.from_element == package_id and rel.relationship_type == "contains":
                ids.update(rel.to)
        return [f for f in self.files if f.spdx_id in ids]

    def dependency_edges(self) -> list[tuple[str, str, str]]:
        """Dependency edges as ``(parent id, dependency id, type)`` triples."""
        return [
            (rel.from_element, target, rel.relationship_type)
            for rel in self.relationships
            if rel.relationship_type in DEPENDENCY_RELATIONSHIP_TYPES
            for target in rel.to
        ]

    def licenses_of(self, element_id: str, relationship_type: str) -> list[str]:
        """Expression texts (or well-known ids) related to an element."""
        result: list[str] = []
        for rel in self.relationships:
            if rel.from_element != element_id or rel.relationship_type != relationship_type:
                continue
            for target in rel.to:
                element = self.elements.get(target)
                if isinstance(element, LicenseExpression):
                    result.append(element.expression)
                elif target == NO_ASSERTION_LICENSE_URI:
                    result.append("NOASSERTION")
                elif target == NONE_LICENSE_URI:
                    result.append("NONE")
        return result

    # -- Verification -------------------------------------------------------

    def verify(self) -> list[str]:
        """Run the structural self-checks and return every violation found."""
        violations: list[str] = []
        info = self.creation_info
        if not info.created:
            violations.append("Creation info has no creation date")
        if not info.created_by:
            violations.append("Creation info has no creating agent")
        if not self.name:
            violations.append("Document name is missing")
        if not self.namespace or "#" in self.namespace or ":" not in self.namespace:
            violations.append(f"Invalid document namespace {self.namespace!r}")

        external = {m.external_spdx_id for m in self.imports}
        known = set(self.elements) | WELL_KNOWN_INDIVIDUALS | external | {self.spdx_id}

        for agent in [*info.created_by, *info.created_using]:
            if agent not in self.elements:
                violations.append(f"Creation info refers to unknown agent {agent}")

        if not self.root_elements:
            violations.append("Document has no root element")
        for root in self.root_elements:
            if root not in known:
                violations.append(f"Document root element {root} is not defined")

        for element in self.elements.values():
            if ":" not in element.spdx_id:
                violations.append(f"Element id {element.spdx_id!r} is not an absolute URI")
            for ref in element.references():
                if ref not in known:
                    violations.append(
                        f"{element.type_name} {element.spdx_id} refers to unknown element {ref}"
                    )
            if isinstance(element, (Package, File)) and not element.name:
                violations.append(f"{element.type_name} {element.spdx_id} has no name")
            if isinstance(element, File) and element.sha1() is None:
                violations.append(f"File {element.name} has no SHA1 hash")
            if isinstance(element, Snippet):
                start, end = element.byte_range
                if start < 0 or end < start:
                    violations.append(f"Snippet {element.spdx_id} has an invalid byte range")
                first, last = element.line_range or (1, 1)
                if first < 1 or last < first:
                    violations.append(f"Snippet {element.spdx_id} has an invalid line range")
            if isinstance(element, Relationship) and not element.to:
                violations.append(f"Relationship {element.spdx_id} has no target")

        names: set[str] = set()
        for spdx_file in self.files:
            if spdx_file.name in names:
                violations.append(f"Duplicate file name {spdx_file.name!r}")
            names.add(spdx_file.name)

        custom_ids: set[str] = set()
        for lic in self.custom_licenses:
            if lic.license_id in custom_ids:
                violations.append(f"Duplicate custom license identifier {lic.license_id}")
            custom_ids.add(lic.license_id)
            if not lic.license_text:
                violations.append(f"Custom license {lic.license_id} has no text")
        for element in self.of_type(LicenseExpression):
            for ref in _LICENSE_REF_RE.findall(element.expression):
                if ref not in element.custom_id_to_uri:
                    violations.append(f"License expression {element.expression!r} does not map {ref}")
        return violations

    # -- Serialisation ------------------------------------------------------

    def document_dict(self) -> dict[str, Any]:
        return _drop_empty({
            "type": "SpdxDocument",
            "spdxId": self.spdx_id,
            "creationInfo": CREATION_INFO_ID,
            "name": self.name,
            "comment": self.comment,
            "dataLicense": self.data_license,
            "profileConformance": list(PROFILES),
            "rootElement": list(self.root_elements),
            "element": list(self.elements),
            "import": [m.to_dict() for m in self.imports],
        })

    def to_jsonld(self) -> dict[str, Any]:
        graph = [self.creation_info.to_dict(), self.document_dict()]
        graph.extend(e.to_dict() for e in self.elements.values())
        return {"@context": JSONLD_CONTEXT, "@graph": graph}

    def to_dict(self) -> dict[str, Any]:
        return self.to_jsonld()


def extracted_to_custom_license(doc: SpdxDocument, lic: ExtractedLicense) -> CustomLicense:
    return CustomLicense(
        spdx_id=doc.custom_license_uri(lic.license_id),
        name=lic.name,
        comment=lic.comment,
        license_id=lic.license_id,
        license_text=lic.text,
        see_also=list(lic.see_also),
    )
