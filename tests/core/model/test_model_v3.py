"""Tests for the SPDX 3.0.1 element graph, its checks and JSON-LD output."""

from __future__ import annotations

import pytest

from spdxforge.core.model.licenses import NO_ASSERTION, ExtractedLicense, LicenseSet, ListedLicense
from spdxforge.core.model.v3 import (
    CREATION_INFO_ID,
    JSONLD_CONTEXT,
    NO_ASSERTION_LICENSE_URI,
    File,
    Hash,
    LicenseExpression,
    Package,
    Relationship,
    Sbom,
    Snippet,
    SpdxDocument,
    extracted_to_custom_license,
)

from tests.helpers import NAMESPACE, v3_document


def _rooted() -> tuple[SpdxDocument, Package]:
    document = v3_document()
    pkg = Package(spdx_id=document.new_id("pkg"), name="demo")
    document.add(pkg)
    sbom = Sbom(spdx_id=document.new_id("sbom"), root_elements=[pkg.spdx_id])
    document.add(sbom)
    document.root_elements.append(sbom.spdx_id)
    return document, pkg


class TestGraph:
    """Element registration and lookups."""

    def test_ids_are_namespace_uris(self) -> None:
        document = v3_document()
        assert document.new_id("x").startswith(NAMESPACE + "#SPDXRef-")

    def test_duplicate_element_rejected(self) -> None:
        document = v3_document()
        document.add(Package(spdx_id=document.uri("p"), name="a"))
        with pytest.raises(ValueError, match="Duplicate element id"):
            document.add(Package(spdx_id=document.uri("p"), name="b"))

    def test_agents_created_once(self) -> None:
        document = v3_document()
        first = document.agent("ACME")
        assert document.agent("ACME") == first
        assert document.agent("ACME", "Person") != first

    def test_license_elements_are_shared(self) -> None:
        document = v3_document()
        mit = document.license_element(ListedLicense("MIT"))
        assert document.license_element(ListedLicense("MIT")) == mit
        assert document.license_element(NO_ASSERTION) == NO_ASSERTION_LICENSE_URI
        assert NO_ASSERTION_LICENSE_URI not in document.elements

    def test_license_element_maps_custom_ids(self) -> None:
        document = v3_document()
        custom = ExtractedLicense("LicenseRef-X", "text")
        element_id = document.license_element(LicenseSet((ListedLicense("MIT"), custom), "AND"))
        element = document.elements[element_id]
        assert isinstance(element, LicenseExpression)
        assert element.expression == "(MIT AND LicenseRef-X)"
        assert element.custom_id_to_uri == {"LicenseRef-X": document.uri("LicenseRef-X")}

    def test_described_package_through_sbom(self) -> None:
        document, pkg = _rooted()
        assert document.sbom() is not None
        assert document.described_package() is pkg

    def test_relate_with_scope(self) -> None:
        document, pkg = _rooted()
        rel = document.relate(pkg.spdx_id, "dependsOn", [pkg.spdx_id], scope="runtime")
        assert rel.type_name == "LifecycleScopedRelationship"
        assert document.relate(pkg.spdx_id, "contains", [pkg.spdx_id]).type_name == "Relationship"

    def test_licenses_of(self) -> None:
        document, pkg = _rooted()
        document.relate(pkg.spdx_id, "hasDeclaredLicense", [document.license_element(ListedLicense("MIT"))])
        document.relate(pkg.spdx_id, "hasConcludedLicense", [NO_ASSERTION_LICENSE_URI])
        assert document.licenses_of(pkg.spdx_id, "hasDeclaredLicense") == ["MIT"]
        assert document.licenses_of(pkg.spdx_id, "hasConcludedLicense") == ["NOASSERTION"]


class TestVerify:
    def test_rooted_document_is_valid(self) -> None:
        document, _ = _rooted()
        assert document.verify() == []

    def test_no_root(self) -> None:
        assert "Document has no root element" in v3_document().verify()

    def test_dangling_reference(self) -> None:
        document, pkg = _rooted()
        document.add(Relationship(spdx_id=document.new_id("r"), from_element=pkg.spdx_id,
                                  relationship_type="contains", to=[document.uri("ghost")]))
        assert any("refers to unknown element" in v for v in document.verify())

    def test_file_without_sha1(self) -> None:
        document, _ = _rooted()
        document.add(File(spdx_id=document.new_id("f"), name="a.txt", verified_using=[Hash("SHA256", "ab")]))
        assert "File a.txt has no SHA1 hash" in document.verify()

    def test_unmapped_license_ref(self) -> None:
        document, _ = _rooted()
        document.add(LicenseExpression(spdx_id=document.new_id("l"), expression="MIT OR LicenseRef-Y"))
        assert "License expression 'MIT OR LicenseRef-Y' does not map LicenseRef-Y" in document.verify()

    def test_custom_license_needs_text(self) -> None:
        document, _ = _rooted()
        document.add(extracted_to_custom_license(document, ExtractedLicense("LicenseRef-Z", "")))
        assert "Custom license LicenseRef-Z has no text" in document.verify()

    @pytest.mark.parametrize(
        ("line_range", "valid"),
        [((1, 3), True), ((0, 3), False), ((5, 4), False), (None, True)],
    )
    def test_snippet_line_range(self, line_range: tuple[int, int] | None, valid: bool) -> None:
        document, _ = _rooted()
        file = File(spdx_id=document.new_id("f"), name="a.txt", verified_using=[Hash("SHA1", "ab" * 20)])
        document.add(file)
        snippet = Snippet(spdx_id=document.new_id("s"), snippet_from_file=file.spdx_id, byte_range=(0, 4),
                          line_range=line_range)
        document.add(snippet)
        violation = f"Snippet {snippet.spdx_id} has an invalid line range"
        assert (violation not in document.verify()) is valid


class TestJsonLd:
    """JSON-LD serialisation."""

    def test_graph_layout(self) -> None:
        document, pkg = _rooted()
        data = document.to_jsonld()
        assert data["@context"] == JSONLD_CONTEXT
        info, doc = data["@graph"][:2]
        assert info["@id"] == CREATION_INFO_ID
        assert info["specVersion"] == "3.0.1"
        assert doc["type"] == "SpdxDocument"
        assert doc["rootElement"] == document.root_elements
        assert pkg.spdx_id in doc["element"]
        assert all(e.get("creationInfo") == CREATION_INFO_ID for e in data["@graph"][1:])

    def test_hash_algorithm_vocabulary(self) -> None:
        assert Hash("SHA256", "ab").to_dict() == {"type": "Hash", "algorithm": "sha256", "hashValue": "ab"}
        assert Hash("BLAKE2b_256", "ab").to_dict()["algorithm"] == "blake2b256"

    def test_package_fields(self) -> None:
        pkg = Package(spdx_id="urn:x#p", name="demo", version="1.0", primary_purpose="LIBRARY",
                      package_url="pkg:maven/org.example/demo@1.0")
        data = pkg.to_dict()
        assert data["type"] == "software_Package"
        assert data["software_primaryPurpose"] == "library"
        assert data["software_packageVersion"] == "1.0"
        assert data["software_packageUrl"] == "pkg:maven/org.example/demo@1.0"
