"""Tests for SpdxV2DependencyMapper: traversal, scopes, package metadata and sibling SBOMs."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from spdxforge.core.dependency.base import RELATIONSHIP_COMMENT
from spdxforge.core.dependency.graph import DependencyNode
from spdxforge.core.dependency.v2 import SpdxV2DependencyMapper
from spdxforge.core.licenses.registry import LicenseRegistry
from spdxforge.core.licenses.v2 import SpdxV2LicenseManager
from spdxforge.core.model.licenses import NO_ASSERTION, ListedLicense
from spdxforge.core.model.v2 import Checksum, SpdxDocument, SpdxPackage
from spdxforge.core.project import Coordinate, DeclaredLicense, LicenseOverwrite, OverwriteTarget
from spdxforge.exceptions import BuilderStateError

from tests.helpers import CREATED, make_graph, node, sha1_hex, v2_document

PROJECT_ID = "SPDXRef-Project"


@pytest.fixture
def document() -> SpdxDocument:
    doc = v2_document()
    doc.packages.append(SpdxPackage(spdx_id=PROJECT_ID, name="demo"))
    return doc


@pytest.fixture
def manager(document: SpdxDocument, registry: LicenseRegistry) -> SpdxV2LicenseManager:
    return SpdxV2LicenseManager(document, registry)


def _mapper(document: SpdxDocument, manager: SpdxV2LicenseManager, **kwargs: object) -> SpdxV2DependencyMapper:
    return SpdxV2DependencyMapper(document, manager, **kwargs)  # type: ignore[arg-type]


def _names(document: SpdxDocument) -> dict[str, str]:
    return {p.spdx_id: p.name for p in document.packages}


def _edges(document: SpdxDocument) -> set[tuple[str, str, str]]:
    names = _names(document)
    return {(names[parent], names[child], kind) for parent, child, kind in document.dependency_edges()}


def _write_v2_sbom(path: Path, name: str = "lib", version: str = "2.1") -> None:
    sibling = SpdxDocument(name=name, namespace="https://example.org/spdx/lib-2.1", created=CREATED,
                           creators=["Tool: other"])
    sibling.packages.append(SpdxPackage(
        spdx_id="SPDXRef-lib", name=name, version=version,
        download_location="https://repo.example/lib-2.1.jar",
        license_declared=ListedLicense("MIT"), license_concluded=ListedLicense("MIT"),
        supplier="Organization: Lib Org", copyright_text="(c) Lib Org",
        checksums=[Checksum("SHA256", "cd" * 32)],
    ))
    sibling.add_relationship(sibling.spdx_id, "DESCRIBES", "SPDXRef-lib")
    path.write_text(json.dumps(sibling.to_dict()), encoding="utf-8")


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


class TestTraversal:
    """Packages per distinct coordinate, one relationship per edge."""

    def _graph(self):  # type: ignore[no-untyped-def]
        a = node("a", display_name="A")
        a.add_child(node("b", display_name="B"))
        return make_graph(a, node("c", display_name="C"))

    def test_transitive(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        count = _mapper(document, manager).map(self._graph(), PROJECT_ID)
        assert count == 3
        assert _edges(document) == {
            ("demo", "A", "DEPENDENCY_OF"),
            ("A", "B", "DEPENDENCY_OF"),
            ("demo", "C", "DEPENDENCY_OF"),
        }

    def test_direct_only(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        count = _mapper(document, manager, include_transitive=False).map(self._graph(), PROJECT_ID)
        assert count == 2
        assert set(_names(document).values()) == {"demo", "A", "C"}

    def test_dependency_is_the_subject(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        _mapper(document, manager).map(make_graph(node("a", display_name="A")), PROJECT_ID)
        [rel] = document.relationships
        assert _names(document)[rel.element_id] == "A"
        assert rel.related_element == PROJECT_ID
        assert rel.comment == RELATIONSHIP_COMMENT

    def test_shared_dependency_materialised_once(
        self, document: SpdxDocument, manager: SpdxV2LicenseManager
    ) -> None:
        a, c = node("a", display_name="A"), node("c", display_name="C")
        a.add_child(node("shared", display_name="S"))
        c.add_child(node("shared", display_name="S"))
        count = _mapper(document, manager).map(make_graph(a, c), PROJECT_ID)
        assert count == 3
        assert [p.name for p in document.packages].count("S") == 1
        assert ("A", "S", "DEPENDENCY_OF") in _edges(document)
        assert ("C", "S", "DEPENDENCY_OF") in _edges(document)

    def test_repeated_edge_recorded_once(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        _mapper(document, manager).map(make_graph(node("a"), node("a")), PROJECT_ID)
        assert len(document.relationships) == 1

    def test_reference_back_to_project_is_skipped(
        self, document: SpdxDocument, manager: SpdxV2LicenseManager
    ) -> None:
        a = node("a")
        a.add_child(DependencyNode(Coordinate("demo", "org.example", "1.0.0"), scope="compile"))
        count = _mapper(document, manager).map(make_graph(a), PROJECT_ID)
        assert count == 1

    def test_node_without_coordinate(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        with pytest.raises(BuilderStateError, match="no resolvable coordinate"):
            _mapper(document, manager).map(make_graph(DependencyNode(None)), PROJECT_ID)

    def test_package_ids_by_coordinate(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        mapper = _mapper(document, manager)
        mapper.map(make_graph(node("a")), PROJECT_ID)
        [(key, element_id)] = mapper.package_ids.items()
        assert key == Coordinate("a", "org.example", "1.0").key
        assert document.package_by_id(element_id) is not None


class TestScopes:
    """Scope to relationship type."""

    @pytest.mark.parametrize(
        ("scope", "expected"),
        [
            ("compile", "DEPENDENCY_OF"),
            ("runtime", "RUNTIME_DEPENDENCY_OF"),
            ("test", "TEST_DEPENDENCY_OF"),
            ("provided", "PROVIDED_DEPENDENCY_OF"),
            ("system", "DEPENDENCY_OF"),
            ("Runtime", "RUNTIME_DEPENDENCY_OF"),
        ],
    )
    def test_scope(
        self, document: SpdxDocument, manager: SpdxV2LicenseManager, scope: str, expected: str
    ) -> None:
        _mapper(document, manager).map(make_graph(node("a", scope=scope)), PROJECT_ID)
        assert document.relationships[0].relationship_type == expected

    def test_optional(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        _mapper(document, manager).map(make_graph(node("a", scope="compile", optional=True)), PROJECT_ID)
        assert document.relationships[0].relationship_type == "OPTIONAL_DEPENDENCY_OF"

    @pytest.mark.parametrize("scope", [None, "import", ""])
    def test_unknown_scope_is_other_with_warning(
        self, document: SpdxDocument, manager: SpdxV2LicenseManager, scope: str | None
    ) -> None:
        _mapper(document, manager).map(make_graph(node("a", scope=scope)), PROJECT_ID)
        assert document.relationships[0].relationship_type == "OTHER"
        assert any("org.example:a" in w for w in document.warnings)


# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------


class TestPackageMetadata:
    """Packages built from node metadata."""

    def _map_one(self, document: SpdxDocument, manager: SpdxV2LicenseManager, dep: DependencyNode,
                 **kwargs: object) -> SpdxPackage:
        _mapper(document, manager, **kwargs).map(make_graph(dep), PROJECT_ID)
        return document.packages[-1]

    def test_fields(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        dep = node(
            "lib", "2.1",
            display_name="Lib", description="A library", home_page="https://lib.example",
            organization="Lib Org", download_url="https://repo.example/lib-2.1.jar",
            licenses=[DeclaredLicense(name="MIT")],
        )
        pkg = self._map_one(document, manager, dep)
        assert pkg.name == "Lib"
        assert pkg.version == "2.1"
        assert pkg.summary == pkg.description == "A library"
        assert pkg.home_page == "https://lib.example"
        assert pkg.originator == "Organization: Lib Org"
        assert pkg.download_location == "https://repo.example/lib-2.1.jar"
        assert pkg.license_declared == ListedLicense("MIT")
        assert pkg.license_concluded is NO_ASSERTION
        assert pkg.copyright_text == "NOASSERTION"
        assert pkg.primary_purpose == "LIBRARY"
        assert not pkg.files_analyzed
        assert pkg.purl == "pkg:maven/org.example/lib@2.1"

    def test_name_defaults_to_coordinate(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        assert self._map_one(document, manager, node("lib")).name == "org.example:lib"

    def test_artifact_id_as_name(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        pkg = self._map_one(document, manager, node("lib", display_name="Lib"), use_artifact_id_as_name=True)
        assert pkg.name == "org.example:lib"

    def test_invalid_download_url_is_noassertion(
        self, document: SpdxDocument, manager: SpdxV2LicenseManager
    ) -> None:
        pkg = self._map_one(document, manager, node("lib", download_url="not a url"))
        assert pkg.download_location == "NOASSERTION"

    def test_no_purls(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        pkg = self._map_one(document, manager, node("lib"), generate_purls=False)
        assert pkg.external_refs == []

    def test_unmappable_license_degrades(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        pkg = self._map_one(document, manager, node("lib", licenses=[DeclaredLicense()]))
        assert pkg.license_declared is NO_ASSERTION
        assert any("org.example:lib:1.0" in w for w in document.warnings)

    def test_unknown_license_is_extracted(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        pkg = self._map_one(document, manager, node("lib", licenses=[DeclaredLicense(name="Lib Private License")]))
        assert pkg.license_declared.render() == "LicenseRef-Lib-Private-License"
        assert document.verify() == []

    def test_artifact_checksum(
        self, document: SpdxDocument, manager: SpdxV2LicenseManager, tmp_path: Path
    ) -> None:
        artifact = tmp_path / "lib-1.0.jar"
        artifact.write_bytes(b"jar bytes")
        pkg = self._map_one(document, manager, node("lib", artifact=artifact))
        assert pkg.checksums == [Checksum("SHA1", sha1_hex(b"jar bytes"))]
        assert pkg.package_file_name == "lib-1.0.jar"

    def test_missing_artifact_has_no_checksum(
        self, document: SpdxDocument, manager: SpdxV2LicenseManager, tmp_path: Path
    ) -> None:
        pkg = self._map_one(document, manager, node("lib", artifact=tmp_path / "gone.jar"))
        assert pkg.checksums == []


class TestLicenseOverwrites:
    """Overwriting dependency licenses."""

    def _overwrites(self, *overwrites: LicenseOverwrite) -> list[LicenseOverwrite]:
        return list(overwrites)

    def test_declared_overwrite(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        overwrite = LicenseOverwrite("org.example", "lib", "Apache-2.0", OverwriteTarget.DECLARED)
        dep = node("lib", licenses=[DeclaredLicense(name="MIT")])
        _mapper(document, manager, license_overwrites=[overwrite]).map(make_graph(dep), PROJECT_ID)
        pkg = document.packages[-1]
        assert pkg.license_declared == ListedLicense("Apache-2.0")
        assert pkg.license_concluded is NO_ASSERTION
        assert pkg.license_comments == "Declared license has been overwritten, original value: MIT"

    def test_both_targets(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        overwrite = LicenseOverwrite("org.example", "lib", "ISC")
        _mapper(document, manager, license_overwrites=[overwrite]).map(make_graph(node("lib")), PROJECT_ID)
        pkg = document.packages[-1]
        assert pkg.license_declared == pkg.license_concluded == ListedLicense("ISC")
        assert "Concluded license has been overwritten" in pkg.license_comments

    def test_version_must_match(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        overwrite = LicenseOverwrite("org.example", "lib", "ISC", version="9.9")
        _mapper(document, manager, license_overwrites=[overwrite]).map(make_graph(node("lib")), PROJECT_ID)
        assert document.packages[-1].license_declared is NO_ASSERTION

    def test_ambiguous_overwrites_raise(self, document: SpdxDocument, manager: SpdxV2LicenseManager) -> None:
        overwrites = [LicenseOverwrite("org.example", "lib", "ISC"), LicenseOverwrite("org.example", "lib", "MIT")]
        with pytest.raises(BuilderStateError, match="Multiple matching license overwrites"):
            _mapper(document, manager, license_overwrites=overwrites).map(make_graph(node("lib")), PROJECT_ID)


# ---------------------------------------------------------------------------
# Sibling SPDX documents
# ---------------------------------------------------------------------------


class TestSiblingDocuments:
    """A dependency that ships its own SBOM."""

    def _artifact(self, tmp_path: Path) -> Path:
        artifact = tmp_path / "lib-2.1.jar"
        artifact.write_bytes(b"jar")
        _write_v2_sbom(tmp_path / "lib-2.1.spdx.json")
        return artifact

    def test_external_document_reference(
        self, document: SpdxDocument, manager: SpdxV2LicenseManager, tmp_path: Path
    ) -> None:
        artifact = self._artifact(tmp_path)
        _mapper(document, manager).map(make_graph(node("lib", "2.1", artifact=artifact)), PROJECT_ID)

        [ref] = document.external_document_refs
        assert ref.ref_id == "DocumentRef-org.examplelib2.1"
        assert ref.document_uri == "https://example.org/spdx/lib-2.1"
        assert ref.checksum == Checksum("SHA1", sha1_hex((tmp_path / "lib-2.1.spdx.json").read_bytes()))
        [rel] = document.relationships
        assert rel.element_id == "DocumentRef-org.examplelib2.1:SPDXRef-lib"
        assert len(document.packages) == 1
        assert len(document.annotations) == 1
        assert document.verify() == []

    def test_copy_instead_of_reference(
        self, document: SpdxDocument, manager: SpdxV2LicenseManager, tmp_path: Path
    ) -> None:
        artifact = self._artifact(tmp_path)
        _mapper(document, manager, create_external_refs=False).map(
            make_graph(node("lib", "2.1", artifact=artifact)), PROJECT_ID
        )
        assert document.external_document_refs == []
        pkg = document.packages[-1]
        assert pkg.name == "lib"
        assert pkg.supplier == "Organization: Lib Org"
        assert pkg.license_declared == ListedLicense("MIT")
        assert pkg.copyright_text == "(c) Lib Org"
        assert pkg.checksums == [Checksum("SHA256", "cd" * 32)]

    def test_unreadable_sibling_falls_back(
        self, document: SpdxDocument, manager: SpdxV2LicenseManager, tmp_path: Path
    ) -> None:
        artifact = tmp_path / "lib-2.1.jar"
        artifact.write_bytes(b"jar")
        (tmp_path / "lib-2.1.spdx.json").write_text("{not json", encoding="utf-8")
        _mapper(document, manager).map(make_graph(node("lib", "2.1", artifact=artifact)), PROJECT_ID)
        assert document.external_document_refs == []
        assert document.packages[-1].checksums == [Checksum("SHA1", sha1_hex(b"jar"))]
        assert any("Unable to use SPDX document" in w for w in document.warnings)
