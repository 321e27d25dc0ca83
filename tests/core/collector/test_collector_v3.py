"""Tests for SpdxV3FileCollector: file elements, purposes and the contains relationship."""

from __future__ import annotations

from pathlib import Path

import pytest

from spdxforge.core.collector.v3 import SpdxV3FileCollector, media_type_for, purposes_for
from spdxforge.core.model.v3 import Hash, Package, PackageVerificationCode, SpdxDocument
from spdxforge.core.project import DefaultFileInfo, FileSetSpec, SnippetInfo

from tests.helpers import sha1_hex, v3_document, write_tree


@pytest.fixture
def document() -> SpdxDocument:
    return v3_document()


@pytest.fixture
def package(document: SpdxDocument) -> Package:
    pkg = Package(spdx_id=document.new_id("pkg"), name="demo", verified_using=[Hash("SHA256", "ab" * 32)])
    document.add(pkg)
    return pkg


class TestPurposes:
    def test_first_known_type_is_primary(self) -> None:
        assert purposes_for(("TEXT", "DOCUMENTATION")) == ("documentation", [])
        assert purposes_for(("ARCHIVE", "APPLICATION")) == ("archive", ["application"])

    def test_unknown_types_are_other(self) -> None:
        assert purposes_for(("IMAGE",)) == ("other", [])

    def test_media_type(self) -> None:
        assert media_type_for(("SOURCE",)) == "text/plain"
        assert media_type_for(("ARCHIVE",)) == ""


class TestCollect:
    """Collecting into an SPDX 3 graph."""

    def test_file_elements(self, document: SpdxDocument, package: Package, tmp_path: Path) -> None:
        write_tree(tmp_path, {"README.md": "readme", "src/Main.src": "main"})
        SpdxV3FileCollector(document).collect([FileSetSpec(directory=tmp_path)], package)
        files = {f.name: f for f in document.files}
        assert set(files) == {"README.md", "src/Main.src"}
        assert files["src/Main.src"].primary_purpose == "source"
        assert files["src/Main.src"].content_type == "text/plain"
        assert files["README.md"].sha1() == sha1_hex("readme")

    def test_single_contains_relationship(
        self, document: SpdxDocument, package: Package, tmp_path: Path
    ) -> None:
        write_tree(tmp_path, {"a.txt": "a", "b.txt": "b"})
        SpdxV3FileCollector(document).collect([FileSetSpec(directory=tmp_path)], package)
        [rel] = document.relationships
        assert rel.from_element == package.spdx_id
        assert rel.relationship_type == "contains"
        assert [f.name for f in document.files_of(package.spdx_id)] == ["a.txt", "b.txt"]

    def test_no_files_no_relationship(self, document: SpdxDocument, package: Package, tmp_path: Path) -> None:
        SpdxV3FileCollector(document).collect([FileSetSpec(directory=tmp_path)], package)
        assert document.relationships == []

    def test_verification_code_replaces_placeholder(
        self, document: SpdxDocument, package: Package, tmp_path: Path
    ) -> None:
        package.verified_using.append(PackageVerificationCode("0" * 40))
        write_tree(tmp_path, {"a.txt": "a"})
        code = SpdxV3FileCollector(document).collect([FileSetSpec(directory=tmp_path)], package)
        codes = [v for v in package.verified_using if isinstance(v, PackageVerificationCode)]
        assert codes == [PackageVerificationCode(code, [])]
        assert isinstance(package.verified_using[0], Hash)

    def test_contributors_become_person_agents(
        self, document: SpdxDocument, package: Package, tmp_path: Path
    ) -> None:
        write_tree(tmp_path, {"a.txt": "a", "b.txt": "b"})
        info = DefaultFileInfo(contributors=("Alice",), notice="See NOTICE")
        SpdxV3FileCollector(document).collect([FileSetSpec(directory=tmp_path)], package, default_info=info)
        agents = [e for e in document.elements.values() if e.type_name == "Person"]
        assert [a.name for a in agents] == ["Alice"]
        assert all(f.originated_by == [agents[0].spdx_id] for f in document.files)
        assert all(f.attribution_texts == ["See NOTICE"] for f in document.files)

    def test_snippet_license_comment_in_comment(
        self, document: SpdxDocument, package: Package, tmp_path: Path
    ) -> None:
        write_tree(tmp_path, {"a.c": "int x;\n"})
        info = DefaultFileInfo(
            snippets=(SnippetInfo(byte_range="0:5", comment="decl", license_comment="copied"),)
        )
        SpdxV3FileCollector(document).collect([FileSetSpec(directory=tmp_path)], package, default_info=info)
        [snippet] = document.snippets
        assert snippet.comment == "decl; License: copied"
        assert snippet.snippet_from_file == document.files[0].spdx_id
