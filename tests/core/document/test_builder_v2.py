"""Tests for SpdxV2DocumentBuilder: the project package, creators and license roll-up."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from spdxforge import TOOL_CREATOR
from spdxforge.core.document.v2 import SpdxV2DocumentBuilder, actor
from spdxforge.core.licenses.registry import LicenseRegistry
from spdxforge.core.model.licenses import NO_ASSERTION, ListedLicense
from spdxforge.core.model.v2 import Checksum, ExternalRef
from spdxforge.core.project import (
    Annotation,
    ChecksumValue,
    DeclaredLicense,
    ExternalReference,
    NonStandardLicense,
    ProjectInfo,
)
from spdxforge.exceptions import LicenseMappingError

from tests.helpers import CREATED, make_options, make_project, sha1_hex


def _build(project: ProjectInfo, registry: LicenseRegistry, **options: object) -> SpdxV2DocumentBuilder:
    builder = SpdxV2DocumentBuilder(project, make_options("v2", **options), registry=registry, created=CREATED)
    builder.build()
    return builder


class TestActor:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Example Inc.", "Organization: Example Inc."),
            ("Person: Jane", "Person: Jane"),
            ("NOASSERTION", "NOASSERTION"),
            ("  ", ""),
        ],
    )
    def test_actor(self, text: str, expected: str) -> None:
        assert actor(text) == expected


class TestDocument:
    """Document-level creation information."""

    def test_creation_info(self, project_dir: Path, registry: LicenseRegistry) -> None:
        document = _build(make_project(project_dir), registry).document
        assert document.name == "org.example:demo"
        assert document.namespace == "http://spdx.org/spdxpackages/org.example_demo-1.0.0"
        assert document.created == CREATED
        assert document.creators == [TOOL_CREATOR]
        assert document.license_list_version == registry.list_version

    def test_explicit_namespace_and_comments(self, project_dir: Path, registry: LicenseRegistry) -> None:
        project = make_project(
            project_dir, document_namespace="https://example.org/sbom/demo", document_comment="doc",
            creator_comment="made in CI", creators=["Organization: Example Inc."],
        )
        document = _build(project, registry).document
        assert document.namespace == "https://example.org/sbom/demo"
        assert document.comment == "doc"
        assert document.creator_comment == "made in CI"
        assert document.creators == [TOOL_CREATOR, "Organization: Example Inc."]

    def test_annotations(self, project_dir: Path, registry: LicenseRegistry) -> None:
        note = Annotation("Person: Jane", CREATED, "reviewed", "REVIEW")
        project = make_project(project_dir, document_annotations=[note], package_annotations=[note])
        builder = _build(project, registry)
        assert [a.comment for a in builder.document.annotations] == ["reviewed"]
        assert builder.package.annotations[0].annotation_type == "REVIEW"


class TestProjectPackage:
    """The described project package."""

    def test_fields(self, project_dir: Path, registry: LicenseRegistry) -> None:
        project = make_project(
            project_dir, description="A demo", short_description="Demo", home_page="https://example.org/demo",
            originator="Jane", copyright_text="(c) Example",
        )
        builder = _build(project, registry)
        pkg = builder.package
        assert builder.document.described_package() is pkg
        assert pkg.name == "org.example:demo"
        assert pkg.version == "1.0.0"
        assert pkg.supplier == "Organization: Example Inc."
        assert pkg.originator == "Organization: Jane"
        assert pkg.download_location == "https://example.org/demo-1.0.0.tar.gz"
        assert pkg.home_page == "https://example.org/demo"
        assert (pkg.summary, pkg.description) == ("Demo", "A demo")
        assert pkg.copyright_text == "(c) Example"
        assert pkg.primary_purpose == "LIBRARY"
        assert pkg.files_analyzed
        assert pkg.external_refs[0] == ExternalRef("PACKAGE-MANAGER", "purl", "pkg:maven/org.example/demo@1.0.0")

    def test_display_name_and_bad_download_url(self, project_dir: Path, registry: LicenseRegistry) -> None:
        pkg = _build(make_project(project_dir, name="Demo", download_url="ftp?"), registry).package
        assert pkg.name == "Demo"
        assert pkg.download_location == "NOASSERTION"

    def test_no_purl(self, project_dir: Path, registry: LicenseRegistry) -> None:
        assert _build(make_project(project_dir), registry, generate_purls=False).package.external_refs == []

    def test_declared_external_references(self, project_dir: Path, registry: LicenseRegistry) -> None:
        ref = ExternalReference("SECURITY", "cpe23Type", "cpe:2.3:a:example:demo:1.0.0:*:*:*:*:*:*:*")
        pkg = _build(make_project(project_dir, external_references=[ref]), registry).package
        assert [r.reference_type for r in pkg.external_refs] == ["purl", "cpe23Type"]

    def test_declared_checksums(self, project_dir: Path, registry: LicenseRegistry) -> None:
        checksums = [ChecksumValue("sha-256", "AB" * 32), ChecksumValue("crc32", "1234")]
        pkg = _build(make_project(project_dir, checksums=checksums), registry).package
        assert pkg.checksums == [Checksum("SHA256", "ab" * 32)]

    def test_archive_checksum(self, project_dir: Path, registry: LicenseRegistry, tmp_path: Path) -> None:
        archive = tmp_path / "demo-1.0.0.jar"
        archive.write_bytes(b"archive")
        pkg = _build(make_project(project_dir, package_archive=archive), registry).package
        assert pkg.checksums == [Checksum("SHA1", sha1_hex(b"archive"))]
        assert pkg.package_file_name == "demo-1.0.0.jar"


class TestLicenses:
    """Project and file license resolution."""

    def test_declared_and_concluded(self, project_dir: Path, registry: LicenseRegistry) -> None:
        pkg = _build(make_project(project_dir), registry).package
        assert pkg.license_declared == ListedLicense("Apache-2.0")
        assert pkg.license_concluded == ListedLicense("Apache-2.0")

    def test_explicit_concluded(self, project_dir: Path, registry: LicenseRegistry) -> None:
        pkg = _build(make_project(project_dir, license_concluded="MIT"), registry).package
        assert pkg.license_declared == ListedLicense("Apache-2.0")
        assert pkg.license_concluded == ListedLicense("MIT")

    def test_no_declared_licenses(self, project_dir: Path, registry: LicenseRegistry) -> None:
        pkg = _build(make_project(project_dir, declared_licenses=[]), registry).package
        assert pkg.license_declared is NO_ASSERTION

    def test_conjunctive_combination(self, project_dir: Path, registry: LicenseRegistry) -> None:
        licenses = [DeclaredLicense(name="MIT"), DeclaredLicense(name="ISC")]
        pkg = _build(make_project(project_dir, declared_licenses=licenses), registry,
                     license_combination="AND").package
        assert pkg.license_declared.render() == "(MIT AND ISC)"

    def test_non_standard_license(self, project_dir: Path, registry: LicenseRegistry) -> None:
        project = make_project(
            project_dir,
            non_standard_licenses=[NonStandardLicense("LicenseRef-Mine", "All mine.", name="Mine")],
            license_declared="LicenseRef-Mine OR MIT",
        )
        builder = _build(project, registry)
        assert builder.package.license_declared.render() == "(LicenseRef-Mine OR MIT)"
        assert [lic.license_id for lic in builder.document.extracted_licenses] == ["LicenseRef-Mine"]

    def test_invalid_project_license_raises(self, project_dir: Path, registry: LicenseRegistry) -> None:
        builder = SpdxV2DocumentBuilder(
            make_project(project_dir, license_declared="MIT AND ("), make_options(), registry=registry
        )
        builder.initialize_project_package()
        builder.collect_files()
        with pytest.raises(LicenseMappingError):
            builder.resolve_licenses()

    def test_license_comment(self, project_dir: Path, registry: LicenseRegistry) -> None:
        pkg = _build(make_project(project_dir, license_comment="see LICENSE"), registry).package
        assert pkg.license_comments == "see LICENSE"

    def test_license_info_from_files(self, project_dir: Path, registry: LicenseRegistry) -> None:
        pkg = _build(make_project(project_dir), registry).package
        assert pkg.license_info_from_files == [ListedLicense("Apache-2.0")]


class TestFiles:
    def test_output_file_excluded_from_verification_code(
        self, project_dir: Path, registry: LicenseRegistry
    ) -> None:
        (project_dir / "demo.spdx.json").write_text("{}", encoding="utf-8")
        builder = SpdxV2DocumentBuilder(make_project(project_dir), make_options(), registry=registry,
                                        created=CREATED)
        result = builder.build(exclude_paths=("demo.spdx.json",))
        readme = sha1_hex((project_dir / "README.md").read_bytes())
        main = sha1_hex((project_dir / "src" / "Main.src").read_bytes())
        expected = hashlib.sha1("".join(sorted([readme, main])).encode("ascii")).hexdigest()
        assert result.verification_code == expected
        assert builder.package.verification_code.excluded_files == ["demo.spdx.json"]
