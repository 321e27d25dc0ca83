"""Tests for project metadata value types."""

from __future__ import annotations

from pathlib import Path

import pytest

from spdxforge.core.project import (
    Annotation,
    Coordinate,
    FileSetSpec,
    LicenseOverwrite,
    OverwriteTarget,
    Packaging,
    SnippetInfo,
    parse_range,
)
from spdxforge.exceptions import CollectionError, ConfigurationError

from tests.helpers import make_project


class TestCoordinate:
    def test_str_and_qualified_name(self) -> None:
        c = Coordinate("demo", "org.example", "1.0.0")
        assert str(c) == "org.example:demo:1.0.0"
        assert c.qualified_name == "org.example:demo"
        assert Coordinate("demo").qualified_name == "demo"

    def test_key_distinguishes_packaging(self) -> None:
        assert Coordinate("a", "g", "1").key != Coordinate("a", "g", "1", packaging="war").key


class TestPackaging:
    @pytest.mark.parametrize(
        ("packaging", "purpose"),
        [("pom", "INSTALL"), ("jar", "LIBRARY"), ("WAR", "APPLICATION"), ("rar", "OTHER"), ("zip", "LIBRARY"),
         (None, "LIBRARY")],
    )
    def test_purpose_for(self, packaging: str | None, purpose: str) -> None:
        assert Packaging.purpose_for(packaging) == purpose


class TestLicenseOverwrite:
    """Matching overwrites against coordinates."""

    def test_matches_name_and_namespace(self) -> None:
        overwrite = LicenseOverwrite("g", "a", "MIT")
        assert overwrite.applies_to(Coordinate("a", "g", "1"), OverwriteTarget.DECLARED)
        assert overwrite.applies_to(Coordinate("a", "g", "1"), OverwriteTarget.CONCLUDED)
        assert not overwrite.applies_to(Coordinate("b", "g", "1"), OverwriteTarget.DECLARED)

    def test_target_restricts(self) -> None:
        overwrite = LicenseOverwrite("g", "a", "MIT", OverwriteTarget.CONCLUDED)
        assert not overwrite.applies_to(Coordinate("a", "g", "1"), OverwriteTarget.DECLARED)

    def test_both_is_not_a_query(self) -> None:
        with pytest.raises(ValueError):
            LicenseOverwrite("g", "a", "MIT").applies_to(Coordinate("a", "g"), OverwriteTarget.BOTH)


class TestRanges:
    @pytest.mark.parametrize(("text", "expected"), [("0:10", (0, 10)), (" 3 : 3 ", (3, 3))])
    def test_valid(self, text: str, expected: tuple[int, int]) -> None:
        assert parse_range(text, "byte", 0) == expected

    @pytest.mark.parametrize("text", ["", "10", "5:2", "a:b", "-1:3"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(CollectionError):
            parse_range(text, "byte", 0)

    def test_line_ranges_start_at_one(self) -> None:
        assert SnippetInfo(byte_range="0:1").line_bounds() is None
        with pytest.raises(CollectionError, match="Invalid snippet line range"):
            SnippetInfo(byte_range="0:1", line_range="0:2").line_bounds()


class TestMisc:
    def test_annotation_type_checked(self) -> None:
        with pytest.raises(ConfigurationError):
            Annotation("Tool: x", "2024-01-01T00:00:00Z", "hi", annotation_type="PRAISE")

    def test_default_excludes(self, tmp_path: Path) -> None:
        assert "**/.git/**" in FileSetSpec(tmp_path).effective_excludes
        spec = FileSetSpec(tmp_path, excludes=("*.log",), use_default_excludes=False)
        assert spec.effective_excludes == ("*.log",)

    def test_project_defaults(self) -> None:
        project = make_project()
        assert project.packaging == "jar"
        assert project.package_name == "org.example:demo"
        assert project.default_namespace() == "http://spdx.org/spdxpackages/org.example_demo-1.0.0"
