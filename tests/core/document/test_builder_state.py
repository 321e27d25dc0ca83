"""Tests for the builder state machine shared by both schema generations."""

from __future__ import annotations

import copy
from pathlib import Path

import pytest

from spdxforge.core.document.base import BuildStage, DocumentBuilder, creation_timestamp
from spdxforge.core.document.v2 import SpdxV2DocumentBuilder
from spdxforge.core.document.v3 import SpdxV3DocumentBuilder
from spdxforge.core.licenses.registry import LicenseRegistry
from spdxforge.exceptions import BuilderStateError, ConfigurationError, VerificationError

from tests.helpers import CREATED, make_graph, make_options, make_project, node

BUILDERS = [("v2", SpdxV2DocumentBuilder), ("v3", SpdxV3DocumentBuilder)]


def _builder(
    generation: str, cls: type[DocumentBuilder], root: Path, registry: LicenseRegistry
) -> DocumentBuilder:
    return cls(make_project(root), make_options(generation), registry=registry, created=CREATED)


@pytest.mark.parametrize(("generation", "cls"), BUILDERS)
class TestStageOrder:
    """Every stage runs exactly once, in order."""

    def test_full_pipeline(
        self, generation: str, cls: type[DocumentBuilder], project_dir: Path, registry: LicenseRegistry
    ) -> None:
        builder = _builder(generation, cls, project_dir, registry)
        assert builder.stage is BuildStage.CREATED
        builder.initialize_project_package()
        assert builder.stage is BuildStage.PROJECT_PACKAGE_INITIALIZED
        builder.collect_files()
        assert builder.stage is BuildStage.FILES_COLLECTED
        builder.resolve_licenses()
        assert builder.stage is BuildStage.LICENSES_RESOLVED
        assert builder.map_dependencies(make_graph(node("a"))) == 1
        assert builder.stage is BuildStage.DEPENDENCIES_MAPPED
        builder.verify()
        assert builder.stage is BuildStage.VERIFIED
        result = builder.finalize()
        assert builder.is_finalized
        assert result.document is builder.document
        assert result.dependency_count == 1

    def test_map_before_collect_leaves_document_untouched(
        self, generation: str, cls: type[DocumentBuilder], project_dir: Path, registry: LicenseRegistry
    ) -> None:
        builder = _builder(generation, cls, project_dir, registry)
        builder.initialize_project_package()
        before = copy.deepcopy(builder.document.to_dict())
        message = "Cannot map dependencies in stage PROJECT_PACKAGE_INITIALIZED"
        with pytest.raises(BuilderStateError, match=message):
            builder.map_dependencies(make_graph(node("a")))
        assert builder.document.to_dict() == before
        assert builder.stage is BuildStage.PROJECT_PACKAGE_INITIALIZED

    def test_collect_before_package(
        self, generation: str, cls: type[DocumentBuilder], project_dir: Path, registry: LicenseRegistry
    ) -> None:
        builder = _builder(generation, cls, project_dir, registry)
        with pytest.raises(BuilderStateError):
            builder.collect_files()
        assert builder.package is None
        assert list(builder.document.files) == []

    def test_stage_cannot_repeat(
        self, generation: str, cls: type[DocumentBuilder], project_dir: Path, registry: LicenseRegistry
    ) -> None:
        builder = _builder(generation, cls, project_dir, registry)
        builder.initialize_project_package()
        with pytest.raises(BuilderStateError):
            builder.initialize_project_package()

    def test_finalized_builder_is_spent(
        self, generation: str, cls: type[DocumentBuilder], project_dir: Path, registry: LicenseRegistry
    ) -> None:
        builder = _builder(generation, cls, project_dir, registry)
        builder.build()
        with pytest.raises(BuilderStateError, match="FINALIZED"):
            builder.finalize()
        with pytest.raises(BuilderStateError):
            builder.build()

    def test_failed_verification_can_be_retried(
        self, generation: str, cls: type[DocumentBuilder], project_dir: Path, registry: LicenseRegistry
    ) -> None:
        builder = _builder(generation, cls, project_dir, registry)
        builder.initialize_project_package()
        builder.collect_files()
        builder.resolve_licenses()
        builder.map_dependencies()
        name = builder.document.name
        builder.document.name = ""
        with pytest.raises(VerificationError) as excinfo:
            builder.verify()
        assert "Document name is missing" in excinfo.value.violations
        assert builder.stage is BuildStage.DEPENDENCIES_MAPPED
        builder.document.name = name
        builder.verify()
        assert builder.stage is BuildStage.VERIFIED

    def test_no_graph_maps_nothing(
        self, generation: str, cls: type[DocumentBuilder], project_dir: Path, registry: LicenseRegistry
    ) -> None:
        result = _builder(generation, cls, project_dir, registry).build()
        assert result.dependency_count == 0
        assert result.document.dependency_edges() == []


class TestConstruction:
    def test_generation_mismatch(self, registry: LicenseRegistry) -> None:
        with pytest.raises(ConfigurationError, match="builds SPDX v2 documents"):
            SpdxV2DocumentBuilder(make_project(), make_options("v3"), registry=registry)

    def test_default_options_follow_builder(self, registry: LicenseRegistry) -> None:
        builder = SpdxV3DocumentBuilder(make_project(), registry=registry, created=CREATED)
        assert builder.options.schema_generation.value == "v3"

    def test_creation_timestamp_format(self) -> None:
        stamp = creation_timestamp()
        assert len(stamp) == 20 and stamp.endswith("Z") and stamp[10] == "T"

    def test_invalid_creator_is_skipped(self, registry: LicenseRegistry) -> None:
        project = make_project(creators=["Person: Jane Doe", "just a name"])
        builder = SpdxV2DocumentBuilder(project, make_options(), registry=registry, created=CREATED)
        assert "Person: Jane Doe" in builder.document.creators
        assert "just a name" not in builder.document.creators
        assert any("just a name" in w for w in builder.document.warnings)
