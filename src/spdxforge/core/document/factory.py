"""Select the document builder for a schema generation and run it.

This is the single place where the schema generation is looked at; every
component below it is fixed to one generation at construction time.
"""

from __future__ import annotations

from spdxforge.config import BuildOptions, SchemaGeneration
from spdxforge.core.dependency.graph import DependencyGraphLike
from spdxforge.core.document.base import BuildResult, DocumentBuilder
from spdxforge.core.document.v2 import SpdxV2DocumentBuilder
from spdxforge.core.document.v3 import SpdxV3DocumentBuilder
from spdxforge.core.licenses.registry import LicenseRegistry
from spdxforge.core.project import ProjectInfo

BUILDERS: dict[SchemaGeneration, type[DocumentBuilder]] = {
    SchemaGeneration.V2: SpdxV2DocumentBuilder,
    SchemaGeneration.V3: SpdxV3DocumentBuilder,
}


def create_document_builder(
    project: ProjectInfo,
    options: BuildOptions | None = None,
    registry: LicenseRegistry | None = None,
    created: str | None = None,
) -> DocumentBuilder:
    """A fresh builder for ``options.schema_generation``."""
    options = options or BuildOptions()
    return BUILDERS[options.schema_generation](project, options, registry=registry, created=created)


def assemble_document(
    project: ProjectInfo,
    graph: DependencyGraphLike | None = None,
    options: BuildOptions | None = None,
    *,
    registry: LicenseRegistry | None = None,
    exclude_paths: tuple[str, ...] = (),
    created: str | None = None,
) -> BuildResult:
    """Run the whole pipeline and return the verified document.

    Raises:
        CollectionError: If a file cannot be read (and errors are not
            skipped).
        LicenseMappingError: If the project's own license metadata is invalid.
        BuilderStateError: If the dependency graph is structurally invalid.
        VerificationError: If the assembled document fails its self-checks.
    """
    builder = create_document_builder(project, options, registry, created)
    return builder.build(graph, exclude_paths)
