"""Shared factories for building projects, file trees and dependency graphs.

Used across the collector, license, dependency, document and CLI tests so
that every test starts from the same small, realistic project.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from spdxforge.config import BuildOptions, SchemaGeneration
from spdxforge.core.dependency.graph import DependencyGraph, DependencyNode
from spdxforge.core.licenses.registry import LicenseRegistry
from spdxforge.core.model import v2, v3
from spdxforge.core.project import Coordinate, DeclaredLicense, FileSetSpec, ProjectInfo

CREATED = "2024-05-01T12:00:00Z"
NAMESPACE = "https://example.org/spdx/demo-1.0.0"


def sha1_hex(data: str | bytes) -> str:
    raw = data.encode("utf-8") if isinstance(data, str) else data
    return hashlib.sha1(raw).hexdigest()


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create ``files`` (relative path -> content) under ``root``."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


def make_project(root: Path | None = None, **kwargs: object) -> ProjectInfo:
    """A ProjectInfo for ``org.example:demo:1.0.0`` with sensible defaults.

    When ``root`` is given the whole directory is one file set.
    """
    defaults: dict[str, object] = dict(
        coordinate=Coordinate("demo", "org.example", "1.0.0"),
        supplier="Organization: Example Inc.",
        download_url="https://example.org/demo-1.0.0.tar.gz",
        declared_licenses=[DeclaredLicense(name="Apache-2.0")],
    )
    if root is not None:
        defaults["file_sets"] = [FileSetSpec(directory=root)]
        defaults["root_directory"] = root
    defaults.update(kwargs)
    return ProjectInfo(**defaults)  # type: ignore[arg-type]


def make_options(generation: str = "v2", **kwargs: object) -> BuildOptions:
    return BuildOptions(schema_generation=SchemaGeneration.parse(generation), **kwargs)  # type: ignore[arg-type]


def node(name: str, version: str = "1.0", scope: str | None = "compile", **kwargs: object) -> DependencyNode:
    """A dependency node in the ``org.example`` namespace."""
    namespace = str(kwargs.pop("namespace", "org.example"))
    return DependencyNode(Coordinate(name, namespace, version), scope=scope, **kwargs)  # type: ignore[arg-type]


def make_graph(*children: DependencyNode, root: Coordinate | None = None) -> DependencyGraph:
    """A graph whose root is the demo project with ``children`` below it."""
    root_node = DependencyNode(root or Coordinate("demo", "org.example", "1.0.0"))
    for child in children:
        root_node.add_child(child)
    return DependencyGraph(root_node)


def v2_document() -> v2.SpdxDocument:
    return v2.SpdxDocument(name="demo", namespace=NAMESPACE, created=CREATED, creators=["Tool: test"])


def v3_document() -> v3.SpdxDocument:
    document = v3.SpdxDocument(
        spdx_id=NAMESPACE + "#SPDXRef-DOCUMENT",
        name="demo",
        namespace=NAMESPACE,
        creation_info=v3.CreationInfo(created=CREATED),
    )
    document.creation_info.created_by.append(document.agent("Example Inc."))
    return document


def registry() -> LicenseRegistry:
    return LicenseRegistry.bundled()
