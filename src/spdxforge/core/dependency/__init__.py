"""Dependency graph mapping for both SPDX schema generations."""

from spdxforge.core.dependency.base import DependencyMapper, PackageFields
from spdxforge.core.dependency.external import (
    ExternalDocument,
    ExternalPackage,
    read_spdx_document,
    sibling_spdx_document,
)
from spdxforge.core.dependency.graph import SCOPES, DependencyGraph, DependencyGraphLike, DependencyNode
from spdxforge.core.dependency.v2 import SpdxV2DependencyMapper
from spdxforge.core.dependency.v3 import SpdxV3DependencyMapper

__all__ = [
    "DependencyGraph",
    "DependencyGraphLike",
    "DependencyMapper",
    "DependencyNode",
    "ExternalDocument",
    "ExternalPackage",
    "PackageFields",
    "SCOPES",
    "SpdxV2DependencyMapper",
    "SpdxV3DependencyMapper",
    "read_spdx_document",
    "sibling_spdx_document",
]
