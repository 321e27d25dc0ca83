"""Document builders: the staged SBOM assembly pipeline for both schema generations."""

from spdxforge.core.document.base import BuildResult, BuildStage, DocumentBuilder, creation_timestamp
from spdxforge.core.document.factory import assemble_document, create_document_builder
from spdxforge.core.document.v2 import SpdxV2DocumentBuilder
from spdxforge.core.document.v3 import SpdxV3DocumentBuilder

__all__ = [
    "BuildResult",
    "BuildStage",
    "DocumentBuilder",
    "SpdxV2DocumentBuilder",
    "SpdxV3DocumentBuilder",
    "assemble_document",
    "create_document_builder",
    "creation_timestamp",
]
