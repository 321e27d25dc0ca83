"""Dependency mapper for SPDX 2.3 documents.

SPDX 2 records a dependency with the dependency as the subject:
``<dependency> RUNTIME_DEPENDENCY_OF <parent>``.
"""

from __future__ import annotations

from typing import Any

from spdxforge import TOOL_CREATOR
from spdxforge.config import SchemaGeneration
from spdxforge.core.dependency.base import RELATIONSHIP_COMMENT, DependencyMapper, PackageFields
from spdxforge.core.dependency.external import ExternalDocument, ExternalPackage
from spdxforge.core.dependency.graph import DependencyNode
from spdxforge.core.ids import DOCUMENT_REF_PREFIX, fix_external_ref_id
from spdxforge.core.model.v2 import Annotation, Checksum, ExternalDocumentRef, ExternalRef, SpdxPackage
from spdxforge.core.project import Coordinate

SCOPE_RELATIONSHIPS: dict[str, str] = {
    "compile": "DEPENDENCY_OF",
    "runtime": "RUNTIME_DEPENDENCY_OF",
    "test": "TEST_DEPENDENCY_OF",
    "provided": "PROVIDED_DEPENDENCY_OF",
    "system": "DEPENDENCY_OF",
}


class SpdxV2DependencyMapper(DependencyMapper):
    generation = SchemaGeneration.V2

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._external_refs: dict[str, ExternalDocumentRef] = {}

    def relationship_type(self, node: DependencyNode) -> str:
        scope = self.scope_of(node)
        if scope is None:
            return "OTHER"
        if node.optional:
            return "OPTIONAL_DEPENDENCY_OF"
        return SCOPE_RELATIONSHIPS[scope]

    def _relate(self, parent_id: str, child_id: str, node: DependencyNode) -> None:
        self.document.add_relationship(
            child_id, self.relationship_type(node), parent_id, RELATIONSHIP_COMMENT
        )

    def _create_package(self, fields: PackageFields) -> str:
        refs: list[ExternalRef] = []
        if fields.purl:
            refs.append(ExternalRef("PACKAGE-MANAGER", "purl", fields.purl))
        pkg = SpdxPackage(
            spdx_id=self.document.new_id(fields.seed),
            name=fields.name,
            version=fields.version,
            supplier=fields.supplier,
            originator=fields.originator,
            download_location=fields.download_location,
            files_analyzed=False,
            checksums=[Checksum(a, v) for a, v in fields.checksums.items()],
            home_page=fields.home_page,
            source_info=fields.source_info,
            license_concluded=fields.license_concluded,
            license_declared=fields.license_declared,
            license_comments=fields.license_comment,
            copyright_text=fields.copyright_text,
            summary=fields.summary,
            description=fields.description,
            comment=fields.comment,
            primary_purpose=fields.primary_purpose,
            package_file_name=fields.package_file_name,
            external_refs=refs,
        )
        self.document.packages.append(pkg)
        return pkg.spdx_id

    def _reference_external(
        self, coordinate: Coordinate, external: ExternalDocument, pkg: ExternalPackage
    ) -> str:
        ref = self._external_refs.get(external.namespace)
        if ref is None:
            full_id = f"{coordinate.namespace}{coordinate.name}{coordinate.version}"
            ref_id = DOCUMENT_REF_PREFIX + fix_external_ref_id(full_id)
            taken = {r.ref_id for r in self.document.external_document_refs}
            base, counter = ref_id, 0
            while ref_id in taken:
                counter += 1
                ref_id = f"{base}-{counter}"
            ref = ExternalDocumentRef(ref_id, external.namespace, Checksum("SHA1", external.sha1))
            self.document.external_document_refs.append(ref)
            self.document.annotations.append(Annotation(
                annotator=TOOL_CREATOR,
                date=self.document.created,
                annotation_type="OTHER",
                comment=f"External document ref '{ref_id}' created for artifact {full_id}",
            ))
            self._external_refs[external.namespace] = ref
        return f"{ref.ref_id}:{pkg.spdx_id}"

