"""Dependency mapper for SPDX 3.0.1 documents.

SPDX 3 records a dependency with the parent as the subject, as a
``LifecycleScopedRelationship``: ``<parent> dependsOn <dependency>`` with
scope ``runtime``.
"""

from __future__ import annotations

from typing import Any

from spdxforge import TOOL_CREATOR
from spdxforge.config import SchemaGeneration
from spdxforge.core.dependency.base import RELATIONSHIP_COMMENT, DependencyMapper, PackageFields
from spdxforge.core.dependency.external import ExternalDocument, ExternalPackage
from spdxforge.core.dependency.graph import DependencyNode
from spdxforge.core.model.v3 import Annotation, ExternalIdentifier, ExternalMap, Hash, Package
from spdxforge.core.project import Coordinate

# scope -> (relationship type, lifecycle scope)
SCOPE_RELATIONSHIPS: dict[str, tuple[str, str]] = {
    "compile": ("dependsOn", "runtime"),
    "runtime": ("dependsOn", "runtime"),
    "system": ("dependsOn", "runtime"),
    "test": ("dependsOn", "test"),
    "provided": ("hasProvidedDependency", "build"),
}


def actor_agent(document: Any, actor: str) -> str:
    """Agent id for an SPDX 2 style actor string (``Organization: ACME``)."""
    kind, sep, name = actor.partition(":")
    if not sep or kind.strip() not in ("Person", "Organization", "Tool"):
        return document.agent(actor.strip())
    return document.agent(name.strip(), kind.strip())


class SpdxV3DependencyMapper(DependencyMapper):
    generation = SchemaGeneration.V3

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._imported: set[str] = set()

    def relationship_type(self, node: DependencyNode) -> tuple[str, str]:
        """``(relationship type, lifecycle scope)`` for ``node``."""
        scope = self.scope_of(node)
        if scope is None:
            return "other", "other"
        _, lifecycle = SCOPE_RELATIONSHIPS[scope]
        if node.optional:
            return "hasOptionalDependency", lifecycle
        return SCOPE_RELATIONSHIPS[scope]

    def _relate(self, parent_id: str, child_id: str, node: DependencyNode) -> None:
        relationship_type, scope = self.relationship_type(node)
        rel = self.document.relate(
            parent_id, relationship_type, [child_id], scope=scope, comment=RELATIONSHIP_COMMENT
        )
        rel.completeness = "complete"

    def _create_package(self, fields: PackageFields) -> str:
        identifiers: list[ExternalIdentifier] = []
        if fields.purl:
            identifiers.append(ExternalIdentifier("packageUrl", fields.purl))
        pkg = Package(
            spdx_id=self.document.new_id(fields.seed),
            name=fields.name,
            comment=_join(fields.comment, fields.license_comment),
            summary=fields.summary,
            description=fields.description,
            verified_using=[Hash(a, v) for a, v in fields.checksums.items()],
            external_identifiers=identifiers,
            version=fields.version,
            download_location=fields.download_location,
            home_page=fields.home_page,
            source_info=fields.source_info,
            copyright_text=fields.copyright_text,
            primary_purpose=fields.primary_purpose,
            package_url=fields.purl or "",
            supplied_by=actor_agent(self.document, fields.supplier) if fields.supplier else "",
            originated_by=[actor_agent(self.document, fields.originator)] if fields.originator else [],
        )
        self.document.add(pkg)
        self.license_manager.set_declared(pkg, fields.license_declared)
        self.license_manager.set_concluded(pkg, fields.license_concluded)
        return pkg.spdx_id

    def _reference_external(
        self, coordinate: Coordinate, external: ExternalDocument, pkg: ExternalPackage
    ) -> str:
        if pkg.spdx_id not in self._imported:
            self.document.imports.append(ExternalMap(
                external_spdx_id=pkg.spdx_id,
                verified_using=(Hash("SHA1", external.sha1),),
                location_hint=external.path.resolve().as_uri(),
            ))
            self.document.add(Annotation(
                spdx_id=self.document.new_id(f"import:{pkg.spdx_id}"),
                annotation_type="other",
                subject=self.document.spdx_id,
                statement=(
                    f"External map for '{pkg.spdx_id}' created by {TOOL_CREATOR} "
                    f"for artifact {coordinate}"
                ),
            ))
            self._imported.add(pkg.spdx_id)
        return pkg.spdx_id


def _join(*parts: str) -> str:
    return "\n".join(p for p in parts if p)
