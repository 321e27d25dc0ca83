"""Turn a resolved dependency graph into packages and relationships.

The traversal is written once here; the SPDX 2 and SPDX 3 subclasses only
create packages, external references and relationships in their own model.

Traversal
---------
Depth first from the root.  Every child edge becomes one relationship
between the parent's package and the child's package.  Packages are keyed
by coordinate, so a library version appearing at several graph positions is
materialised once and linked from every parent.  Without transitive mapping
only the root's direct children are visited.

Materialising a dependency
--------------------------
1. If the artifact has a readable sibling SPDX document of the active
   generation: reference it (``create_external_refs``) or copy the described
   package's metadata from it.
2. Otherwise build the package from the node's metadata: naming policy,
   licenses mapped through the license manager (failures degrade to
   NOASSERTION with a document warning), license overwrites, a best-effort
   SHA1 of the artifact file, and the package URL.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from spdxforge.config import SchemaGeneration
from spdxforge.core.collector.base import compute_checksums
from spdxforge.core.dependency.external import (
    ExternalDocument,
    ExternalPackage,
    read_spdx_document,
    sibling_spdx_document,
)
from spdxforge.core.dependency.graph import SCOPES, DependencyGraphLike, DependencyNode
from spdxforge.core.identifiers import package_url
from spdxforge.core.model.licenses import NO_ASSERTION, NOASSERTION, AnyLicenseInfo
from spdxforge.core.project import Coordinate, LicenseOverwrite, OverwriteTarget, Packaging
from spdxforge.exceptions import BuilderStateError, CollectionError

logger = logging.getLogger(__name__)

RELATIONSHIP_COMMENT = "Relationship created based on dependency information"

_URI_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://\S+$")


def is_download_location(text: str) -> bool:
    return bool(text) and bool(_URI_RE.match(text.strip()))


@dataclass
class PackageFields:
    """Schema-neutral attributes of a dependency package."""

    seed: str
    name: str
    version: str = ""
    download_location: str = NOASSERTION
    home_page: str = ""
    supplier: str = ""
    originator: str = ""
    summary: str = ""
    description: str = ""
    comment: str = ""
    source_info: str = ""
    copyright_text: str = NOASSERTION
    license_declared: AnyLicenseInfo = NO_ASSERTION
    license_concluded: AnyLicenseInfo = NO_ASSERTION
    license_comment: str = ""
    package_file_name: str = ""
    primary_purpose: str = ""
    checksums: dict[str, str] = field(default_factory=dict)
    purl: str | None = None


class DependencyMapper(ABC):
    """Map one dependency graph into one document."""

    generation: SchemaGeneration

    def __init__(
        self,
        document: Any,
        license_manager: Any,
        *,
        include_transitive: bool = True,
        use_artifact_id_as_name: bool = False,
        create_external_refs: bool = True,
        generate_purls: bool = True,
        license_overwrites: Iterable[LicenseOverwrite] = (),
    ) -> None:
        self.document = document
        self.license_manager = license_manager
        self.include_transitive = include_transitive
        self.use_artifact_id_as_name = use_artifact_id_as_name
        self.create_external_refs = create_external_refs
        self.generate_purls = generate_purls
        self.license_overwrites = list(license_overwrites)
        self._packages: dict[tuple[str, ...], str] = {}
        self._edges: set[tuple[str, str, str | None, bool]] = set()
        self._expanded: set[tuple[str, ...]] = set()

    # -- Schema hooks ---------------------------------------------------------

    @abstractmethod
    def _create_package(self, fields: PackageFields) -> str:
        """Create a package element and return its id."""

    @abstractmethod
    def _reference_external(
        self, coordinate: Coordinate, external: ExternalDocument, pkg: ExternalPackage
    ) -> str:
        """Reference ``pkg`` inside ``external`` and return the id to link to."""

    @abstractmethod
    def _relate(self, parent_id: str, child_id: str, node: DependencyNode) -> None:
        """Record the dependency edge from ``parent_id`` to ``child_id``."""

    # -- Traversal ------------------------------------------------------------

    @property
    def package_ids(self) -> dict[tuple[str, ...], str]:
        """Coordinate key -> element id of every mapped dependency."""
        return dict(self._packages)

    def map(self, graph: DependencyGraphLike, project_id: str) -> int:
        """Map every dependency of ``graph.root`` below ``project_id``.

        Returns:
            The number of distinct dependency packages mapped.

        Raises:
            BuilderStateError: If a node has no coordinate.
        """
        root = graph.root
        root_coordinate = graph.coordinate(root)
        root_key = root_coordinate.key if root_coordinate is not None else None
        self._visit(graph, root, project_id, root_key or (), root_key)
        return len(self._packages)

    def _visit(
        self,
        graph: DependencyGraphLike,
        node: DependencyNode,
        node_id: str,
        node_key: tuple[str, ...],
        root_key: tuple[str, ...] | None,
    ) -> None:
        if node_key in self._expanded:
            return
        self._expanded.add(node_key)
        for child in graph.children(node):
            coordinate = graph.coordinate(child)
            if coordinate is None or not coordinate.name:
                raise BuilderStateError(f"Dependency node under {node_id} has no resolvable coordinate")
            if coordinate.key == root_key:
                logger.warning("Dependency %s refers back to the project; skipping", coordinate)
                continue
            logger.debug(
                "Dependency %s, scope %s, artifact %s",
                coordinate, child.scope or "[NONE]", child.artifact or "[NONE]",
            )
            child_id = self._package_for(child, coordinate)
            self._link(node_id, child_id, child)
            if self.include_transitive:
                self._visit(graph, child, child_id, coordinate.key, root_key)

    def _package_for(self, node: DependencyNode, coordinate: Coordinate) -> str:
        existing = self._packages.get(coordinate.key)
        if existing is not None:
            logger.debug("Dependency %s already mapped as %s", coordinate, existing)
            return existing
        element_id = self._materialize(node, coordinate)
        self._packages[coordinate.key] = element_id
        return element_id

    def _link(self, parent_id: str, child_id: str, node: DependencyNode) -> None:
        key = (parent_id, child_id, node.scope, node.optional)
        if key in self._edges:
            return
        self._edges.add(key)
        self._relate(parent_id, child_id, node)

    def scope_of(self, node: DependencyNode) -> str | None:
        """The node's scope, or ``None`` (with a warning) when unknown."""
        scope = (node.scope or "").strip().lower()
        if scope in SCOPES:
            return scope
        name = node.coordinate.qualified_name if node.coordinate else "[unknown]"
        self.license_manager.warn(
            f"Could not determine the relationship type for dependency {name} scope {node.scope or '[NONE]'}"
        )
        return None

    # -- Materialising --------------------------------------------------------

    def _materialize(self, node: DependencyNode, coordinate: Coordinate) -> str:
        sibling = sibling_spdx_document(node.artifact, self.generation)
        if sibling is not None:
            logger.debug("Dependency %s has SPDX document %s", coordinate, sibling)
            try:
                external = read_spdx_document(sibling, self.generation)
                pkg = external.find_package(coordinate.name)
            except CollectionError as exc:
                self.license_manager.warn(
                    f"Unable to use SPDX document for dependency {coordinate}, "
                    f"using its metadata instead: {exc}"
                )
            else:
                if self.create_external_refs:
                    return self._reference_external(coordinate, external, pkg)
                return self._create_package(self._fields_from_external(coordinate, external, pkg))
        return self._create_package(self._fields_from_metadata(node, coordinate))

    def _fields_from_metadata(self, node: DependencyNode, coordinate: Coordinate) -> PackageFields:
        name = node.display_name.strip()
        if not name or self.use_artifact_id_as_name:
            name = coordinate.qualified_name
        context = f"dependency {coordinate}"
        original_declared = self.license_manager.map_declared_licenses_or_warn(node.licenses, context)
        declared = self._overwrite(coordinate, OverwriteTarget.DECLARED)
        concluded = self._overwrite(coordinate, OverwriteTarget.CONCLUDED)
        comments = []
        if declared is not None:
            comments.append(f"Declared license has been overwritten, original value: {original_declared}")
        if concluded is not None:
            comments.append(f"Concluded license has been overwritten, original value: {NO_ASSERTION}")

        checksums: dict[str, str] = {}
        if node.artifact is not None:
            try:
                checksums = compute_checksums(node.artifact)
            except CollectionError as exc:
                logger.debug("No checksum for dependency %s: %s", coordinate, exc)
        return PackageFields(
            seed=f"{coordinate.namespace}:{coordinate.name}:{coordinate.version}",
            name=name,
            version=coordinate.version,
            download_location=node.download_url if is_download_location(node.download_url) else NOASSERTION,
            home_page=node.home_page if is_download_location(node.home_page) else "",
            originator=f"Organization: {node.organization}" if node.organization else "",
            summary=node.description,
            description=node.description,
            license_declared=declared if declared is not None else original_declared,
            license_concluded=concluded if concluded is not None else NO_ASSERTION,
            license_comment="\n".join(comments),
            package_file_name=node.artifact.name if node.artifact is not None else "",
            primary_purpose=Packaging.purpose_for(coordinate.packaging),
            checksums=checksums,
            purl=self._purl(coordinate),
        )

    def _fields_from_external(
        self, coordinate: Coordinate, external: ExternalDocument, pkg: ExternalPackage
    ) -> PackageFields:
        context = f"dependency {coordinate} (from {external.path.name})"
        return PackageFields(
            seed=external.namespace + pkg.name,
            name=pkg.name or coordinate.qualified_name,
            version=pkg.version or coordinate.version,
            download_location=pkg.download_location or NOASSERTION,
            home_page=pkg.home_page,
            supplier=pkg.supplier,
            originator=pkg.originator,
            summary=pkg.summary,
            description=pkg.description,
            comment=pkg.comment,
            source_info=pkg.source_info,
            copyright_text=pkg.copyright_text or NOASSERTION,
            license_declared=self.license_manager.parse_or_warn(pkg.license_declared, context),
            license_concluded=self.license_manager.parse_or_warn(pkg.license_concluded, context),
            license_comment=pkg.license_comments,
            package_file_name=pkg.package_file_name,
            primary_purpose=Packaging.purpose_for(coordinate.packaging),
            checksums=dict(pkg.checksums),
            purl=self._purl(coordinate),
        )

    def _purl(self, coordinate: Coordinate) -> str | None:
        return package_url(coordinate) if self.generate_purls else None

    def _overwrite(self, coordinate: Coordinate, target: OverwriteTarget) -> AnyLicenseInfo | None:
        """The overwriting license for ``coordinate`` and ``target``, if any.

        Raises:
            BuilderStateError: If more than one overwrite matches.
        """
        matching = [o for o in self.license_overwrites if o.applies_to(coordinate, target)]
        if not matching:
            return None
        if len(matching) > 1:
            raise BuilderStateError(
                f"Multiple matching license overwrites for {coordinate} ({target.value}): "
                + ", ".join(f"{o.namespace}:{o.name}" for o in matching)
            )
        return self.license_manager.parse_or_warn(
            matching[0].license_string, f"license overwrite of {coordinate}"
        )
