"""Resolved dependency graph handed over by the build tool.

The mapper treats the graph as an opaque read-only structure: it only asks
for the children of a node and for a node's coordinate and metadata.  Any
object implementing ``DependencyGraphLike`` works; ``DependencyGraph`` is
the concrete tree built from a project descriptor.

The same coordinate may appear at several positions (a shared library
version pulled in by two parents).  The graph does not merge such nodes;
deduplication is the mapper's job.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from spdxforge.core.project import Coordinate, DeclaredLicense

SCOPES = ("compile", "runtime", "test", "provided", "system")


# ---------------------------------------------------------------------------
# DependencyNode
# ---------------------------------------------------------------------------


@dataclass
class DependencyNode:
    """One position in the dependency graph.

    ``coordinate`` may be ``None`` for a node the build tool could not
    resolve; mapping such a node is a builder-state violation.  ``artifact``
    is the resolved local artifact file, when there is one.
    """

    coordinate: Coordinate | None
    scope: str | None = None
    optional: bool = False
    artifact: Path | None = None
    licenses: list[DeclaredLicense] = field(default_factory=list)
    display_name: str = ""
    description: str = ""
    home_page: str = ""
    organization: str = ""
    download_url: str = ""
    contributors: list[str] = field(default_factory=list)
    children: list[DependencyNode] = field(default_factory=list)

    def add_child(self, child: DependencyNode) -> DependencyNode:
        self.children.append(child)
        return child


class DependencyGraphLike(Protocol):
    """What the mapper needs from a library-supplied graph."""

    @property
    def root(self) -> DependencyNode: ...

    def children(self, node: DependencyNode) -> list[DependencyNode]: ...

    def coordinate(self, node: DependencyNode) -> Coordinate | None: ...


# ---------------------------------------------------------------------------
# DependencyGraph
# ---------------------------------------------------------------------------


class DependencyGraph:
    """A dependency tree rooted at the project node.

    Usage::

        root = DependencyNode(Coordinate("app", "org.example", "1.0"))
        graph = DependencyGraph(root)
        a = root.add_child(DependencyNode(Coordinate("a", "org.example", "2.1"), scope="compile"))
    """

    def __init__(self, root: DependencyNode) -> None:
        self._root = root

    @property
    def root(self) -> DependencyNode:
        return self._root

    def children(self, node: DependencyNode) -> list[DependencyNode]:
        return list(node.children)

    def coordinate(self, node: DependencyNode) -> Coordinate | None:
        return node.coordinate

    def walk(self) -> Iterator[tuple[int, DependencyNode]]:
        """Yield ``(depth, node)`` depth first, the root at depth 0."""
        stack: list[tuple[int, DependencyNode]] = [(0, self._root)]
        while stack:
            depth, node = stack.pop()
            yield depth, node
            stack.extend((depth + 1, child) for child in reversed(node.children))

    def distinct_coordinates(self, include_transitive: bool = True) -> set[tuple[str, ...]]:
        """Coordinate keys reachable from the root, excluding the root itself."""
        keys: set[tuple[str, ...]] = set()
        for depth, node in self.walk():
            if depth == 0 or (depth > 1 and not include_transitive):
                continue
            if node.coordinate is not None:
                keys.add(node.coordinate.key)
        return keys

    @classmethod
    def empty(cls, coordinate: Coordinate) -> DependencyGraph:
        return cls(DependencyNode(coordinate))
