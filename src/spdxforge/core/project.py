"""Project metadata supplied by the build-tool collaborator.

These dataclasses are the engine's input vocabulary: the project's
coordinate and descriptive metadata, its declared licenses, user-supplied
non-standard licenses and license overwrites, annotations, external
references, file-set specifications and the default and path-specific file
information applied to collected files.

They carry plain strings only.  Turning a license string into license
information happens in the license manager, against the document being
built, so that ``LicenseRef-`` identifiers resolve to that document.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from spdxforge.exceptions import CollectionError, ConfigurationError

NOASSERTION = "NOASSERTION"
UNSPECIFIED = "UNSPECIFIED"

_RANGE_RE = re.compile(r"^\s*(\d+)\s*:\s*(\d+)\s*$")


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Coordinate:
    """Identity of a project or dependency in its package ecosystem.

    ``namespace`` is the group (Maven ``groupId``, npm scope, ...), ``name``
    the artifact name.  Two coordinates with equal ``key`` denote the same
    package, wherever they appear in a dependency graph.
    """

    name: str
    namespace: str = ""
    version: str = ""
    purl_type: str = "maven"
    packaging: str = ""
    classifier: str = ""
    qualifiers: tuple[tuple[str, str], ...] = ()

    @property
    def key(self) -> tuple[str, str, str, str, str, str]:
        return (self.purl_type, self.namespace, self.name, self.version, self.packaging, self.classifier)

    @property
    def qualified_name(self) -> str:
        """``namespace:name``, or ``name`` without a namespace."""
        return f"{self.namespace}:{self.name}" if self.namespace else self.name

    def __str__(self) -> str:
        parts = [self.namespace, self.name, self.version]
        return ":".join(p for p in parts if p)


class Packaging(Enum):
    """Build packaging types and the primary purpose they imply."""

    POM = ("pom", "INSTALL")
    EJB = ("ejb", "LIBRARY")
    JAR = ("jar", "LIBRARY")
    MAVEN_PLUGIN = ("maven-plugin", "LIBRARY")
    WAR = ("war", "APPLICATION")
    EAR = ("ear", "APPLICATION")
    RAR = ("rar", "OTHER")

    @property
    def purpose(self) -> str:
        return self.value[1]

    @classmethod
    def purpose_for(cls, packaging: str | None) -> str:
        """Primary purpose for a packaging name; unknown packaging is a library."""
        lowered = (packaging or "").strip().lower()
        for member in cls:
            if member.value[0] == lowered:
                return member.purpose
        return "LIBRARY"


# ---------------------------------------------------------------------------
# Licenses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DeclaredLicense:
    """One license entry as declared in the build descriptor."""

    name: str = ""
    url: str = ""
    comments: str = ""
    text: str = ""


@dataclass(frozen=True)
class NonStandardLicense:
    """A license the user defines with its full text, by ``LicenseRef-`` id."""

    license_id: str
    extracted_text: str
    name: str = ""
    comment: str = ""
    cross_references: tuple[str, ...] = ()


class OverwriteTarget(Enum):
    DECLARED = "declared"
    CONCLUDED = "concluded"
    BOTH = "both"


@dataclass(frozen=True)
class LicenseOverwrite:
    """Replace the declared and/or concluded license of matching dependencies."""

    namespace: str
    name: str
    license_string: str
    target: OverwriteTarget = OverwriteTarget.BOTH
    version: str | None = None

    def applies_to(self, coordinate: Coordinate, target: OverwriteTarget) -> bool:
        if target is OverwriteTarget.BOTH:
            raise ValueError("applies_to expects the declared or concluded target")
        if coordinate.namespace != self.namespace or coordinate.name != self.name:
            return False
        if self.version is not None and coordinate.version != self.version:
            return False
        return self.target in (OverwriteTarget.BOTH, target)


# ---------------------------------------------------------------------------
# Annotations, references, checksums
# ---------------------------------------------------------------------------

ANNOTATION_TYPES = ("REVIEW", "OTHER")


@dataclass(frozen=True)
class Annotation:
    annotator: str
    date: str
    comment: str
    annotation_type: str = "OTHER"

    def __post_init__(self) -> None:
        if self.annotation_type.upper() not in ANNOTATION_TYPES:
            raise ConfigurationError(f"Invalid annotation type {self.annotation_type!r}")


EXTERNAL_REF_CATEGORIES = ("SECURITY", "PACKAGE-MANAGER", "PERSISTENT-ID", "OTHER")


@dataclass(frozen=True)
class ExternalReference:
    """A user-declared external reference (category, type, locator)."""

    category: str
    reference_type: str
    locator: str
    comment: str = ""


@dataclass(frozen=True)
class ChecksumValue:
    algorithm: str
    value: str


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def parse_range(text: str, what: str, minimum: int) -> tuple[int, int]:
    """Parse ``"start:end"`` into a closed interval.

    Raises:
        CollectionError: If the text is not a valid interval.
    """
    match = _RANGE_RE.match(text or "")
    if match is None:
        raise CollectionError(text, f"Invalid snippet {what} range")
    start, end = int(match.group(1)), int(match.group(2))
    if start < minimum or end < start:
        raise CollectionError(text, f"Invalid snippet {what} range")
    return start, end


@dataclass(frozen=True)
class SnippetInfo:
    """A byte (and optionally line) sub-range of a file with its own licensing."""

    byte_range: str
    name: str = ""
    comment: str = ""
    concluded_license: str = NOASSERTION
    license_info_in_snippet: str = NOASSERTION
    copyright_text: str = NOASSERTION
    license_comment: str = ""
    line_range: str = ""

    def byte_bounds(self) -> tuple[int, int]:
        return parse_range(self.byte_range, "byte", 0)

    def line_bounds(self) -> tuple[int, int] | None:
        if not self.line_range:
            return None
        return parse_range(self.line_range, "line", 1)


@dataclass(frozen=True)
class DefaultFileInfo:
    """File-level information applied to every collected file it covers."""

    comment: str = ""
    contributors: tuple[str, ...] = ()
    copyright_text: str = NOASSERTION
    notice: str = ""
    license_comment: str = ""
    concluded_license: str = NOASSERTION
    declared_license: str = NOASSERTION
    snippets: tuple[SnippetInfo, ...] = ()


DEFAULT_EXCLUDES = (
    "**/.git/**",
    "**/.svn/**",
    "**/.hg/**",
    "**/CVS/**",
    "**/.bzr/**",
    "**/.DS_Store",
    "**/__pycache__/**",
    "**/*~",
    "**/#*#",
    "**/.#*",
)


@dataclass(frozen=True)
class FileSetSpec:
    """A base directory plus include and exclude glob patterns."""

    directory: Path
    includes: tuple[str, ...] = ("**",)
    excludes: tuple[str, ...] = ()
    use_default_excludes: bool = True
    output_directory: str = ""

    @property
    def effective_excludes(self) -> tuple[str, ...]:
        if self.use_default_excludes:
            return self.excludes + DEFAULT_EXCLUDES
        return self.excludes


# ---------------------------------------------------------------------------
# ProjectInfo
# ---------------------------------------------------------------------------


@dataclass
class ProjectInfo:
    """Everything the build tool knows about the project being described.

    ``declared_licenses`` is the build tool's license list.  When
    ``license_declared`` or ``license_concluded`` is set it overrides the
    list with an explicit license expression.
    """

    coordinate: Coordinate
    name: str = ""
    description: str = ""
    short_description: str = ""
    supplier: str = ""
    originator: str = ""
    download_url: str = ""
    home_page: str = ""
    source_info: str = ""
    copyright_text: str = NOASSERTION
    license_comment: str = ""
    declared_licenses: list[DeclaredLicense] = field(default_factory=list)
    license_declared: str = ""
    license_concluded: str = ""
    package_archive: Path | None = None
    checksums: list[ChecksumValue] = field(default_factory=list)
    external_references: list[ExternalReference] = field(default_factory=list)
    document_namespace: str = ""
    document_comment: str = ""
    creators: list[str] = field(default_factory=list)
    creator_comment: str = ""
    document_annotations: list[Annotation] = field(default_factory=list)
    package_annotations: list[Annotation] = field(default_factory=list)
    non_standard_licenses: list[NonStandardLicense] = field(default_factory=list)
    license_overwrites: list[LicenseOverwrite] = field(default_factory=list)
    file_sets: list[FileSetSpec] = field(default_factory=list)
    default_file_info: DefaultFileInfo = field(default_factory=DefaultFileInfo)
    path_specific_info: dict[str, DefaultFileInfo] = field(default_factory=dict)
    exclude_paths: set[str] = field(default_factory=set)
    root_directory: Path | None = None

    @property
    def packaging(self) -> str:
        return self.coordinate.packaging or "jar"

    @property
    def package_name(self) -> str:
        return self.name or self.coordinate.qualified_name

    def default_namespace(self) -> str:
        c = self.coordinate
        return f"http://spdx.org/spdxpackages/{c.namespace}_{c.name}-{c.version}"
