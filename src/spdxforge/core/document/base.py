"""The staged pipeline assembling one SBOM document.

A builder owns one document for its whole life.  Each public stage method
advances a linear state machine::

    CREATED -> PROJECT_PACKAGE_INITIALIZED -> FILES_COLLECTED
            -> LICENSES_RESOLVED -> DEPENDENCIES_MAPPED -> VERIFIED -> FINALIZED

A stage called in any other state raises ``BuilderStateError`` before it
touches the document.  ``FINALIZED`` is terminal: a finished builder cannot
produce a second document.

The stages are written once here.  ``SpdxV2DocumentBuilder`` and
``SpdxV3DocumentBuilder`` supply the schema-specific document, project
package and the collector, license manager and dependency mapper of their
generation.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from spdxforge.config import BuildOptions, OutputFormat, SchemaGeneration
from spdxforge.core.collector.base import canonical_algorithm, compute_checksums
from spdxforge.core.dependency.base import DependencyMapper, is_download_location
from spdxforge.core.dependency.graph import DependencyGraphLike
from spdxforge.core.licenses.manager import LicenseManager
from spdxforge.core.licenses.registry import LicenseRegistry, load_registry
from spdxforge.core.model.licenses import NOASSERTION, AnyLicenseInfo
from spdxforge.core.project import ProjectInfo
from spdxforge.exceptions import BuilderStateError, CollectionError, ConfigurationError, VerificationError

logger = logging.getLogger(__name__)

_CREATOR_RE = re.compile(r"^(Tool|Person|Organization):\s*\S")


class BuildStage(Enum):
    """Stages of the builder state machine, in order."""

    CREATED = 0
    PROJECT_PACKAGE_INITIALIZED = 1
    FILES_COLLECTED = 2
    LICENSES_RESOLVED = 3
    DEPENDENCIES_MAPPED = 4
    VERIFIED = 5
    FINALIZED = 6


@dataclass
class BuildResult:
    """A finalized document and what the serializer needs to write it."""

    document: Any
    schema_generation: SchemaGeneration
    output_format: OutputFormat
    verification_code: str | None = None
    dependency_count: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return self.document.to_dict()


def creation_timestamp(moment: datetime | None = None) -> str:
    """UTC timestamp in the ``YYYY-MM-DDThh:mm:ssZ`` form both schemas use."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class DocumentBuilder(ABC):
    """Assemble one SBOM document for one project.

    Args:
        project: Metadata of the project being described.
        options: Build options; their schema generation must match the
            builder's.
        registry: License registry; loaded per ``options`` when omitted.
        created: Creation timestamp; the current time when omitted.

    Raises:
        ConfigurationError: If ``options`` select the other schema generation.
    """

    generation: SchemaGeneration

    def __init__(
        self,
        project: ProjectInfo,
        options: BuildOptions | None = None,
        *,
        registry: LicenseRegistry | None = None,
        created: str | None = None,
    ) -> None:
        self.options = options or BuildOptions(schema_generation=self.generation)
        if self.options.schema_generation is not self.generation:
            raise ConfigurationError(
                f"{type(self).__name__} builds SPDX {self.generation.value} documents, "
                f"options select {self.options.schema_generation.value}"
            )
        self.project = project
        self.registry = registry or load_registry(self.options.only_use_local_licenses)
        self.created = created or creation_timestamp()
        self.stage = BuildStage.CREATED
        self.document = self._create_document()
        self.license_manager = self._create_license_manager()
        self.collector = self._create_collector()
        self.package: Any = None
        self.verification_code: str | None = None
        self.dependency_count = 0
        self._add_creators(self._valid_creators())

    # -- Schema hooks ---------------------------------------------------------

    @abstractmethod
    def _create_document(self) -> Any:
        """Create the empty document."""

    @abstractmethod
    def _create_license_manager(self) -> LicenseManager: ...

    @abstractmethod
    def _create_collector(self) -> Any: ...

    @abstractmethod
    def _create_mapper(self) -> DependencyMapper: ...

    @abstractmethod
    def _add_creators(self, creators: list[str]) -> None:
        """Record validated ``Person:``/``Organization:``/``Tool:`` creators."""

    @abstractmethod
    def _create_project_package(self, checksums: dict[str, str]) -> Any:
        """Create the project package, describe it and return it."""

    def _after_licenses(self) -> None:
        """Hook run at the end of license resolution."""

    def _after_dependencies(self) -> None:
        """Hook run at the end of dependency mapping."""

    # -- State machine --------------------------------------------------------

    def _require(self, expected: BuildStage, action: str) -> None:
        if self.stage is not expected:
            raise BuilderStateError(
                f"Cannot {action} in stage {self.stage.name}; the builder must be in stage {expected.name}"
            )

    @property
    def is_finalized(self) -> bool:
        return self.stage is BuildStage.FINALIZED

    # -- Stages ---------------------------------------------------------------

    def initialize_project_package(self) -> Any:
        """Register non-standard licenses and create the project package."""
        self._require(BuildStage.CREATED, "initialize the project package")
        for nsl in self.project.non_standard_licenses:
            self.license_manager.add_non_standard_license(nsl)
        self.package = self._create_project_package(self._project_checksums())
        self.stage = BuildStage.PROJECT_PACKAGE_INITIALIZED
        logger.debug("Created project package %s", self.package.spdx_id)
        return self.package

    def collect_files(self, exclude_paths: Iterable[str] = ()) -> str:
        """Collect the project's file sets and compute the verification code.

        ``exclude_paths`` (for example the SBOM output file) are added to the
        project's own exclusions.

        Returns:
            The package verification code.
        """
        self._require(BuildStage.PROJECT_PACKAGE_INITIALIZED, "collect files")
        excluded = set(self.project.exclude_paths) | set(exclude_paths)
        self.verification_code = self.collector.collect(
            self.project.file_sets,
            self.package,
            default_info=self.project.default_file_info,
            path_specific=self.project.path_specific_info,
            exclude_paths=excluded,
            root=self.project.root_directory,
        )
        self.stage = BuildStage.FILES_COLLECTED
        logger.debug(
            "Collected %d files, verification code %s", len(self.collector.collected), self.verification_code
        )
        return self.verification_code

    def resolve_licenses(self) -> None:
        """Fill the project package and file license fields.

        Raises:
            LicenseMappingError: If the project's own license metadata cannot
                be mapped.
        """
        self._require(BuildStage.FILES_COLLECTED, "resolve licenses")
        declared, concluded = self._project_licenses()
        self.license_manager.set_declared(self.package, declared)
        self.license_manager.set_concluded(self.package, concluded)
        if self.project.license_comment:
            self.license_manager.set_license_comment(self.package, self.project.license_comment)
        self.license_manager.resolve_files(
            self.collector.collected.values(), self.options.max_source_file_length
        )
        self._after_licenses()
        self.stage = BuildStage.LICENSES_RESOLVED

    def map_dependencies(self, graph: DependencyGraphLike | None = None) -> int:
        """Add a package and relationship for every dependency in ``graph``.

        Returns:
            The number of distinct dependency packages.
        """
        self._require(BuildStage.LICENSES_RESOLVED, "map dependencies")
        if graph is not None:
            self.dependency_count = self._create_mapper().map(graph, self.package.spdx_id)
        self._after_dependencies()
        self.stage = BuildStage.DEPENDENCIES_MAPPED
        return self.dependency_count

    def verify(self) -> None:
        """Run the document's structural self-checks.

        Raises:
            VerificationError: With every violation found.  The builder stays
                in ``DEPENDENCIES_MAPPED``.
        """
        self._require(BuildStage.DEPENDENCIES_MAPPED, "verify the document")
        violations = self.document.verify()
        if violations:
            for violation in violations:
                logger.error("Verification: %s", violation)
            raise VerificationError(violations)
        self.stage = BuildStage.VERIFIED

    def finalize(self) -> BuildResult:
        """Hand out the verified document; the builder is then spent."""
        self._require(BuildStage.VERIFIED, "finalize the document")
        self.stage = BuildStage.FINALIZED
        return BuildResult(
            document=self.document,
            schema_generation=self.generation,
            output_format=self.options.resolved_output_format,
            verification_code=self.verification_code,
            dependency_count=self.dependency_count,
            warnings=list(self.document.warnings),
        )

    def build(
        self, graph: DependencyGraphLike | None = None, exclude_paths: Iterable[str] = ()
    ) -> BuildResult:
        """Run every stage in order."""
        self.initialize_project_package()
        self.collect_files(exclude_paths)
        self.resolve_licenses()
        self.map_dependencies(graph)
        self.verify()
        return self.finalize()

    # -- Project metadata -----------------------------------------------------

    def _valid_creators(self) -> list[str]:
        creators = []
        for creator in self.project.creators:
            if _CREATOR_RE.match(creator.strip()):
                creators.append(creator.strip())
            else:
                self._warn(f"Invalid creator string {creator!r}; it will be skipped")
        return creators

    def _project_licenses(self) -> tuple[AnyLicenseInfo, AnyLicenseInfo]:
        project = self.project
        if project.license_declared.strip():
            declared = self.license_manager.parse(project.license_declared)
        else:
            declared = self.license_manager.map_declared_licenses(project.declared_licenses)
        if project.license_concluded.strip():
            concluded = self.license_manager.parse(project.license_concluded)
        else:
            concluded = declared
        return declared, concluded

    def _project_checksums(self) -> dict[str, str]:
        checksums: dict[str, str] = {}
        for checksum in self.project.checksums:
            algorithm = canonical_algorithm(checksum.algorithm)
            if algorithm is None:
                logger.error("Invalid checksum algorithm %s; skipping it", checksum.algorithm)
                continue
            checksums[algorithm] = checksum.value.strip().lower()
        archive = self.project.package_archive
        if not checksums and archive is not None and archive.is_file():
            try:
                checksums = compute_checksums(archive, self.collector.algorithms)
            except CollectionError as exc:
                logger.warning("Unable to compute checksums of %s: %s", archive, exc)
        return checksums

    def _download_location(self) -> str:
        url = self.project.download_url.strip()
        return url if is_download_location(url) else NOASSERTION

    def _warn(self, message: str) -> None:
        logger.warning("%s", message)
        self.document.warnings.append(message)
