"""Build options for one SBOM assembly run.

``BuildOptions`` is the configuration bundle handed to the document builder by
the build-tool collaborator (or by the CLI after reading a project
descriptor).  It carries the recognised switches (transitivity, naming
policy, external references, package URLs, schema generation, output format)
together with the collection and licensing knobs.

Options can be built directly, or from a plain mapping via
``BuildOptions.from_mapping`` which accepts both ``snake_case`` keys and the
``camelCase`` names used by build-tool configuration files.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from spdxforge.exceptions import ConfigurationError

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SchemaGeneration(Enum):
    """The two mutually exclusive SPDX schema generations."""

    V2 = "v2"
    V3 = "v3"

    @classmethod
    def parse(cls, value: str | SchemaGeneration) -> SchemaGeneration:
        """Parse ``"v2"``, ``"2"``, ``"2.3"``, ``"v3"``, ``"3.0"`` and friends."""
        if isinstance(value, SchemaGeneration):
            return value
        text = str(value).strip().lower().lstrip("v")
        if text.startswith("2"):
            return cls.V2
        if text.startswith("3"):
            return cls.V3
        raise ConfigurationError(f"Unknown schema generation: {value!r}")

    @property
    def default_output_format(self) -> OutputFormat:
        return OutputFormat.JSON if self is SchemaGeneration.V2 else OutputFormat.JSON_LD


class OutputFormat(Enum):
    """Serialisation targets, each bound to one schema generation.

    The value tuple is ``(artifact type, file suffix, schema generation)``.
    """

    JSON = ("spdx.json", ".spdx.json", "v2")
    RDF_XML = ("spdx.rdf.xml", ".spdx.rdf.xml", "v2")
    JSON_LD = ("spdx3.json", ".spdx3.json", "v3")

    @property
    def artifact_type(self) -> str:
        return self.value[0]

    @property
    def suffix(self) -> str:
        return self.value[1]

    @property
    def schema_generation(self) -> SchemaGeneration:
        return SchemaGeneration(self.value[2])

    @classmethod
    def parse(cls, value: str | OutputFormat) -> OutputFormat:
        """Parse a format name such as ``json``, ``rdf-xml`` or ``JSON-LD``."""
        if isinstance(value, OutputFormat):
            return value
        key = re.sub(r"[^A-Z]", "_", str(value).strip().upper())
        try:
            return cls[key]
        except KeyError:
            raise ConfigurationError(f"Unknown output format: {value!r}") from None

    @classmethod
    def from_filename(cls, filename: str) -> OutputFormat | None:
        """Guess the format from an output file name, or ``None``."""
        lowered = filename.lower()
        # Longest suffix first so ".spdx3.json" is not read as ".json".
        for fmt in sorted(cls, key=lambda f: len(f.suffix), reverse=True):
            if lowered.endswith(fmt.suffix):
                return fmt
        if lowered.endswith(".jsonld"):
            return cls.JSON_LD
        if lowered.endswith(".json"):
            return cls.JSON
        if lowered.endswith((".rdf", ".xml")):
            return cls.RDF_XML
        return None


class LicenseCombination(Enum):
    """Operator used when a project declares more than one license."""

    DISJUNCTIVE = "OR"
    CONJUNCTIVE = "AND"

    @classmethod
    def parse(cls, value: str | LicenseCombination) -> LicenseCombination:
        if isinstance(value, LicenseCombination):
            return value
        text = str(value).strip().upper()
        for member in cls:
            if text in (member.name, member.value):
                return member
        raise ConfigurationError(f"Unknown license combination: {value!r}")


# ---------------------------------------------------------------------------
# BuildOptions
# ---------------------------------------------------------------------------

DEFAULT_MAX_SOURCE_FILE_LENGTH = 300_000

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass
class BuildOptions:
    """Configuration bundle for one build.

    Attributes:
        include_transitive_dependencies: Map dependencies below the root's
            direct children.  When ``False`` deeper nodes are skipped entirely.
        use_artifact_id_as_name: Name dependency packages ``namespace:name``
            instead of using their display name.
        create_external_refs: Reference a dependency's own SPDX document
            (when one sits next to its artifact) instead of copying it.
        generate_purls: Attach package URLs to project and dependency packages.
        schema_generation: Target SPDX generation.
        output_format: Explicit serialisation target; derived from the
            schema generation when ``None``.
        checksum_algorithms: Digest algorithms computed for every file.
            SHA1 is always computed in addition.
        continue_on_error: Skip unreadable files instead of aborting.
        license_combination: Operator joining multiple declared licenses.
        max_source_file_length: Files longer than this (bytes) are not
            scanned for license tags.
        hash_workers: Number of threads hashing files; ``1`` hashes inline.
        only_use_local_licenses: Use the bundled license list instead of
            fetching the current one from spdx.org.
        match_licenses_on_cross_reference_urls: Map declared license URLs
            through the registry's cross references.
    """

    include_transitive_dependencies: bool = True
    use_artifact_id_as_name: bool = False
    create_external_refs: bool = True
    generate_purls: bool = True
    schema_generation: SchemaGeneration = SchemaGeneration.V2
    output_format: OutputFormat | None = None
    checksum_algorithms: tuple[str, ...] = ("SHA1",)
    continue_on_error: bool = False
    license_combination: LicenseCombination = LicenseCombination.DISJUNCTIVE
    max_source_file_length: int = DEFAULT_MAX_SOURCE_FILE_LENGTH
    hash_workers: int = 1
    only_use_local_licenses: bool = True
    match_licenses_on_cross_reference_urls: bool = True
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.schema_generation = SchemaGeneration.parse(self.schema_generation)
        if self.output_format is not None:
            self.output_format = OutputFormat.parse(self.output_format)
        self.license_combination = LicenseCombination.parse(self.license_combination)
        if isinstance(self.checksum_algorithms, str):
            self.checksum_algorithms = (self.checksum_algorithms,)
        self.checksum_algorithms = tuple(a.strip().upper() for a in self.checksum_algorithms)
        if self.hash_workers < 1:
            raise ConfigurationError("hash_workers must be at least 1")
        if self.max_source_file_length < 0:
            raise ConfigurationError("max_source_file_length must not be negative")
        fmt = self.resolved_output_format
        if fmt.schema_generation is not self.schema_generation:
            raise ConfigurationError(
                f"Output format {fmt.name} is not supported by SPDX "
                f"{self.schema_generation.value} documents"
            )

    @property
    def resolved_output_format(self) -> OutputFormat:
        """The explicit output format, or the generation's default."""
        return self.output_format or self.schema_generation.default_output_format

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> BuildOptions:
        """Build options from a mapping with snake_case or camelCase keys.

        Unknown keys are kept in ``extra`` so that descriptors written for a
        newer release still load.

        Raises:
            ConfigurationError: On values of the wrong type or unknown enum
                values.
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError("options must be a mapping")
        known = {f.name: f for f in fields(cls) if f.name != "extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for raw_key, value in data.items():
            key = _CAMEL_RE.sub("_", str(raw_key)).lower().replace("-", "_")
            if key not in known:
                extra[str(raw_key)] = value
                continue
            kwargs[key] = _coerce(key, value)
        try:
            return cls(**kwargs, extra=extra)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid build options: {exc}") from exc


_BOOL_OPTIONS = {
    "include_transitive_dependencies",
    "use_artifact_id_as_name",
    "create_external_refs",
    "generate_purls",
    "continue_on_error",
    "only_use_local_licenses",
    "match_licenses_on_cross_reference_urls",
}
_INT_OPTIONS = {"max_source_file_length", "hash_workers"}


def _coerce(key: str, value: Any) -> Any:
    """Check and convert one raw option value."""
    if key in _BOOL_OPTIONS:
        if not isinstance(value, bool):
            raise ConfigurationError(f"Option {key} must be true or false, got {value!r}")
        return value
    if key in _INT_OPTIONS:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"Option {key} must be an integer, got {value!r}")
        return value
    if key == "checksum_algorithms":
        if isinstance(value, str):
            return tuple(v for v in re.split(r"[,\s]+", value) if v)
        if not isinstance(value, (list, tuple)):
            raise ConfigurationError("checksum_algorithms must be a list of algorithm names")
        return tuple(str(v) for v in value)
    if key == "schema_generation":
        return SchemaGeneration.parse(value)
    if key == "output_format":
        return None if value is None else OutputFormat.parse(value)
    if key == "license_combination":
        return LicenseCombination.parse(value)
    return value
