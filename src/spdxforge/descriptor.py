"""YAML project descriptors: the CLI's stand-in for a build tool.

A descriptor (conventionally ``spdxforge.yaml``) holds everything a build
tool would otherwise hand to the engine::

    project:
      namespace: org.example
      name: demo
      version: 1.0.0
      licenses:
        - name: Apache License, Version 2.0
          url: https://www.apache.org/licenses/LICENSE-2.0
    options:
      schemaGeneration: v3
    file_sets:
      - directory: src
        includes: ["**/*.py"]
    dependencies:
      - namespace: org.example
        name: lib
        version: 2.1
        scope: compile
        dependencies:
          - {namespace: org.example, name: util, version: 0.3, scope: runtime}

Relative paths are resolved against the descriptor's directory.  Every
malformed value raises ``ConfigurationError`` naming its key path, for
example ``dependencies[0].dependencies[1].name``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from spdxforge.config import BuildOptions
from spdxforge.core.dependency.graph import DependencyGraph, DependencyNode
from spdxforge.core.project import (
    Annotation,
    ChecksumValue,
    Coordinate,
    DeclaredLicense,
    DefaultFileInfo,
    ExternalReference,
    FileSetSpec,
    LicenseOverwrite,
    NonStandardLicense,
    OverwriteTarget,
    ProjectInfo,
    SnippetInfo,
)
from spdxforge.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DESCRIPTOR_FILENAMES = ("spdxforge.yaml", "spdxforge.yml")

_TOP_LEVEL_KEYS = {
    "project",
    "options",
    "file_sets",
    "default_file_info",
    "path_specific_info",
    "non_standard_licenses",
    "license_overwrites",
    "exclude_paths",
    "dependencies",
}


@dataclass
class ProjectDescriptor:
    """A loaded descriptor: project metadata, options and dependency graph."""

    path: Path | None
    project: ProjectInfo
    options: BuildOptions
    graph: DependencyGraph


def find_descriptor(directory: Path) -> Path | None:
    """The descriptor file inside ``directory``, if there is one."""
    for name in DESCRIPTOR_FILENAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_descriptor(path: Path) -> ProjectDescriptor:
    """Read and validate the descriptor at ``path``.

    A directory is searched for ``spdxforge.yaml``.

    Raises:
        ConfigurationError: If the file is missing, not YAML, or malformed.
    """
    path = Path(path)
    if path.is_dir():
        found = find_descriptor(path)
        if found is None:
            raise ConfigurationError(f"No {DESCRIPTOR_FILENAMES[0]} found in {path}")
        path = found
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Unable to read descriptor {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Descriptor {path} is not valid YAML: {exc}") from exc
    descriptor = parse_descriptor(data, path.parent)
    descriptor.path = path
    return descriptor


def parse_descriptor(data: Any, base_dir: Path) -> ProjectDescriptor:
    """Build a ``ProjectDescriptor`` from already-parsed YAML data.

    Raises:
        ConfigurationError: On a malformed value, naming its key path.
    """
    data = _mapping(data, "descriptor")
    for key in data:
        if key not in _TOP_LEVEL_KEYS:
            logger.warning("Ignoring unknown descriptor key %r", key)

    options = BuildOptions.from_mapping(_mapping(data.get("options") or {}, "options"))
    project_data = _mapping(data.get("project"), "project")
    coordinate = _coordinate(project_data, "project")

    project = ProjectInfo(
        coordinate=coordinate,
        name=_str(project_data, "display_name", "project"),
        description=_str(project_data, "description", "project"),
        short_description=_str(project_data, "short_description", "project"),
        supplier=_str(project_data, "supplier", "project"),
        originator=_str(project_data, "originator", "project"),
        download_url=_str(project_data, "download_url", "project"),
        home_page=_str(project_data, "home_page", "project"),
        source_info=_str(project_data, "source_info", "project"),
        copyright_text=_str(project_data, "copyright_text", "project") or "NOASSERTION",
        license_comment=_str(project_data, "license_comment", "project"),
        declared_licenses=_licenses(project_data.get("licenses"), "project.licenses"),
        license_declared=_str(project_data, "license_declared", "project"),
        license_concluded=_str(project_data, "license_concluded", "project"),
        package_archive=_path(project_data.get("package_archive"), base_dir, "project.package_archive"),
        checksums=[
            ChecksumValue(_str(c, "algorithm", k, required=True), _str(c, "value", k, required=True))
            for k, c in _items(project_data.get("checksums"), "project.checksums")
        ],
        external_references=[
            ExternalReference(
                category=_str(r, "category", k, required=True),
                reference_type=_str(r, "type", k, required=True),
                locator=_str(r, "locator", k, required=True),
                comment=_str(r, "comment", k),
            )
            for k, r in _items(project_data.get("external_references"), "project.external_references")
        ],
        document_namespace=_str(project_data, "document_namespace", "project"),
        document_comment=_str(project_data, "document_comment", "project"),
        creators=_str_list(project_data.get("creators"), "project.creators"),
        creator_comment=_str(project_data, "creator_comment", "project"),
        document_annotations=_annotations(
            project_data.get("document_annotations"), "project.document_annotations"
        ),
        package_annotations=_annotations(
            project_data.get("package_annotations"), "project.package_annotations"
        ),
        non_standard_licenses=[
            NonStandardLicense(
                license_id=_str(n, "license_id", k, required=True),
                extracted_text=_str(n, "extracted_text", k),
                name=_str(n, "name", k),
                comment=_str(n, "comment", k),
                cross_references=tuple(_str_list(n.get("cross_references"), f"{k}.cross_references")),
            )
            for k, n in _items(data.get("non_standard_licenses"), "non_standard_licenses")
        ],
        license_overwrites=[
            _overwrite(o, k) for k, o in _items(data.get("license_overwrites"), "license_overwrites")
        ],
        file_sets=[_file_set(f, k, base_dir) for k, f in _items(data.get("file_sets"), "file_sets")],
        default_file_info=_file_info(data.get("default_file_info"), "default_file_info"),
        path_specific_info={
            str(path): _file_info(info, f"path_specific_info.{path}")
            for path, info in _mapping(data.get("path_specific_info") or {}, "path_specific_info").items()
        },
        exclude_paths=set(_str_list(data.get("exclude_paths"), "exclude_paths")),
        root_directory=base_dir,
    )

    root = DependencyNode(coordinate, display_name=project.name)
    for key, child in _items(data.get("dependencies"), "dependencies"):
        root.add_child(_dependency(child, key, base_dir))
    return ProjectDescriptor(path=None, project=project, options=options, graph=DependencyGraph(root))


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def _coordinate(data: dict[str, Any], where: str) -> Coordinate:
    qualifiers = _mapping(data.get("qualifiers") or {}, f"{where}.qualifiers")
    return Coordinate(
        name=_str(data, "name", where, required=True),
        namespace=_str(data, "namespace", where),
        version=_str(data, "version", where),
        purl_type=_str(data, "purl_type", where) or "maven",
        packaging=_str(data, "packaging", where),
        classifier=_str(data, "classifier", where),
        qualifiers=tuple(sorted((str(k), str(v)) for k, v in qualifiers.items())),
    )


def _dependency(data: dict[str, Any], where: str, base_dir: Path) -> DependencyNode:
    optional = data.get("optional", False)
    if not isinstance(optional, bool):
        raise ConfigurationError(f"{where}.optional must be true or false")
    node = DependencyNode(
        coordinate=_coordinate(data, where),
        scope=_str(data, "scope", where) or None,
        optional=optional,
        artifact=_path(data.get("artifact"), base_dir, f"{where}.artifact"),
        licenses=_licenses(data.get("licenses"), f"{where}.licenses"),
        display_name=_str(data, "display_name", where),
        description=_str(data, "description", where),
        home_page=_str(data, "home_page", where),
        organization=_str(data, "organization", where),
        download_url=_str(data, "download_url", where),
        contributors=_str_list(data.get("contributors"), f"{where}.contributors"),
    )
    for key, child in _items(data.get("dependencies"), f"{where}.dependencies"):
        node.add_child(_dependency(child, key, base_dir))
    return node


def _licenses(value: Any, where: str) -> list[DeclaredLicense]:
    result = []
    for key, item in _items(value, where, allow_strings=True):
        if isinstance(item, str):
            result.append(DeclaredLicense(name=item))
            continue
        result.append(DeclaredLicense(
            name=_str(item, "name", key),
            url=_str(item, "url", key),
            comments=_str(item, "comments", key),
            text=_str(item, "text", key),
        ))
    return result


def _annotations(value: Any, where: str) -> list[Annotation]:
    return [
        Annotation(
            annotator=_str(a, "annotator", k, required=True),
            date=_str(a, "date", k, required=True),
            comment=_str(a, "comment", k, required=True),
            annotation_type=(_str(a, "type", k) or "OTHER").upper(),
        )
        for k, a in _items(value, where)
    ]


def _overwrite(data: dict[str, Any], where: str) -> LicenseOverwrite:
    target = _str(data, "target", where) or "both"
    try:
        parsed_target = OverwriteTarget(target.lower())
    except ValueError:
        raise ConfigurationError(
            f"{where}.target must be declared, concluded or both, got {target!r}"
        ) from None
    return LicenseOverwrite(
        namespace=_str(data, "namespace", where),
        name=_str(data, "name", where, required=True),
        license_string=_str(data, "license", where, required=True),
        target=parsed_target,
        version=_str(data, "version", where) or None,
    )


def _file_set(data: dict[str, Any], where: str, base_dir: Path) -> FileSetSpec:
    directory = _path(data.get("directory", "."), base_dir, f"{where}.directory")
    use_defaults = data.get("use_default_excludes", True)
    if not isinstance(use_defaults, bool):
        raise ConfigurationError(f"{where}.use_default_excludes must be true or false")
    return FileSetSpec(
        directory=directory or base_dir,
        includes=tuple(_str_list(data.get("includes"), f"{where}.includes")) or ("**",),
        excludes=tuple(_str_list(data.get("excludes"), f"{where}.excludes")),
        use_default_excludes=use_defaults,
        output_directory=_str(data, "output_directory", where),
    )


def _file_info(value: Any, where: str) -> DefaultFileInfo:
    if value is None:
        return DefaultFileInfo()
    data = _mapping(value, where)
    return DefaultFileInfo(
        comment=_str(data, "comment", where),
        contributors=tuple(_str_list(data.get("contributors"), f"{where}.contributors")),
        copyright_text=_str(data, "copyright_text", where) or "NOASSERTION",
        notice=_str(data, "notice", where),
        license_comment=_str(data, "license_comment", where),
        concluded_license=_str(data, "concluded_license", where) or "NOASSERTION",
        declared_license=_str(data, "declared_license", where) or "NOASSERTION",
        snippets=tuple(
            SnippetInfo(
                byte_range=_str(s, "byte_range", k, required=True),
                name=_str(s, "name", k),
                comment=_str(s, "comment", k),
                concluded_license=_str(s, "concluded_license", k) or "NOASSERTION",
                license_info_in_snippet=_str(s, "license_info", k) or "NOASSERTION",
                copyright_text=_str(s, "copyright_text", k) or "NOASSERTION",
                license_comment=_str(s, "license_comment", k),
                line_range=_str(s, "line_range", k),
            )
            for k, s in _items(data.get("snippets"), f"{where}.snippets")
        ),
    )


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def _mapping(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigurationError(f"{where} must be a mapping")
    return value


def _items(value: Any, where: str, allow_strings: bool = False) -> list[tuple[str, Any]]:
    """``(key path, item)`` pairs of a list of mappings (``None`` is empty)."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigurationError(f"{where} must be a list")
    result = []
    for index, item in enumerate(value):
        key = f"{where}[{index}]"
        if not isinstance(item, dict) and not (allow_strings and isinstance(item, str)):
            raise ConfigurationError(f"{key} must be a mapping")
        result.append((key, item))
    return result


def _str(data: dict[str, Any], key: str, where: str, required: bool = False) -> str:
    value = data.get(key)
    if value is None:
        if required:
            raise ConfigurationError(f"{where}.{key} is required")
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigurationError(f"{where}.{key} must be a string")
    text = str(value).strip()
    if required and not text:
        raise ConfigurationError(f"{where}.{key} must not be empty")
    return text


def _str_list(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, (str, int, float)) for v in value):
        raise ConfigurationError(f"{where} must be a list of strings")
    return [str(v) for v in value]


def _path(value: Any, base_dir: Path, where: str) -> Path | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{where} must be a path")
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path
