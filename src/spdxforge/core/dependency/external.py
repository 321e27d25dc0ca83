"""Read SPDX documents shipped next to dependency artifacts.

A dependency built with spdxforge (or any SPDX tool) may publish its SBOM
beside its artifact: ``foo-1.0.jar`` next to ``foo-1.0.spdx.json``.  When
such a sibling exists for the active schema generation the mapper either
references it (external document reference / external map) or copies the
described package's metadata from it.

Only the JSON encodings are read: SPDX 2.3 JSON and SPDX 3 JSON-LD.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from spdxforge.config import OutputFormat, SchemaGeneration
from spdxforge.exceptions import CollectionError

logger = logging.getLogger(__name__)

# Sibling suffixes that can be read, per generation.
_READABLE_FORMATS = {
    SchemaGeneration.V2: (OutputFormat.JSON,),
    SchemaGeneration.V3: (OutputFormat.JSON_LD,),
}

_RELATIONSHIP_TYPES = ("Relationship", "LifecycleScopedRelationship")


@dataclass(frozen=True)
class ExternalPackage:
    """The metadata of a package described by an external SPDX document."""

    spdx_id: str
    name: str
    version: str = ""
    download_location: str = ""
    home_page: str = ""
    supplier: str = ""
    originator: str = ""
    summary: str = ""
    description: str = ""
    comment: str = ""
    source_info: str = ""
    copyright_text: str = ""
    license_declared: str = ""
    license_concluded: str = ""
    license_comments: str = ""
    package_file_name: str = ""
    checksums: tuple[tuple[str, str], ...] = ()


@dataclass
class ExternalDocument:
    """An external SPDX document: its namespace, file digest and described packages."""

    path: Path
    namespace: str
    sha1: str
    packages: list[ExternalPackage] = field(default_factory=list)

    def find_package(self, artifact_name: str) -> ExternalPackage:
        """The described package called ``artifact_name``, else the first one.

        Raises:
            CollectionError: If the document describes no package.
        """
        for pkg in self.packages:
            if pkg.name == artifact_name:
                return pkg
        if not self.packages:
            raise CollectionError(self.path, "SPDX document does not describe any package")
        logger.warning(
            "Could not find a package named %s in %s; using the first described package",
            artifact_name, self.path,
        )
        return self.packages[0]


def sibling_spdx_document(artifact: Path | None, generation: SchemaGeneration) -> Path | None:
    """The readable SPDX document next to ``artifact`` for ``generation``, if any."""
    if artifact is None:
        return None
    artifact = Path(artifact)
    stem = artifact.name.rsplit(".", 1)[0] if "." in artifact.name[1:] else artifact.name
    for fmt in _READABLE_FORMATS[generation]:
        candidate = artifact.with_name(stem + fmt.suffix)
        if candidate.is_file():
            return candidate
    return None


def read_spdx_document(path: Path, generation: SchemaGeneration) -> ExternalDocument:
    """Load the described packages of the SPDX document at ``path``.

    Raises:
        CollectionError: If the file cannot be read or is not an SPDX
            document of ``generation``.
    """
    try:
        raw = path.read_bytes()
        data = json.loads(raw.decode("utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        raise CollectionError(path, "Unable to read SPDX document", exc) from exc
    if not isinstance(data, dict):
        raise CollectionError(path, "Not an SPDX document")
    sha1 = hashlib.sha1(raw).hexdigest()
    try:
        if generation is SchemaGeneration.V2:
            return _read_v2(path, sha1, data)
        return _read_v3(path, sha1, data)
    except (KeyError, TypeError, AttributeError) as exc:
        raise CollectionError(path, f"Malformed SPDX document ({exc})", exc) from exc


# ---------------------------------------------------------------------------
# SPDX 2.3 JSON
# ---------------------------------------------------------------------------


def _read_v2(path: Path, sha1: str, data: dict[str, Any]) -> ExternalDocument:
    if not str(data.get("spdxVersion", "")).startswith("SPDX-2"):
        raise CollectionError(path, "Not an SPDX 2 document")
    doc_id = data.get("SPDXID", "SPDXRef-DOCUMENT")
    described = list(data.get("documentDescribes", []))
    for rel in data.get("relationships", []):
        if rel.get("spdxElementId") == doc_id and rel.get("relationshipType") == "DESCRIBES":
            if rel["relatedSpdxElement"] not in described:
                described.append(rel["relatedSpdxElement"])
    by_id = {p["SPDXID"]: p for p in data.get("packages", [])}
    packages = [_v2_package(by_id[i]) for i in described if i in by_id]
    return ExternalDocument(path=path, namespace=data["documentNamespace"], sha1=sha1, packages=packages)


def _v2_package(pkg: dict[str, Any]) -> ExternalPackage:
    return ExternalPackage(
        spdx_id=pkg["SPDXID"],
        name=pkg.get("name", ""),
        version=pkg.get("versionInfo", ""),
        download_location=pkg.get("downloadLocation", ""),
        home_page=pkg.get("homepage", ""),
        supplier=pkg.get("supplier", ""),
        originator=pkg.get("originator", ""),
        summary=pkg.get("summary", ""),
        description=pkg.get("description", ""),
        comment=pkg.get("comment", ""),
        source_info=pkg.get("sourceInfo", ""),
        copyright_text=pkg.get("copyrightText", ""),
        license_declared=pkg.get("licenseDeclared", ""),
        license_concluded=pkg.get("licenseConcluded", ""),
        license_comments=pkg.get("licenseComments", ""),
        package_file_name=pkg.get("packageFileName", ""),
        checksums=tuple((c["algorithm"], c["checksumValue"]) for c in pkg.get("checksums", [])),
    )


# ---------------------------------------------------------------------------
# SPDX 3 JSON-LD
# ---------------------------------------------------------------------------


def _read_v3(path: Path, sha1: str, data: dict[str, Any]) -> ExternalDocument:
    graph = data.get("@graph")
    if not isinstance(graph, list):
        raise CollectionError(path, "Not an SPDX 3 JSON-LD document")
    by_id = {e["spdxId"]: e for e in graph if isinstance(e, dict) and "spdxId" in e}
    document = next((e for e in graph if isinstance(e, dict) and e.get("type") == "SpdxDocument"), None)
    if document is None:
        raise CollectionError(path, "Not an SPDX 3 JSON-LD document")

    roots: list[str] = []
    for root in document.get("rootElement", []):
        element = by_id.get(root, {})
        if element.get("type") == "software_Sbom":
            roots.extend(element.get("rootElement", []))
        else:
            roots.append(root)
    licenses = _v3_licenses(graph, by_id)
    packages = [
        _v3_package(by_id[r], by_id, licenses) for r in roots
        if by_id.get(r, {}).get("type") == "software_Package"
    ]
    return ExternalDocument(path=path, namespace=document["spdxId"], sha1=sha1, packages=packages)


def _v3_licenses(graph: list[Any], by_id: dict[str, Any]) -> dict[tuple[str, str], str]:
    result: dict[tuple[str, str], str] = {}
    for element in graph:
        if not isinstance(element, dict) or element.get("type") not in _RELATIONSHIP_TYPES:
            continue
        rel_type = element.get("relationshipType")
        if rel_type not in ("hasDeclaredLicense", "hasConcludedLicense"):
            continue
        for target in element.get("to", []):
            expression = by_id.get(target, {}).get("simplelicensing_licenseExpression")
            if expression is None and target.endswith("/NoAssertion"):
                expression = "NOASSERTION"
            elif expression is None and target.endswith("/None"):
                expression = "NONE"
            if expression:
                result[(element["from"], rel_type)] = expression
    return result


def _v3_package(
    pkg: dict[str, Any], by_id: dict[str, Any], licenses: dict[tuple[str, str], str]
) -> ExternalPackage:
    def agent_name(ref: str) -> str:
        agent = by_id.get(ref, {})
        return f"{agent.get('type', 'Organization')}: {agent.get('name', ref)}" if ref else ""

    originated = pkg.get("originatedBy", [])
    return ExternalPackage(
        spdx_id=pkg["spdxId"],
        name=pkg.get("name", ""),
        version=pkg.get("software_packageVersion", ""),
        download_location=pkg.get("software_downloadLocation", ""),
        home_page=pkg.get("software_homePage", ""),
        supplier=agent_name(pkg.get("suppliedBy", "")),
        originator=agent_name(originated[0]) if originated else "",
        summary=pkg.get("summary", ""),
        description=pkg.get("description", ""),
        comment=pkg.get("comment", ""),
        source_info=pkg.get("software_sourceInfo", ""),
        copyright_text=pkg.get("software_copyrightText", ""),
        license_declared=licenses.get((pkg["spdxId"], "hasDeclaredLicense"), ""),
        license_concluded=licenses.get((pkg["spdxId"], "hasConcludedLicense"), ""),
        checksums=tuple(
            (h.get("algorithm", ""), h.get("hashValue", "")) for h in pkg.get("verifiedUsing", [])
            if h.get("type") == "Hash"
        ),
    )
