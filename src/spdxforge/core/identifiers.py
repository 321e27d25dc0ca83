"""External identifiers and references derived from package coordinates.

Package URLs are built with ``packageurl-python`` so that encoding and
qualifier ordering follow the purl specification; identical coordinates
always produce an identical string.  Absent optional coordinate parts
(namespace, version, qualifiers) are left out of the URL.

The same purl is wrapped differently per schema generation: an SPDX 2
``externalRefs`` entry (category ``PACKAGE-MANAGER``, type ``purl``) or an
SPDX 3 ``ExternalIdentifier`` of type ``packageUrl``.  User-declared
external references go through the same two converters.

References
----------
.. [PURL] Package URL specification. https://github.com/package-url/purl-spec
"""

from __future__ import annotations

import logging

from packageurl import PackageURL

from spdxforge.core.model import v2, v3
from spdxforge.core.project import EXTERNAL_REF_CATEGORIES, Coordinate, ExternalReference
from spdxforge.exceptions import BuilderStateError

logger = logging.getLogger(__name__)

# Packagings that are the purl default for their type and therefore omitted.
_DEFAULT_PACKAGING = {"maven": "jar"}

# SPDX 2 reference types which SPDX 3 models as external identifiers.
_V3_IDENTIFIER_TYPES: dict[str, str] = {
    "purl": "packageUrl",
    "cpe22Type": "cpe22",
    "cpe23Type": "cpe23",
    "swh": "swhid",
    "gitoid": "gitoid",
    "swid": "swid",
}

# SPDX 2 reference types which SPDX 3 models as external references.
_V3_REF_TYPES: dict[str, str] = {
    "advisory": "securityAdvisory",
    "fix": "securityFix",
    "url": "securityOther",
    "maven-central": "mavenCentral",
    "npm": "npm",
    "nuget": "nuget",
    "bower": "bower",
    "vcs": "vcs",
}


# ---------------------------------------------------------------------------
# Package URLs
# ---------------------------------------------------------------------------


def package_url(coordinate: Coordinate) -> str:
    """Canonical package URL string for ``coordinate``.

    Raises:
        BuilderStateError: If the coordinate has no name or type.
    """
    if not coordinate.name or not coordinate.purl_type:
        raise BuilderStateError(f"Cannot derive a package URL from coordinate {coordinate!r}")
    qualifiers = dict(coordinate.qualifiers)
    packaging = coordinate.packaging.strip().lower()
    if packaging and packaging != _DEFAULT_PACKAGING.get(coordinate.purl_type):
        qualifiers.setdefault("type", packaging)
    if coordinate.classifier:
        qualifiers.setdefault("classifier", coordinate.classifier)
    purl = PackageURL(
        type=coordinate.purl_type,
        namespace=coordinate.namespace or None,
        name=coordinate.name,
        version=coordinate.version or None,
        qualifiers=qualifiers or None,
    )
    return purl.to_string()


def purl_external_ref(coordinate: Coordinate) -> v2.ExternalRef:
    return v2.ExternalRef("PACKAGE-MANAGER", "purl", package_url(coordinate))


def purl_external_identifier(coordinate: Coordinate) -> v3.ExternalIdentifier:
    return v3.ExternalIdentifier("packageUrl", package_url(coordinate))


# ---------------------------------------------------------------------------
# User-declared external references
# ---------------------------------------------------------------------------


def _check_category(ref: ExternalReference) -> str:
    category = (ref.category or "").strip().upper().replace("_", "-")
    if category not in EXTERNAL_REF_CATEGORIES:
        raise BuilderStateError(
            f"External reference category {ref.category!r} is not recognized as a valid, standard category"
        )
    if not ref.reference_type or not ref.locator:
        raise BuilderStateError(f"External reference {ref!r} needs a type and a locator")
    return category


def to_v2_external_ref(ref: ExternalReference) -> v2.ExternalRef:
    """Validate and convert a declared reference for an SPDX 2 package.

    Raises:
        BuilderStateError: On an unknown category or a missing type/locator.
    """
    return v2.ExternalRef(_check_category(ref), ref.reference_type, ref.locator, ref.comment)


def to_v3_reference(ref: ExternalReference) -> v3.ExternalIdentifier | v3.ExternalRef:
    """Validate and convert a declared reference for an SPDX 3 artifact.

    Identifier-like types (purl, cpe, swhid, ...) become external
    identifiers; everything else becomes an external reference.

    Raises:
        BuilderStateError: On an unknown category or a missing type/locator.
    """
    category = _check_category(ref)
    identifier_type = _V3_IDENTIFIER_TYPES.get(ref.reference_type)
    if identifier_type is not None:
        return v3.ExternalIdentifier(identifier_type, ref.locator, ref.comment)
    if category == "SECURITY" and ref.reference_type not in _V3_REF_TYPES:
        return v3.ExternalIdentifier("securityOther", ref.locator, ref.comment)
    ref_type = _V3_REF_TYPES.get(ref.reference_type, "other")
    if ref_type == "other":
        logger.debug("External reference type %s mapped to 'other'", ref.reference_type)
    return v3.ExternalRef(ref_type, ref.locator, ref.comment)
