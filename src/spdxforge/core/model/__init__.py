"""In-memory SBOM object models for the two SPDX schema generations.

``licenses`` holds the schema-neutral license algebra shared by both
generations; ``v2`` and ``v3`` are the concrete SPDX 2.3 and SPDX 3.0.1
document models with their own serialisation and structural checks.
"""

from spdxforge.core.model.licenses import (
    NO_ASSERTION,
    NO_LICENSE,
    AnyLicenseInfo,
    ExtractedLicense,
    LicenseSet,
    ListedLicense,
    WithException,
    combine,
)

__all__ = [
    "NO_ASSERTION",
    "NO_LICENSE",
    "AnyLicenseInfo",
    "ExtractedLicense",
    "LicenseSet",
    "ListedLicense",
    "WithException",
    "combine",
]
