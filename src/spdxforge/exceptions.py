"""spdxforge exception hierarchy.

All public exceptions inherit from SpdxForgeError, giving build integrations a
single base class to catch when they want to handle any SBOM assembly failure
without swallowing unrelated errors.
"""

from __future__ import annotations

from pathlib import Path


class SpdxForgeError(Exception):
    """Base exception for all spdxforge errors."""


class CollectionError(SpdxForgeError):
    """Raised when a file cannot be read or hashed during collection.

    Carries the offending path and, where one exists, the underlying I/O
    error.  Also raised when two different files normalise to the same
    output path within one collection pass.
    """

    def __init__(self, path: str | Path, message: str, cause: BaseException | None = None) -> None:
        self.path = str(path)
        self.cause = cause
        super().__init__(f"{message}: {self.path}")


class LicenseMappingError(SpdxForgeError):
    """Raised when license metadata cannot be turned into license information.

    Covers empty or null license entries, unparseable license strings and
    duplicate non-standard license identifiers.
    """


class SourceParseError(LicenseMappingError):
    """Raised when an embedded SPDX-License-Identifier tag is malformed.

    The collector catches this per file, records a document warning and falls
    back to the file's default license information.
    """


class BuilderStateError(SpdxForgeError):
    """Raised when a builder stage is invoked out of order.

    Also covers structurally invalid collaborator input, such as a
    dependency graph node without a resolvable coordinate.
    """


class VerificationError(SpdxForgeError):
    """Raised when the assembled document fails its structural self-checks.

    ``violations`` holds every problem found, not just the first.
    """

    def __init__(self, violations: list[str]) -> None:
        self.violations = list(violations)
        summary = "; ".join(self.violations[:5])
        if len(self.violations) > 5:
            summary += f"; ... ({len(self.violations) - 5} more)"
        super().__init__(f"SPDX document failed verification: {summary}")


class ConfigurationError(SpdxForgeError):
    """Raised for invalid build options or malformed project descriptors."""


class SerializationError(SpdxForgeError):
    """Raised when a verified document cannot be written in the requested format."""
