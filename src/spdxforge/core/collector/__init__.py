"""Checksum/file collection for both SPDX schema generations."""

from spdxforge.core.collector.base import (
    SUPPORTED_CHECKSUM_ALGORITHMS,
    CollectedFile,
    FileCollector,
    canonical_algorithm,
    classify,
    compute_checksums,
    verification_code,
)
from spdxforge.core.collector.filesets import glob_to_regex, iter_file_set, normalize_path
from spdxforge.core.collector.v2 import SpdxV2FileCollector
from spdxforge.core.collector.v3 import SpdxV3FileCollector

__all__ = [
    "CollectedFile",
    "FileCollector",
    "SUPPORTED_CHECKSUM_ALGORITHMS",
    "SpdxV2FileCollector",
    "SpdxV3FileCollector",
    "canonical_algorithm",
    "classify",
    "compute_checksums",
    "glob_to_regex",
    "iter_file_set",
    "normalize_path",
    "verification_code",
]
