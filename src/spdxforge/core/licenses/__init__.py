"""License resolution: registry, expression parsing, source tag scanning, managers.

The registry is an explicitly constructed, immutable lookup table passed
into each document's license manager; nothing here keeps process-wide
mutable state.
"""

from spdxforge.core.licenses.expression import parse_license_expression
from spdxforge.core.licenses.manager import LicenseManager
from spdxforge.core.licenses.registry import (
    LicenseRecord,
    LicenseRegistry,
    load_registry,
    normalize_name,
    normalize_url,
)
from spdxforge.core.licenses.source_parser import (
    MAXIMUM_SOURCE_FILE_LENGTH,
    parse_file_for_license_tags,
    parse_text_for_license_tags,
)
from spdxforge.core.licenses.v2 import SpdxV2LicenseManager
from spdxforge.core.licenses.v3 import SpdxV3LicenseManager

__all__ = [
    "LicenseManager",
    "LicenseRecord",
    "LicenseRegistry",
    "MAXIMUM_SOURCE_FILE_LENGTH",
    "SpdxV2LicenseManager",
    "SpdxV3LicenseManager",
    "load_registry",
    "normalize_name",
    "normalize_url",
    "parse_file_for_license_tags",
    "parse_license_expression",
    "parse_text_for_license_tags",
]
