"""spdxforge: SPDX Software Bill of Materials assembly for build pipelines."""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "Varun Pratap Bhardwaj"
__author_email__ = "varun.pratap.bhardwaj@gmail.com"
__license__ = "MIT"

# Creator string stamped into every generated document.
TOOL_NAME = "spdxforge"
TOOL_CREATOR = f"Tool: {TOOL_NAME}-{__version__}"
