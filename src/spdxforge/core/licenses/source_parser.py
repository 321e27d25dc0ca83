"""Scan source text for embedded ``SPDX-License-Identifier:`` tags.

A tag runs to the end of its line.  When the expression opens with a
parenthesis it may continue over following lines until the matching close
parenthesis; line breaks inside it are read as spaces.  Unbalanced
parentheses raise ``SourceParseError``.

The scanner only extracts expression strings.  Turning them into license
values (and rejecting unregistered identifiers) is the license manager's
job, so the same text scan serves both schema generations.
"""

from __future__ import annotations

import re
from pathlib import Path

from spdxforge.exceptions import SourceParseError

# Files longer than this are not scanned.
MAXIMUM_SOURCE_FILE_LENGTH = 300_000

SPDX_LICENSE_PATTERN = re.compile(
    r"SPDX-License-Identifier:[ \t]*([^\n\r]+)(\n|\r|$)",
    re.IGNORECASE,
)

_WS_RE = re.compile(r"\s+")


def parse_text_for_license_tags(text: str) -> list[str]:
    """Return the distinct tag expressions in ``text``, in order of appearance.

    Raises:
        SourceParseError: If a parenthesised expression is never closed.
    """
    found: list[str] = []
    pos = 0
    while pos < len(text):
        match = SPDX_LICENSE_PATTERN.search(text, pos)
        if match is None:
            break
        expression = match.group(1).strip()
        if expression.startswith("("):
            depth = 1
            chars = ["("]
            pos = match.start(1) + 1
            while depth > 0 and pos < len(text):
                ch = text[pos]
                if ch == "(":
                    depth += 1
                elif ch == ")":
                    depth -= 1
                chars.append(" " if ch in "\r\n" else ch)
                pos += 1
            if depth > 0:
                raise SourceParseError(
                    f"Mismatched parenthesis in license tag expression {''.join(chars)!r}"
                )
            expression = "".join(chars)
        else:
            pos = match.end()
        expression = _WS_RE.sub(" ", expression).strip()
        if expression and expression not in found:
            found.append(expression)
    return found


def parse_file_for_license_tags(path: Path) -> list[str]:
    """Read ``path`` as UTF-8 text and scan it for license tags.

    Raises:
        SourceParseError: If the file cannot be read or a tag is malformed.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise SourceParseError(f"I/O error reading source file {path.name}: {exc}") from exc
    try:
        return parse_text_for_license_tags(text)
    except SourceParseError as exc:
        raise SourceParseError(f"Error parsing license tags in {path.name}: {exc}") from exc
