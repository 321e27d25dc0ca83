"""Deterministic element identifiers.

Identifiers are derived from a seed string (a coordinate, a file path, a
relationship triple) so that rebuilding the same project yields the same
ids.  A seed used more than once gets a counter suffix ``-0``, ``-1``, ...
One generator belongs to one document; it is never shared between builds.
"""

from __future__ import annotations

import hashlib
import re
from collections import defaultdict

SPDX_REF_PREFIX = "SPDXRef-"
DOCUMENT_REF_PREFIX = "DocumentRef-"

_INVALID_REF_CHARS = re.compile(r"[^A-Za-z0-9.\-]")


def fix_external_ref_id(text: str) -> str:
    """Replace characters not allowed in an SPDX id with ``-``."""
    return _INVALID_REF_CHARS.sub("-", text)


class IdGenerator:
    """Per-document generator of ``SPDXRef-`` identifiers."""

    def __init__(self) -> None:
        self._counts: dict[str, int] = defaultdict(int)

    def generate(self, seed: str) -> str:
        digest = hashlib.sha1(seed.encode("utf-8")).hexdigest()[:12]
        count = self._counts[digest]
        self._counts[digest] += 1
        return f"{SPDX_REF_PREFIX}gnrtd{digest}-{count}"

    def readable(self, kind: str, label: str) -> str:
        """An id of the form ``SPDXRef-<kind>-<label>`` with a counter on reuse."""
        base = f"{SPDX_REF_PREFIX}{kind}-{fix_external_ref_id(label)}"
        count = self._counts[base]
        self._counts[base] += 1
        return base if count == 0 else f"{base}-{count}"
