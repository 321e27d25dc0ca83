"""File-set walking with Ant-style include/exclude patterns.

Patterns are matched against the path relative to the file set's base
directory, always with forward slashes:

- ``**`` matches any number of directories (including none),
- ``*`` matches any characters except ``/``,
- ``?`` matches exactly one character except ``/``.

A pattern ending in ``/`` is shorthand for ``<pattern>**``.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Iterator
from functools import lru_cache
from pathlib import Path

from spdxforge.core.project import FileSetSpec

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Forward slashes, no leading ``./``, no duplicate separators."""
    text = path.replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    text = re.sub(r"/{2,}", "/", text)
    if text not in ("", "."):
        text = posixpath.normpath(text)
    return "" if text == "." else text


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile one Ant-style pattern into an anchored regular expression."""
    pattern = pattern.strip()
    directory = pattern.endswith("/")
    pattern = normalize_path(pattern)
    if directory or not pattern:
        pattern = f"{pattern}/**" if pattern else "**"
    out: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(out) + "$")


def matches_any(relative_path: str, patterns: tuple[str, ...] | list[str]) -> bool:
    return any(glob_to_regex(p).match(relative_path) for p in patterns)


def iter_file_set(spec: FileSetSpec, root: Path | None = None) -> Iterator[tuple[Path, str]]:
    """Yield ``(source path, output path)`` for every selected regular file.

    Output paths are relative to ``root`` (the project root directory), or
    to the set's own directory when there is no root or the set lies
    outside it.  A configured ``output_directory`` replaces that prefix and
    is joined with the base-relative path.  Output paths are normalised and
    the walk order is sorted so results do not depend on the filesystem.
    """
    base = Path(spec.directory)
    if not base.is_dir():
        logger.warning("File set directory %s does not exist; skipping", base)
        return
    prefix = spec.output_directory or _root_prefix(base, root)
    excludes = spec.effective_excludes
    for path in sorted(base.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(base).as_posix()
        if not matches_any(relative, spec.includes) or matches_any(relative, excludes):
            continue
        output = posixpath.join(prefix, relative) if prefix else relative
        yield path, normalize_path(output)


def _root_prefix(base: Path, root: Path | None) -> str:
    if root is None:
        return ""
    try:
        prefix = base.resolve().relative_to(Path(root).resolve()).as_posix()
    except ValueError:
        logger.warning("File set directory %s is outside the project root %s", base, root)
        return ""
    return "" if prefix == "." else prefix
