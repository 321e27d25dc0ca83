"""Walk file sets, hash their files and compute the package verification code.

The collection algorithm is written once here; the SPDX 2 and SPDX 3
subclasses only decide how a file, a snippet, the package-to-file links and
the verification code are represented in their document model.

Algorithm
---------
1. Select files from every file set (sorted walk, Ant-style patterns).  A
   file selected twice under the same output path is kept once; two
   different files claiming one output path are a ``CollectionError``.
2. Hash every selected file.  SHA1 is always computed; further configured
   algorithms are added when ``hashlib`` provides them.  Hashing may run on
   a thread pool, but results are consumed in sorted-path order.
3. Create one file element per hashed file, with the default (or the
   closest path-specific) file information, and its snippets.
4. Link the files to the package and attach the verification code:
   SHA-1 over the sorted, concatenated file SHA-1 values, excluding the
   caller-supplied paths.

License fields are not touched here; the license manager fills them in the
next build stage from the ``CollectedFile`` records this collector keeps.
"""

from __future__ import annotations

import hashlib
import logging
import posixpath
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from spdxforge.core.collector.filesets import iter_file_set, normalize_path
from spdxforge.core.project import DefaultFileInfo, FileSetSpec, SnippetInfo
from spdxforge.exceptions import CollectionError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# ---------------------------------------------------------------------------
# Checksums
# ---------------------------------------------------------------------------

# Algorithm name -> (hashlib name, blake2b digest size)
_ALGORITHMS: dict[str, tuple[str, int | None]] = {
    "SHA1": ("sha1", None),
    "SHA224": ("sha224", None),
    "SHA256": ("sha256", None),
    "SHA384": ("sha384", None),
    "SHA512": ("sha512", None),
    "SHA3_256": ("sha3_256", None),
    "SHA3_384": ("sha3_384", None),
    "SHA3_512": ("sha3_512", None),
    "BLAKE2b_256": ("blake2b", 32),
    "BLAKE2b_384": ("blake2b", 48),
    "BLAKE2b_512": ("blake2b", 64),
    "MD2": ("md2", None),
    "MD4": ("md4", None),
    "MD5": ("md5", None),
    "MD6": ("md6", None),
}

SUPPORTED_CHECKSUM_ALGORITHMS = tuple(_ALGORITHMS)


def _algorithm_key(name: str) -> str:
    return name.strip().upper().replace("-", "").replace("_", "")


_BY_KEY = {_algorithm_key(name): name for name in _ALGORITHMS}


def canonical_algorithm(name: str) -> str | None:
    """``"sha-256"`` -> ``"SHA256"``, ``"blake2b_256"`` -> ``"BLAKE2b_256"``."""
    return _BY_KEY.get(_algorithm_key(name))


def _new_hash(algorithm: str) -> Any:
    hashlib_name, digest_size = _ALGORITHMS[algorithm]
    if digest_size is not None:
        return hashlib.blake2b(digest_size=digest_size)
    return hashlib.new(hashlib_name)


def resolve_algorithms(requested: Iterable[str]) -> tuple[list[str], list[str]]:
    """Split requested algorithm names into ``(usable, unusable)``.

    SHA1 is always the first usable algorithm.  Names that are unknown, or
    known but missing from this interpreter's ``hashlib`` (MD2, MD6 and
    often MD4), are returned as unusable.
    """
    usable = ["SHA1"]
    unusable: list[str] = []
    for name in requested:
        algorithm = canonical_algorithm(name)
        if algorithm is None:
            unusable.append(name)
            continue
        if algorithm in usable:
            continue
        try:
            _new_hash(algorithm)
        except ValueError:
            unusable.append(algorithm)
            continue
        usable.append(algorithm)
    return usable, unusable


def _digest_file(path: Path, algorithms: list[str]) -> tuple[dict[str, str], int]:
    hashers = {algorithm: _new_hash(algorithm) for algorithm in algorithms}
    size = 0
    try:
        with path.open("rb") as fh:
            for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
                size += len(chunk)
                for hasher in hashers.values():
                    hasher.update(chunk)
    except OSError as exc:
        raise CollectionError(path, "Unable to read file", exc) from exc
    return {algorithm: hasher.hexdigest() for algorithm, hasher in hashers.items()}, size


def compute_checksums(path: Path, algorithms: Iterable[str] = ("SHA1",)) -> dict[str, str]:
    """Hex digests of ``path`` keyed by canonical algorithm name.

    Raises:
        CollectionError: If the file cannot be read.
    """
    usable, _ = resolve_algorithms(algorithms)
    checksums, _ = _digest_file(Path(path), usable)
    return checksums


def verification_code(sha1_by_path: Mapping[str, str], excluded: Iterable[str] = ()) -> str:
    """Package verification code over ``sha1_by_path`` minus ``excluded`` paths.

    The SHA-1 values are sorted before concatenation, so the result does not
    depend on the order files were collected in.
    """
    skip = {normalize_path(p) for p in excluded}
    values = sorted(
        sha1.lower() for path, sha1 in sha1_by_path.items() if normalize_path(path) not in skip
    )
    return hashlib.sha1("".join(values).encode("ascii")).hexdigest()


# ---------------------------------------------------------------------------
# File types
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def file_type_table() -> dict[str, tuple[str, ...]]:
    """Lower-case extension -> SPDX file types, from the bundled YAML table."""
    raw = yaml.safe_load(
        resources.files("spdxforge.data").joinpath("file_types.yaml").read_text(encoding="utf-8")
    )
    table: dict[str, list[str]] = {}
    for file_type, extensions in raw.items():
        for ext in extensions:
            # YAML reads bare man-page sections such as 1 as integers.
            table.setdefault(str(ext).lower(), []).append(str(file_type).upper())
    return {ext: tuple(types) for ext, types in table.items()}


def classify(path: str) -> tuple[str, ...]:
    """File types for ``path`` by extension; ``("OTHER",)`` when unknown."""
    name = posixpath.basename(path)
    ext = posixpath.splitext(name)[1]
    key = ext[1:].lower() if ext else name.lower()
    return file_type_table().get(key, ("OTHER",))


# ---------------------------------------------------------------------------
# CollectedFile
# ---------------------------------------------------------------------------


@dataclass
class CollectedFile:
    """One collected file together with the element created for it."""

    source: Path
    path: str
    file_types: tuple[str, ...]
    checksums: dict[str, str]
    size: int
    info: DefaultFileInfo
    element: Any = None
    snippets: list[tuple[SnippetInfo, Any]] = field(default_factory=list)

    @property
    def sha1(self) -> str:
        return self.checksums["SHA1"]

    @property
    def is_source(self) -> bool:
        return "SOURCE" in self.file_types


# ---------------------------------------------------------------------------
# FileCollector
# ---------------------------------------------------------------------------


class FileCollector(ABC):
    """Collect files into one document's project package."""

    def __init__(
        self,
        document: Any,
        *,
        checksum_algorithms: Iterable[str] = ("SHA1",),
        continue_on_error: bool = False,
        hash_workers: int = 1,
    ) -> None:
        self.document = document
        self.continue_on_error = continue_on_error
        self.hash_workers = max(1, hash_workers)
        self.algorithms, unusable = resolve_algorithms(checksum_algorithms)
        for name in unusable:
            self._warn(f"Checksum algorithm {name} is not supported; omitting it")
        self.collected: dict[str, CollectedFile] = {}
        self._sources: dict[str, Path] = {}

    # -- Schema hooks ---------------------------------------------------------

    @abstractmethod
    def _create_file(self, entry: CollectedFile) -> Any:
        """Create and add the file element for ``entry``."""

    @abstractmethod
    def _create_snippet(self, entry: CollectedFile, snippet: SnippetInfo, index: int) -> Any:
        """Create and add a snippet element of ``entry``'s file."""

    @abstractmethod
    def _link_files(self, package: Any, entries: list[CollectedFile]) -> None:
        """Record that ``package`` contains the files of ``entries``."""

    @abstractmethod
    def _set_verification_code(self, package: Any, value: str, excluded: list[str]) -> None:
        """Attach the verification code to ``package``."""

    # -- Collection -----------------------------------------------------------

    def collect(
        self,
        file_sets: Iterable[FileSetSpec],
        package: Any,
        *,
        default_info: DefaultFileInfo | None = None,
        path_specific: Mapping[str, DefaultFileInfo] | None = None,
        exclude_paths: Iterable[str] = (),
        root: Path | None = None,
    ) -> str:
        """Collect all files of ``file_sets`` into ``package``.

        Args:
            file_sets: File-set specifications to walk.
            package: The package element that contains the files.
            default_info: File information for files without a
                path-specific entry.
            path_specific: File information keyed by output path of a file
                or of one of its parent directories.
            exclude_paths: Output paths left out of the verification code.
            root: Project root directory; output paths are relative to it.

        Returns:
            The package verification code value.

        Raises:
            CollectionError: On an unreadable file (unless continuing on
                errors), a duplicate output path or an invalid snippet range.
        """
        default_info = default_info or DefaultFileInfo()
        specific = {normalize_path(k): v for k, v in (path_specific or {}).items()}
        selected = self._select(file_sets, root)
        digests = self._hash_all(selected)

        entries: list[CollectedFile] = []
        for path, source in selected:
            if path not in digests:
                continue
            checksums, size = digests[path]
            entry = CollectedFile(
                source=source,
                path=path,
                file_types=classify(path),
                checksums=checksums,
                size=size,
                info=self.file_info_for(path, default_info, specific),
            )
            entry.element = self._create_file(entry)
            for index, snippet in enumerate(entry.info.snippets):
                entry.snippets.append((snippet, self._create_snippet(entry, snippet, index)))
            self.collected[path] = entry
            entries.append(entry)
            logger.debug("Collected file %s (%s)", path, ", ".join(entry.file_types))

        self._link_files(package, entries)
        skip = {normalize_path(p) for p in exclude_paths}
        excluded = sorted(p for p in self.collected if p in skip)
        value = verification_code({p: e.sha1 for p, e in self.collected.items()}, excluded)
        self._set_verification_code(package, value, excluded)
        return value

    def _select(self, file_sets: Iterable[FileSetSpec], root: Path | None = None) -> list[tuple[str, Path]]:
        chosen: dict[str, Path] = {}
        for spec in file_sets:
            for source, path in iter_file_set(spec, root):
                resolved = source.resolve()
                previous = chosen.get(path) or self._sources.get(path)
                if previous is not None:
                    if previous == resolved:
                        logger.debug("File %s already collected; ignoring", path)
                        continue
                    raise CollectionError(path, f"Duplicate file path (also collected from {previous})")
                chosen[path] = resolved
        self._sources.update(chosen)
        return sorted(chosen.items())

    def _hash_all(self, selected: list[tuple[str, Path]]) -> dict[str, tuple[dict[str, str], int]]:
        results: dict[str, tuple[dict[str, str], int]] = {}
        if self.hash_workers > 1 and len(selected) > 1:
            with ThreadPoolExecutor(max_workers=self.hash_workers) as pool:
                futures = [
                    (path, pool.submit(_digest_file, source, self.algorithms)) for path, source in selected
                ]
                for path, future in futures:
                    try:
                        results[path] = future.result()
                    except CollectionError as exc:
                        self._on_error(exc)
            return results
        for path, source in selected:
            try:
                results[path] = _digest_file(source, self.algorithms)
            except CollectionError as exc:
                self._on_error(exc)
        return results

    def _on_error(self, exc: CollectionError) -> None:
        if not self.continue_on_error:
            raise exc
        self._warn(f"Skipping file that could not be collected: {exc}")

    @staticmethod
    def file_info_for(
        path: str,
        default: DefaultFileInfo,
        specific: Mapping[str, DefaultFileInfo],
    ) -> DefaultFileInfo:
        """The closest path-specific information for ``path``, else ``default``."""
        candidate = path
        while candidate:
            info = specific.get(candidate)
            if info is not None:
                logger.debug("Using path-specific file information %r for %s", candidate, path)
                return info
            candidate = posixpath.dirname(candidate)
        return default

    def _warn(self, message: str) -> None:
        logger.warning("%s", message)
        self.document.warnings.append(message)
