"""Immutable lookup table of registered (SPDX-listed) licenses.

The registry answers three questions for the license resolver: is this a
listed license identifier, which listed license does this URL point at, and
which listed license carries this name.  It is built once per process (or
per test) and passed explicitly into every resolver, never consulted as a
module-level global.

Sources
-------
- The bundled ``spdxforge/data/licenses.json``, a subset of the SPDX license
  list in the same JSON layout as ``https://spdx.org/licenses/licenses.json``.
- The live list at spdx.org, fetched with ``httpx`` when the caller opts out
  of local-only mode.  Any network or decoding failure falls back to the
  bundled copy with a warning.

URL keys are normalised (``https`` becomes ``http``, case-folded, trailing
slash removed).  A URL claimed by more than one license is ambiguous and is
dropped, after which a short list of well-known URLs is pinned to the
license it historically identified.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from typing import Any

import httpx

from spdxforge.exceptions import LicenseMappingError

logger = logging.getLogger(__name__)

SPDX_LICENSE_URL_PREFIX = "https://spdx.org/licenses/"
LISTED_LICENSE_JSON_URL = SPDX_LICENSE_URL_PREFIX + "licenses.json"

# Timeout for fetching the license list (seconds).
DEFAULT_TIMEOUT: float = 10.0

USER_AGENT: str = "spdxforge-license-registry/0.1"

# Well-known URLs which are missing from, or ambiguous in, the license list.
MANUAL_URL_MAPPINGS: dict[str, str] = {
    "http://www.apache.org/licenses/LICENSE-2.0.txt": "Apache-2.0",
    "http://www.opensource.org/licenses/cpl1.0.txt": "CPL-1.0",
    "http://www.opensource.org/licenses/mit-license.php": "MIT",
    "http://www.mozilla.org/MPL/MPL-1.0.txt": "MPL-1.0",
}

_WS_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def normalize_url(url: str) -> str:
    """Normalise a license URL for lookup."""
    text = _WS_RE.sub("", url.strip()).lower()
    if text.startswith("https://"):
        text = "http://" + text[len("https://"):]
    return text.rstrip("/")


def normalize_name(name: str) -> str:
    """Normalise a license name: collapse whitespace and case-fold."""
    return _WS_RE.sub(" ", name.strip()).lower()


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LicenseRecord:
    """One entry of the license list."""

    license_id: str
    name: str
    see_also: tuple[str, ...] = ()
    deprecated: bool = False

    @classmethod
    def from_json(cls, entry: Mapping[str, Any]) -> LicenseRecord:
        return cls(
            license_id=str(entry["licenseId"]),
            name=str(entry.get("name", entry["licenseId"])),
            see_also=tuple(str(u) for u in entry.get("seeAlso") or ()),
            deprecated=bool(entry.get("isDeprecatedLicenseId", False)),
        )


# ---------------------------------------------------------------------------
# LicenseRegistry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LicenseRegistry:
    """Read-only mapping of license ids, names and URLs to listed licenses.

    Build it with ``from_records`` (or ``bundled``/``fetch``); the
    constructor fields are the derived lookup tables.
    """

    list_version: str
    _ids: Mapping[str, str] = field(repr=False)
    _names: Mapping[str, str] = field(repr=False)
    _urls: Mapping[str, str] = field(repr=False)
    _exceptions: Mapping[str, str] = field(repr=False)
    _deprecated: frozenset[str] = field(default=frozenset(), repr=False)

    @classmethod
    def from_records(
        cls,
        records: Iterable[LicenseRecord],
        *,
        list_version: str = "",
        exception_ids: Iterable[str] = (),
        url_overrides: Mapping[str, str] | None = None,
    ) -> LicenseRegistry:
        """Derive the lookup tables from license list records."""
        ids: dict[str, str] = {}
        names: dict[str, str] = {}
        urls: dict[str, str] = {}
        ambiguous: set[str] = set()
        deprecated: set[str] = set()
        records = list(records)

        for rec in records:
            ids[rec.license_id.lower()] = rec.license_id
            if rec.deprecated:
                deprecated.add(rec.license_id)
            urls[normalize_url(SPDX_LICENSE_URL_PREFIX + rec.license_id)] = rec.license_id

        # Non-deprecated names win over deprecated aliases with the same name.
        for rec in sorted(records, key=lambda r: r.deprecated, reverse=True):
            names[normalize_name(rec.name)] = rec.license_id

        for rec in records:
            for url in rec.see_also:
                key = normalize_url(url)
                if key in ambiguous:
                    continue
                if key in urls and urls[key] != rec.license_id:
                    ambiguous.add(key)
                    continue
                urls[key] = rec.license_id
        for key in ambiguous:
            del urls[key]

        overrides = MANUAL_URL_MAPPINGS if url_overrides is None else url_overrides
        for url, license_id in overrides.items():
            urls[normalize_url(url)] = license_id

        exceptions = {e.lower(): e for e in exception_ids}
        return cls(
            list_version=list_version,
            _ids=ids,
            _names=names,
            _urls=urls,
            _exceptions=exceptions,
            _deprecated=frozenset(deprecated),
        )

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> LicenseRegistry:
        """Build a registry from the SPDX ``licenses.json`` layout.

        Raises:
            LicenseMappingError: If the document has no ``licenses`` array.
        """
        entries = data.get("licenses") if isinstance(data, Mapping) else None
        if not isinstance(entries, list):
            raise LicenseMappingError("License list JSON has no 'licenses' array")
        records = [LicenseRecord.from_json(e) for e in entries if "licenseId" in e]
        exceptions = [
            str(e["licenseExceptionId"])
            for e in data.get("exceptions") or ()
            if "licenseExceptionId" in e
        ]
        return cls.from_records(
            records,
            list_version=str(data.get("licenseListVersion", "")),
            exception_ids=exceptions,
        )

    @classmethod
    def bundled(cls) -> LicenseRegistry:
        """The registry built from the license list shipped with spdxforge."""
        return _bundled_registry()

    @classmethod
    def fetch(cls, url: str = LISTED_LICENSE_JSON_URL, timeout: float = DEFAULT_TIMEOUT) -> LicenseRegistry:
        """Fetch the current license list, falling back to the bundled copy."""
        try:
            resp = httpx.get(
                url,
                timeout=timeout,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            )
            resp.raise_for_status()
            return cls.from_json(resp.json())
        except httpx.TimeoutException:
            logger.warning("Timeout fetching license list from %s; using bundled copy", url)
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "HTTP %d fetching license list from %s; using bundled copy",
                exc.response.status_code, url,
            )
        except (httpx.RequestError, ValueError, LicenseMappingError) as exc:
            logger.warning("Unable to load license list from %s (%s); using bundled copy", url, exc)
        return cls.bundled()

    # -- Queries ------------------------------------------------------------

    def canonical_id(self, license_id: str) -> str | None:
        """The listed identifier with canonical casing, or ``None``."""
        return self._ids.get(license_id.strip().lower())

    def is_listed(self, license_id: str) -> bool:
        return self.canonical_id(license_id) is not None

    def is_deprecated(self, license_id: str) -> bool:
        canonical = self.canonical_id(license_id)
        return canonical is not None and canonical in self._deprecated

    def canonical_exception_id(self, exception_id: str) -> str | None:
        return self._exceptions.get(exception_id.strip().lower())

    def lookup_url(self, url: str) -> str | None:
        """Listed identifier for a license URL, or ``None``."""
        if not url or not url.strip():
            return None
        return self._urls.get(normalize_url(url))

    def lookup_name(self, name: str) -> str | None:
        """Listed identifier for a license name or identifier, or ``None``."""
        if not name or not name.strip():
            return None
        return self.canonical_id(name) or self._names.get(normalize_name(name))

    @property
    def license_ids(self) -> list[str]:
        return sorted(self._ids.values())

    def __len__(self) -> int:
        return len(self._ids)


@lru_cache(maxsize=1)
def _bundled_registry() -> LicenseRegistry:
    raw = resources.files("spdxforge.data").joinpath("licenses.json").read_text(encoding="utf-8")
    return LicenseRegistry.from_json(json.loads(raw))


def load_registry(only_use_local_licenses: bool = True) -> LicenseRegistry:
    """Return the bundled registry, or the live one when allowed."""
    if only_use_local_licenses:
        return LicenseRegistry.bundled()
    return LicenseRegistry.fetch()
