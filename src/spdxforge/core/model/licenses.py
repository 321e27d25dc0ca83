"""Schema-neutral license information.

Both SPDX generations describe licenses with the same small algebra: a
listed (registered) license, a document-local extracted license, the two
special values ``NOASSERTION`` and ``NONE``, a license ``WITH`` an exception,
and conjunctive or disjunctive sets.  The resolver works on these values; the
v2 and v3 object models turn them into their own representation (a license
expression string plus extracted licensing infos for v2, expression elements
plus custom-license elements for v3).

All values are frozen dataclasses, so they hash and compare by value and can
be shared between files and packages of one document.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

NOASSERTION = "NOASSERTION"
NONE = "NONE"
LICENSE_REF_PREFIX = "LicenseRef-"


class AnyLicenseInfo:
    """Base class of every license value."""

    def render(self) -> str:
        raise NotImplementedError

    def leaves(self) -> Iterator[AnyLicenseInfo]:
        """Yield every non-set member, depth first."""
        yield self

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class ListedLicense(AnyLicenseInfo):
    """A license from the SPDX license list, by canonical identifier."""

    license_id: str

    def render(self) -> str:
        return self.license_id


@dataclass(frozen=True)
class ExtractedLicense(AnyLicenseInfo):
    """A document-local license with its full text.

    Identity is the ``LicenseRef-`` identifier; the other attributes travel
    with it so the document can emit the extracted text.
    """

    license_id: str
    text: str = field(compare=False)
    name: str = field(default="", compare=False)
    comment: str = field(default="", compare=False)
    see_also: tuple[str, ...] = field(default=(), compare=False)

    def render(self) -> str:
        return self.license_id


@dataclass(frozen=True)
class NoAssertionLicense(AnyLicenseInfo):
    def render(self) -> str:
        return NOASSERTION


@dataclass(frozen=True)
class NoneLicense(AnyLicenseInfo):
    def render(self) -> str:
        return NONE


@dataclass(frozen=True)
class WithException(AnyLicenseInfo):
    """``<license> WITH <exception-id>``."""

    license: AnyLicenseInfo
    exception_id: str

    def render(self) -> str:
        return f"{self.license.render()} WITH {self.exception_id}"

    def leaves(self) -> Iterator[AnyLicenseInfo]:
        yield from self.license.leaves()


@dataclass(frozen=True)
class LicenseSet(AnyLicenseInfo):
    """A conjunctive (``AND``) or disjunctive (``OR``) set of licenses.

    Members keep their insertion order; duplicates are dropped on
    construction through ``combine``.
    """

    members: tuple[AnyLicenseInfo, ...]
    operator: str = "OR"

    def render(self) -> str:
        inner = f" {self.operator} ".join(m.render() for m in self.members)
        return f"({inner})"

    def leaves(self) -> Iterator[AnyLicenseInfo]:
        for member in self.members:
            yield from member.leaves()


NO_ASSERTION = NoAssertionLicense()
NO_LICENSE = NoneLicense()


def combine(licenses: list[AnyLicenseInfo], operator: str = "OR") -> AnyLicenseInfo:
    """Combine licenses into one value.

    Zero licenses give ``NOASSERTION``, one gives itself, more give a set
    joined by ``operator`` with duplicates removed in first-seen order.
    """
    unique: list[AnyLicenseInfo] = []
    for lic in licenses:
        if lic not in unique:
            unique.append(lic)
    if not unique:
        return NO_ASSERTION
    if len(unique) == 1:
        return unique[0]
    return LicenseSet(tuple(unique), operator)


def extracted_licenses_in(info: AnyLicenseInfo) -> list[ExtractedLicense]:
    """Every extracted license referenced by ``info``."""
    return [leaf for leaf in info.leaves() if isinstance(leaf, ExtractedLicense)]
