"""Parser for SPDX license expression strings.

Recognises exactly what the assembly engine needs: registered license
identifiers, ``LicenseRef-`` identifiers known to the document,
``NOASSERTION``, ``NONE``, the ``AND``/``OR``/``WITH`` operators and
parentheses.  ``AND`` binds tighter than ``OR``; ``WITH`` binds tightest.
Anything else raises ``LicenseMappingError``.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from spdxforge.core.licenses.registry import LicenseRegistry
from spdxforge.core.model.licenses import (
    LICENSE_REF_PREFIX,
    NO_ASSERTION,
    NO_LICENSE,
    NOASSERTION,
    NONE,
    AnyLicenseInfo,
    ListedLicense,
    LicenseSet,
    WithException,
)
from spdxforge.exceptions import LicenseMappingError

_TOKEN_RE = re.compile(r"\s*(\(|\)|[^\s()]+)")

RefResolver = Callable[[str], AnyLicenseInfo]


def _flatten(members: list[AnyLicenseInfo], operator: str) -> AnyLicenseInfo:
    """Merge nested sets with the same operator and drop repeated members."""
    flat: list[AnyLicenseInfo] = []
    for member in members:
        nested = (member,)
        if isinstance(member, LicenseSet) and member.operator == operator:
            nested = member.members
        for item in nested:
            if item not in flat:
                flat.append(item)
    return flat[0] if len(flat) == 1 else LicenseSet(tuple(flat), operator)


def tokenize(text: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            break
        tokens.append(match.group(1))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str, registry: LicenseRegistry, resolve_ref: RefResolver) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0
        self.registry = registry
        self.resolve_ref = resolve_ref

    def fail(self, message: str) -> LicenseMappingError:
        return LicenseMappingError(f"{message} in license expression {self.text!r}")

    def peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> str:
        token = self.peek()
        if token is None:
            raise self.fail("Unexpected end")
        self.pos += 1
        return token

    def parse(self) -> AnyLicenseInfo:
        if not self.tokens:
            raise self.fail("Empty expression")
        result = self.parse_or()
        if self.peek() is not None:
            raise self.fail(f"Unexpected token {self.peek()!r}")
        return result

    def parse_or(self) -> AnyLicenseInfo:
        members = [self.parse_and()]
        while (self.peek() or "").upper() == "OR":
            self.take()
            members.append(self.parse_and())
        return _flatten(members, "OR")

    def parse_and(self) -> AnyLicenseInfo:
        members = [self.parse_with()]
        while (self.peek() or "").upper() == "AND":
            self.take()
            members.append(self.parse_with())
        return _flatten(members, "AND")

    def parse_with(self) -> AnyLicenseInfo:
        lic = self.parse_atom()
        if (self.peek() or "").upper() == "WITH":
            self.take()
            exception = self.take()
            canonical = self.registry.canonical_exception_id(exception)
            if canonical is None:
                raise self.fail(f"Unknown license exception {exception!r}")
            return WithException(lic, canonical)
        return lic

    def parse_atom(self) -> AnyLicenseInfo:
        token = self.take()
        if token == "(":
            inner = self.parse_or()
            if self.take() != ")":
                raise self.fail("Missing closing parenthesis")
            return inner
        if token == ")" or token.upper() in ("AND", "OR", "WITH"):
            raise self.fail(f"Unexpected token {token!r}")
        return self.identifier(token)

    def identifier(self, token: str) -> AnyLicenseInfo:
        upper = token.upper()
        if upper == NOASSERTION:
            return NO_ASSERTION
        if upper == NONE:
            return NO_LICENSE
        if token.startswith(LICENSE_REF_PREFIX) or token.startswith("DocumentRef-"):
            return self.resolve_ref(token)
        canonical = self.registry.canonical_id(token)
        if canonical is None:
            raise self.fail(f"Unregistered license identifier {token!r}")
        return ListedLicense(canonical)


def parse_license_expression(
    text: str,
    registry: LicenseRegistry,
    resolve_ref: RefResolver,
) -> AnyLicenseInfo:
    """Parse ``text`` into a license value.

    Args:
        text: The license expression.
        registry: Registry used to recognise listed identifiers.
        resolve_ref: Called with every ``LicenseRef-``/``DocumentRef-`` token;
            returns the matching license or raises ``LicenseMappingError``.

    Raises:
        LicenseMappingError: If the expression is empty or malformed, or
            names an unregistered identifier.
    """
    if text is None:
        raise LicenseMappingError("License expression is missing")
    return _Parser(text, registry, resolve_ref).parse()
