"""``spdxforge licenses <query>...`` -- Look up license names and URLs.

Each query is mapped exactly as a declared license in a descriptor would
be: a URL through the registry's cross references, anything else as a
license id or name.  Queries that match no listed license show the
``LicenseRef-`` id an SBOM would mint for them.

Exit Codes:
    0 -- Every query maps to a listed license.
    1 -- At least one query would become an extracted license.
    2 -- A query is blank or cannot be mapped.
"""

from __future__ import annotations

import sys

import click

from spdxforge.cli.output import print_json, print_license_mappings
from spdxforge.core.licenses import SpdxV2LicenseManager, load_registry
from spdxforge.core.model.licenses import ListedLicense
from spdxforge.core.model.v2 import SpdxDocument
from spdxforge.core.project import DeclaredLicense
from spdxforge.exceptions import LicenseMappingError


def _is_url(query: str) -> bool:
    return "://" in query


@click.command("licenses")
@click.argument("queries", nargs=-1, required=True)
@click.option(
    "--remote",
    is_flag=True,
    default=False,
    help="Use the current license list from spdx.org instead of the bundled one.",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON.")
def licenses_command(queries: tuple[str, ...], remote: bool, as_json: bool) -> None:
    """Show how license names or URLs map to SPDX license ids."""
    registry = load_registry(only_use_local_licenses=not remote)
    scratch = SpdxDocument(name="licenses", namespace="urn:spdxforge:licenses", created="")
    manager = SpdxV2LicenseManager(scratch, registry)

    rows = []
    for query in queries:
        declared = DeclaredLicense(url=query) if _is_url(query) else DeclaredLicense(name=query)
        try:
            info = manager.map_declared_license(declared)
        except LicenseMappingError as exc:
            click.echo(f"Error: {query!r}: {exc}", err=True)
            sys.exit(2)
        listed = isinstance(info, ListedLicense)
        rows.append({
            "query": query,
            "license": info.render(),
            "listed": listed,
            "deprecated": listed and registry.is_deprecated(info.render()),
        })

    if as_json:
        print_json({"license_list_version": registry.list_version, "mappings": rows})
    else:
        print_license_mappings(rows)
    sys.exit(0 if all(row["listed"] for row in rows) else 1)
