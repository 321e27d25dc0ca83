"""spdxforge CLI: SPDX SBOM assembly from a project descriptor.

Entry point for the ``spdxforge`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    build     -- Assemble, verify and write the SBOM described by a descriptor.
    licenses  -- Show how license names and URLs map through the registry.

Usage::

    spdxforge build spdxforge.yaml
    spdxforge build . --schema v3 --output target/demo.spdx3.json
    spdxforge licenses "MIT License" https://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import click

from spdxforge import __version__
from spdxforge.cli.build_cmd import build_command
from spdxforge.cli.licenses_cmd import licenses_command


@click.group()
@click.version_option(version=__version__, prog_name="spdxforge")
def cli() -> None:
    """spdxforge: SPDX 2.3 and SPDX 3.0.1 SBOMs for your builds.

    Collects the project's files, resolves their licenses, maps the
    dependency graph and writes a verified SPDX document.
    """


cli.add_command(build_command)
cli.add_command(licenses_command)
