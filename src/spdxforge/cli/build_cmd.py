"""``spdxforge build <descriptor>`` -- Assemble and write an SPDX SBOM.

Loads the YAML project descriptor, runs the whole pipeline (project
package, file collection, license resolution, dependency mapping,
verification) and writes the document next to the descriptor unless
``--output`` says otherwise.

Exit Codes:
    0 -- SBOM written.
    1 -- The document failed verification, or a file could not be read.
    2 -- The descriptor or the options are invalid.
"""

from __future__ import annotations

import dataclasses
import sys
from pathlib import Path

import click

from spdxforge.cli.output import configure_logging, print_build_summary, print_violations
from spdxforge.config import BuildOptions, OutputFormat, SchemaGeneration
from spdxforge.core.document import assemble_document
from spdxforge.descriptor import ProjectDescriptor, load_descriptor
from spdxforge.exceptions import ConfigurationError, SpdxForgeError, VerificationError
from spdxforge.serializers import default_output_path, write_document


def _apply_overrides(
    options: BuildOptions,
    schema: str | None,
    output_format: str | None,
    no_transitive: bool,
    continue_on_error: bool,
) -> BuildOptions:
    """Layer command-line switches over the descriptor's options.

    Raises:
        ConfigurationError: If the combination is invalid.
    """
    changes: dict[str, object] = {}
    if schema is not None:
        changes["schema_generation"] = SchemaGeneration.parse(schema)
        changes["output_format"] = None
    if output_format is not None:
        fmt = OutputFormat.parse(output_format)
        changes["output_format"] = fmt
        if schema is None:
            changes["schema_generation"] = fmt.schema_generation
    if no_transitive:
        changes["include_transitive_dependencies"] = False
    if continue_on_error:
        changes["continue_on_error"] = True
    return dataclasses.replace(options, **changes) if changes else options


def _output_path(descriptor: ProjectDescriptor, options: BuildOptions, output: Path | None) -> Path:
    if output is not None:
        return output
    base = descriptor.path.parent if descriptor.path is not None else Path.cwd()
    coordinate = descriptor.project.coordinate
    name = f"{coordinate.name}-{coordinate.version}" if coordinate.version else coordinate.name
    return default_output_path(base, name, options.resolved_output_format)


def _relative_to_root(path: Path, root: Path | None) -> tuple[str, ...]:
    """The output file as a project-relative path, for the verification code exclusions."""
    if root is None:
        return ()
    try:
        return (path.resolve().relative_to(root.resolve()).as_posix(),)
    except ValueError:
        return ()


@click.command("build")
@click.argument("descriptor", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (default: <name>-<version><suffix> next to the descriptor).",
)
@click.option(
    "--schema",
    type=click.Choice(["v2", "v3"], case_sensitive=False),
    default=None,
    help="SPDX schema generation (overrides the descriptor).",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["json", "rdf-xml", "json-ld"], case_sensitive=False),
    default=None,
    help="Output format; implies the schema generation when --schema is absent.",
)
@click.option("--no-transitive", is_flag=True, help="Map direct dependencies only.")
@click.option("--continue-on-error", is_flag=True, help="Skip unreadable files instead of failing.")
@click.option("--verbose", "-v", is_flag=True, help="Log every stage of the build.")
def build_command(
    descriptor: Path,
    output: Path | None,
    schema: str | None,
    output_format: str | None,
    no_transitive: bool,
    continue_on_error: bool,
    verbose: bool,
) -> None:
    """Build the SPDX SBOM described by DESCRIPTOR.

    DESCRIPTOR is a spdxforge.yaml file, or a directory containing one.

    Exit code 0 on success, 1 on verification or collection failure,
    2 on configuration errors.
    """
    configure_logging(verbose)
    try:
        loaded = load_descriptor(descriptor)
        options = _apply_overrides(loaded.options, schema, output_format, no_transitive, continue_on_error)
    except ConfigurationError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(2)

    out_path = _output_path(loaded, options, output)
    try:
        result = assemble_document(
            loaded.project,
            loaded.graph,
            options,
            exclude_paths=_relative_to_root(out_path, loaded.project.root_directory),
        )
        write_document(result, out_path)
    except VerificationError as exc:
        print_violations(exc.violations)
        sys.exit(1)
    except ConfigurationError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(2)
    except SpdxForgeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    print_build_summary(result, out_path)
    click.echo(f"\nSPDX document written to: {out_path}")
    sys.exit(0)
