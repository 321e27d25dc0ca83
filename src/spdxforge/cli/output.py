"""Rich output formatting helpers for the spdxforge CLI."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from spdxforge.core.document.base import BuildResult

console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool) -> None:
    """Send spdxforge's log records through rich when ``verbose`` is set.

    Calling it again replaces the rich handler instead of adding another.
    """
    if not verbose:
        return
    handler = RichHandler(console=err_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger("spdxforge")
    root.handlers = [h for h in root.handlers if not isinstance(h, RichHandler)] + [handler]
    root.setLevel(logging.DEBUG)
    root.propagate = False


def print_build_summary(result: BuildResult, path: Path) -> None:
    """Print what went into the written document.

    Args:
        result: The finalized build.
        path: Where the document was written.
    """
    document = result.document
    package = document.described_package()
    console.print(Panel(f"[bold]{document.name}[/bold]", title="SPDX SBOM Summary"))

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Schema", f"SPDX {result.schema_generation.value} ({result.output_format.name})")
    table.add_row("Package", package.name if package is not None else "-")
    table.add_row("Files", str(len(document.files)))
    table.add_row("Snippets", str(len(document.snippets)))
    table.add_row("Dependencies", str(result.dependency_count))
    table.add_row("Verification code", result.verification_code or "-")
    table.add_row("Output", str(path))
    console.print(table)

    if result.warnings:
        print_warnings(result.warnings)


def print_warnings(warnings: list[str]) -> None:
    table = Table(title="Warnings", show_header=False)
    table.add_column("Warning", style="yellow")
    for warning in warnings:
        table.add_row(warning)
    console.print(table)


def print_violations(violations: list[str]) -> None:
    """Print every verification violation of a rejected document."""
    header = f"SPDX document failed verification ({len(violations)} problems):"
    err_console.print(Text(header, style="bold red"))
    for violation in violations:
        err_console.print(Text(f"  - {violation}", style="red"))


def print_license_mappings(rows: list[dict[str, Any]]) -> None:
    """Print a license lookup table.

    Args:
        rows: Dicts with ``query``, ``license``, ``listed`` and
            ``deprecated`` keys.
    """
    table = Table(title="License Mapping", show_header=True, header_style="bold")
    table.add_column("Query", style="bold")
    table.add_column("License")
    table.add_column("Listed", justify="center")
    table.add_column("Deprecated", justify="center")
    for row in rows:
        listed = Text("yes", style="green") if row["listed"] else Text("no", style="yellow")
        deprecated = Text("yes", style="red") if row["deprecated"] else Text("-", style="dim")
        table.add_row(row["query"], row["license"], listed, deprecated)
    console.print(table)


def print_json(data: Any) -> None:
    """Print data as formatted JSON to stdout."""
    console.print_json(json.dumps(data, default=str))
