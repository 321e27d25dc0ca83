"""Write finalized documents to disk.

JSON (SPDX 2.3) and JSON-LD (SPDX 3.0.1) are written from the model's
``to_dict`` output.  RDF/XML is a recognised output format for SPDX 2
documents but no codec for it ships with spdxforge.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from spdxforge.config import OutputFormat
from spdxforge.core.document.base import BuildResult
from spdxforge.exceptions import SerializationError

logger = logging.getLogger(__name__)


def to_json(result: BuildResult, indent: int = 2) -> str:
    """Serialise ``result`` in its output format.

    Raises:
        SerializationError: If the format has no codec, or does not match
            the document's schema generation.
    """
    fmt = result.output_format
    if fmt.schema_generation is not result.schema_generation:
        raise SerializationError(
            f"Cannot write an SPDX {result.schema_generation.value} document as {fmt.name}"
        )
    if fmt is OutputFormat.RDF_XML:
        raise SerializationError("RDF/XML output is not supported; use the JSON output format")
    data: dict[str, Any] = result.to_dict()
    return json.dumps(data, indent=indent, ensure_ascii=False) + "\n"


def default_output_path(directory: Path, name: str, fmt: OutputFormat) -> Path:
    """``<directory>/<name><suffix>``, e.g. ``target/demo-1.0.spdx.json``."""
    return directory / f"{name}{fmt.suffix}"


def write_document(result: BuildResult, path: Path) -> Path:
    """Write ``result`` to ``path``, creating parent directories.

    Raises:
        SerializationError: If the document cannot be encoded or written.
    """
    text = to_json(result)
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise SerializationError(f"Unable to write {path}: {exc}") from exc
    logger.debug("Wrote %s document to %s", result.output_format.name, path)
    return path
