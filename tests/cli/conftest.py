"""Shared fixtures for CLI tests.

Provides a project directory with a ``spdxforge.yaml`` descriptor, one
tagged source file and a one-dependency graph.
"""

from __future__ import annotations

from pathlib import Path

import logging
from collections.abc import Iterator

import pytest
from click.testing import CliRunner

DESCRIPTOR = """\
project:
  namespace: org.example
  name: demo
  version: 1.0.0
  supplier: "Organization: Example Inc."
  download_url: https://example.org/demo-1.0.0.tar.gz
  licenses:
    - Apache-2.0
file_sets:
  - directory: src
dependencies:
  - namespace: org.example
    name: lib
    version: "2.1"
    scope: compile
"""


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    """Undo the handlers and level that ``--verbose`` installs."""
    logger = logging.getLogger("spdxforge")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def descriptor_dir(tmp_path: Path) -> Path:
    """A project directory holding ``spdxforge.yaml`` and ``src/Main.src``."""
    root = tmp_path / "demo"
    (root / "src").mkdir(parents=True)
    (root / "src" / "Main.src").write_text(
        "// SPDX-License-Identifier: Apache-2.0\nprint('hello')\n", encoding="utf-8"
    )
    (root / "spdxforge.yaml").write_text(DESCRIPTOR, encoding="utf-8")
    return root
