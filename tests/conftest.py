"""Shared fixtures for spdxforge tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from spdxforge.core.licenses.registry import LicenseRegistry


@pytest.fixture
def registry() -> LicenseRegistry:
    """The bundled license list; never fetched from the network in tests."""
    return LicenseRegistry.bundled()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A small project tree: one tagged source file and one README."""
    root = tmp_path / "demo"
    (root / "src").mkdir(parents=True)
    (root / "README.md").write_text("# Demo\n\nMIT License\n", encoding="utf-8")
    (root / "src" / "Main.src").write_text(
        "// SPDX-License-Identifier: Apache-2.0\nprint('hello')\n", encoding="utf-8"
    )
    return root
