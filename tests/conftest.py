"""Shared fixtures for the pinevault test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

VALID_SCRIPT = """//@version=5
indicator("BTMM EMA System", overlay=true)
length = input.int(13, "Ketchup length")
ketchup = ta.ema(close, length)
plot(ketchup, color=color.red)
alertcondition(ta.crossover(close, ketchup), "Cross", "Price crossed ketchup")
"""


@pytest.fixture
def valid_script() -> str:
    """Return a Pine Script that passes every restore check.

    Returns:
        str: Script source text.
    """
    return VALID_SCRIPT


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Create an empty project directory inside ``tmp_path``.

    Args:
        tmp_path: Temporary directory provided by pytest.

    Returns:
        Path: The new project root.
    """
    root = tmp_path / "project"
    root.mkdir()
    return root
