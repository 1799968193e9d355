"""Pytest configuration shared by unit and end-to-end suites.

What:
  Establish the import path for the source tree and apply the canned
  settings file to every test.

Why:
  Tests must import ``imapsock`` from ``imapsock/src`` rather than an installed
  wheel, and the cached settings are global state that would otherwise leak
  between tests.

How:
  Prepend the source directory to ``sys.path`` at import time and define the
  autouse :func:`client_settings` fixture, which points
  ``IMAPSOCK_CONFIG_PATH`` at ``tests/data/imapsock.yaml`` and resets the
  settings cache before and after each test.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "imapsock" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from imapsock.config.loader import reset_settings

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "imapsock.yaml"


@pytest.fixture(autouse=True)
def client_settings(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned settings file for every test."""

    monkeypatch.setenv("IMAPSOCK_CONFIG_PATH", str(CONFIG_PATH))
    reset_settings()
    try:
        yield
    finally:
        reset_settings()
