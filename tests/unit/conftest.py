"""Pytest fixtures for unit tests requiring a scripted IMAP server.

What:
  Make ``tests/unit`` importable and expose ``server`` and ``connection``
  fixtures backed by :class:`FakeServerStream`.

Why:
  Most unit tests drive :class:`~imapsock.imap.connection.Connection` against
  canned responses and assert on the commands it wrote.

How:
  Append the unit directory to ``sys.path`` for local imports, build a fresh
  fake stream per test, and wrap it in a connection that is closed at
  teardown when the test did not close it itself.
"""

import sys
from pathlib import Path

import pytest

from imapsock.config.schema import ClientSettings
from imapsock.imap.connection import Connection

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeServerStream


@pytest.fixture
def server() -> FakeServerStream:
    return FakeServerStream()


@pytest.fixture
def connection(server: FakeServerStream):
    """Yield a :class:`Connection` talking to the ``server`` fake."""

    conn = Connection(server, ClientSettings(log_level="ERROR"))
    try:
        yield conn
    finally:
        conn.close()
