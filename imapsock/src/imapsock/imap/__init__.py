"""Facade for the IMAP command layer.

What:
  Surface :class:`~imapsock.imap.connection.Connection` and
  :func:`~imapsock.imap.connection.open_connection`, the entry points used for
  every IMAP interaction.

Why:
  Keeping the import surface minimal prevents call sites from depending on
  the response parsers directly, so the grammars can evolve without sweeping
  refactors.

Invariants & Safety:
  - All commands should go through :class:`Connection` to inherit tag
    correlation and the close-once lifecycle.
"""

from .connection import Connection, open_connection

__all__ = ["Connection", "open_connection"]
