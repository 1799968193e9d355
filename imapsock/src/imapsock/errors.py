"""Exception hierarchy shared by the protocol engine, connection and decoder.

What:
  Define the small set of failures that ``imapsock`` surfaces to callers.

Why:
  Parse-level anomalies (unexpected server text, absent fields) degrade to
  empty results, so the only hard failures are transport faults, use of a
  closed connection, and the opt-in strict modes. Keeping them under one base
  class lets callers catch everything the library raises with one clause.

How:
  Plain :class:`Exception` subclasses. :class:`UnterminatedResponseError`
  carries the partial response so strict callers can still inspect it.

Interfaces:
  :class:`ImapSockError`, :class:`TransportError`,
  :class:`UnterminatedResponseError`, :class:`ConnectionClosedError`,
  :class:`MalformedMessageError`, :class:`ConfigLoadError`,
  :class:`SettingsError`.
"""
from __future__ import annotations

from typing import Any


class ImapSockError(Exception):
    """Base class for every error raised by ``imapsock``."""


class TransportError(ImapSockError):
    """Reading from or writing to the underlying stream failed.

    Never retried by the library; the connection should be considered dead.
    """


class UnterminatedResponseError(ImapSockError):
    """The stream ended before the line carrying the command tag arrived.

    Only raised when the engine runs in strict mode. ``response`` holds the
    partial :class:`~imapsock.protocol.engine.RawResponse` read so far.
    """

    def __init__(self, message: str, response: Any = None) -> None:
        super().__init__(message)
        self.response = response


class ConnectionClosedError(ImapSockError):
    """An operation was attempted on a connection that was already closed."""


class MalformedMessageError(ImapSockError):
    """A raw message has no header/body separator (strict decoding only)."""


class ConfigLoadError(ImapSockError):
    """Base error for configuration parsing or validation failures."""


class SettingsError(ConfigLoadError):
    """Raised when the settings file cannot be located, parsed or validated."""


__all__ = [
    "ImapSockError",
    "TransportError",
    "UnterminatedResponseError",
    "ConnectionClosedError",
    "MalformedMessageError",
    "ConfigLoadError",
    "SettingsError",
]
