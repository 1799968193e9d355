"""
Module: imapsock.__init__

What:
  Minimal IMAP4 client over an already-established byte stream: a tagged
  command/response engine plus a boundary-based MIME decoder.

Interfaces:
  - config: Settings schema and YAML loader.
  - imap: :class:`Connection` and :func:`open_connection`.
  - mime: :func:`decode`, :func:`extract_attachments` and their value types.
  - protocol: :class:`ProtocolEngine`, :class:`SocketStream`.
  - utils: Structured JSON logging.
"""

from .errors import (
    ConnectionClosedError,
    ImapSockError,
    MalformedMessageError,
    SettingsError,
    TransportError,
    UnterminatedResponseError,
)
from .imap import Connection, open_connection
from .mime import Attachment, DecodedMessage, decode, extract_attachments
from .protocol import ProtocolEngine, RawResponse, SocketStream

__version__ = "0.1.0"

__all__ = [
    "Attachment",
    "Connection",
    "ConnectionClosedError",
    "DecodedMessage",
    "ImapSockError",
    "MalformedMessageError",
    "ProtocolEngine",
    "RawResponse",
    "SettingsError",
    "SocketStream",
    "TransportError",
    "UnterminatedResponseError",
    "decode",
    "extract_attachments",
    "open_connection",
]
