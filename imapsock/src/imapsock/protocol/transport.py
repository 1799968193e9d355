"""Byte-stream capability consumed by the protocol engine.

What:
  Describe the three operations the engine needs from a transport (write
  bytes, read one line, close) and provide :class:`SocketStream`, an adapter
  over an already-connected socket.

Why:
  Establishing TCP/TLS connections is the caller's business. Depending on a
  structural protocol rather than on ``socket`` lets the engine run against an
  in-memory fake in tests and against ``ssl.SSLSocket`` in production without
  change.

How:
  :class:`LineStream` is a :class:`typing.Protocol`. :class:`SocketStream`
  reads through ``sock.makefile("rb")`` with an unbounded ``readline`` so a
  long server line is always returned whole, and wraps ``OSError`` in
  :class:`~imapsock.errors.TransportError`.

Interfaces:
  :class:`LineStream`, :class:`SocketStream`.

Invariants & Safety:
  - ``readline`` returns ``b""`` only at end of stream.
  - ``close`` releases the file object and the socket at most once.
"""
from __future__ import annotations

import socket
from typing import BinaryIO, Optional, Protocol

from ..errors import TransportError


class LineStream(Protocol):
    """Minimal transport surface required by :class:`ProtocolEngine`."""

    def write(self, data: bytes) -> None:
        """Send ``data`` to the server and flush it."""

    def readline(self) -> bytes:
        """Return the next line including its terminator, or ``b""`` at EOF."""

    def close(self) -> None:
        """Release the underlying resources."""


class SocketStream:
    """:class:`LineStream` over a connected, optionally TLS-wrapped socket.

    Args:
      sock: Connected socket. Ownership passes to the stream, which closes it.
    """

    def __init__(self, sock: socket.socket) -> None:
        self._sock: Optional[socket.socket] = sock
        self._file: Optional[BinaryIO] = sock.makefile("rb")

    @property
    def closed(self) -> bool:
        return self._sock is None

    def write(self, data: bytes) -> None:
        if self._sock is None:
            raise TransportError("socket error: stream already closed")
        try:
            self._sock.sendall(data)
        except OSError as exc:
            raise TransportError(f"socket error: {exc}") from exc

    def readline(self) -> bytes:
        if self._file is None:
            raise TransportError("socket error: stream already closed")
        try:
            return self._file.readline()
        except OSError as exc:
            raise TransportError(f"socket error: {exc}") from exc

    def close(self) -> None:
        if self._sock is None:
            return
        file, sock = self._file, self._sock
        self._file = None
        self._sock = None
        try:
            if file is not None:
                file.close()
        finally:
            sock.close()
