"""Tagged command/response engine for IMAP4.

What:
  Serialise one command at a time over a :class:`~imapsock.protocol.transport.LineStream`,
  prefix it with a fresh tag, and accumulate server lines until the line that
  carries that tag arrives.

Why:
  IMAP responses have no length header: untagged data lines of arbitrary
  number and size precede the tagged completion line. Correlating on the tag
  is the only unambiguous way to know a response is complete.

How:
  :class:`TagGenerator` derives ``<prefix><zero-padded counter>`` tags from a
  counter owned by the engine. :meth:`ProtocolEngine.execute` writes
  ``"<tag> <command>\\r\\n"``, then reads whole lines and stops at the first
  line that starts with the tag followed by a space or the line end.

Interfaces:
  :class:`TagGenerator`, :class:`RawResponse`, :class:`ProtocolEngine`.

Invariants & Safety:
  - The tag counter starts at 1, never resets and never repeats.
  - At most one command is in flight; the engine is not thread-safe.
  - Only the command verb is logged, so ``LOGIN`` arguments never reach logs.
  - End of stream before the tag line yields ``terminated=False`` or, in
    strict mode, :class:`~imapsock.errors.UnterminatedResponseError`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..errors import ConnectionClosedError, UnterminatedResponseError
from ..utils.logging import JsonLogger, get_logger
from .transport import LineStream

CRLF = b"\r\n"


class TagGenerator:
    """Produce strictly increasing command tags (``A001``, ``A002``, ...).

    The counter is plain instance state so independent connections never share
    a sequence. Widths grow past the padding (``A999`` is followed by ``A1000``).
    """

    def __init__(self, prefix: str = "A", width: int = 3) -> None:
        self._prefix = prefix
        self._width = width
        self._counter = 0

    @property
    def counter(self) -> int:
        """Number of the last tag issued (0 before the first command)."""

        return self._counter

    def next(self) -> str:
        self._counter += 1
        return f"{self._prefix}{self._counter:0{self._width}d}"


@dataclass(frozen=True)
class RawResponse:
    """Everything the server sent for one command, tagged line included.

    Attributes:
      tag: Tag the command was issued with.
      raw_lines: Lines exactly as read, terminators included.
      terminated: ``False`` when the stream ended before the tagged line.
    """

    tag: str
    raw_lines: Tuple[bytes, ...]
    terminated: bool = True

    @property
    def data(self) -> bytes:
        return b"".join(self.raw_lines)

    @property
    def text(self) -> str:
        """Response decoded as UTF-8; undecodable bytes are replaced."""

        return self.data.decode("utf-8", errors="replace")

    @property
    def lines(self) -> List[str]:
        return self.text.splitlines()

    @property
    def status_line(self) -> Optional[str]:
        """The tagged completion line, or ``None`` for unterminated responses."""

        if not self.terminated or not self.raw_lines:
            return None
        return self.raw_lines[-1].decode("utf-8", errors="replace").rstrip("\r\n")

    def __str__(self) -> str:
        return self.text.strip()


def _is_tagged_line(line: bytes, tag: bytes) -> bool:
    if not line.startswith(tag):
        return False
    rest = line[len(tag):]
    return rest == b"" or rest[:1] in (b" ", b"\r", b"\n")


class ProtocolEngine:
    """Own a :class:`LineStream` and run one tagged command at a time.

    What:
      The leaf component of the client: every higher level operation formats a
      command string and hands it to :meth:`execute`.

    Why:
      Keeping tag generation, framing and response accumulation in one place
      makes the correlation rules testable against an in-memory stream.

    How:
      :meth:`execute` writes the tagged command then loops on
      :meth:`LineStream.readline` until the tagged line or end of stream.
      :meth:`close` releases the stream exactly once.

    Args:
      stream: Already-open transport; ownership passes to the engine.
      tag_prefix: Letter used in front of every tag.
      tag_width: Zero padding applied to the counter.
      strict: Raise on end of stream instead of returning a partial response.
      logger: Structured logger; a quiet default is created when omitted.
    """

    def __init__(
        self,
        stream: LineStream,
        *,
        tag_prefix: str = "A",
        tag_width: int = 3,
        strict: bool = False,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._stream: Optional[LineStream] = stream
        self._tags = TagGenerator(tag_prefix, tag_width)
        self._strict = strict
        self._logger = logger or get_logger("imapsock.engine")

    @property
    def closed(self) -> bool:
        return self._stream is None

    @property
    def tags(self) -> TagGenerator:
        return self._tags

    def execute(self, command: str) -> RawResponse:
        """Send ``command`` and return the response it produced.

        What:
          Issues ``"<tag> <command>\\r\\n"`` and accumulates every line up to and
          including the one starting with the tag.

        Why:
          Lines that only resemble some other tag are data, not terminators; the
          match is on this command's own tag followed by a separator.

        Args:
          command: IMAP command without its tag, e.g. ``"SELECT INBOX"``.

        Returns:
          The accumulated :class:`RawResponse`.

        Raises:
          ConnectionClosedError: If the engine was closed.
          TransportError: If the stream fails to read or write.
          UnterminatedResponseError: In strict mode, when the stream ends first.
        """

        stream = self._stream
        if stream is None:
            raise ConnectionClosedError("IMAP connection is closed")
        tag = self._tags.next()
        verb = command.split(" ", 1)[0].upper() if command else ""
        self._logger.debug("command issued", tag=tag, verb=verb)
        stream.write(f"{tag} {command}".encode("utf-8") + CRLF)

        encoded_tag = tag.encode("ascii")
        lines: List[bytes] = []
        while True:
            line = stream.readline()
            if not line:
                response = RawResponse(tag=tag, raw_lines=tuple(lines), terminated=False)
                self._logger.warning("stream ended before tagged response", tag=tag, lines=len(lines))
                if self._strict:
                    raise UnterminatedResponseError(
                        f"stream ended before response tagged {tag}", response
                    )
                return response
            lines.append(line)
            if _is_tagged_line(line, encoded_tag):
                break
        self._logger.debug("response received", tag=tag, lines=len(lines))
        return RawResponse(tag=tag, raw_lines=tuple(lines))

    def close(self) -> None:
        """Release the stream; later calls are no-ops."""

        stream = self._stream
        if stream is None:
            return
        self._stream = None
        stream.close()
