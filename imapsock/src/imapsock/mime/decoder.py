"""Boundary-based MIME decoding for fetched IMAP messages.

What:
  Split a raw fetched message into header/body parts, decode each part's
  transfer encoding, aggregate ``text/plain`` and ``text/html`` content, and
  extract attachments as decoded bytes.

Why:
  Messages fetched with ``BODY[]`` arrive as semi-structured text. Callers
  want the readable bodies and the attached files, not the MIME framing, and
  they want a bad message to degrade to an empty result they can detect
  rather than an exception in the middle of a mailbox scan.

How:
  The first CRLF-CRLF separates headers from body. A ``boundary`` parameter in
  the headers splits the body on ``--<boundary>``; each non-empty block with
  its own header/body separator becomes a :class:`MessagePart`. Without a
  boundary the whole message is a single part. Transfer decoding uses
  :mod:`base64` (leniently) and :mod:`quopri`; filenames go through
  :mod:`email.header` to resolve RFC 2047 encoded words.

Interfaces:
  :class:`TransferEncoding`, :class:`Disposition`, :class:`DecodeStatus`,
  :class:`MessagePart`, :class:`Attachment`, :class:`DecodedMessage`,
  :func:`split_parts`, :func:`decode`, :func:`extract_attachments`.

Invariants & Safety:
  - Decoding is a pure function of the input text; nothing touches a socket.
  - Only one level of multipart is expanded; nested multiparts are opaque.
  - Text and HTML parts accumulate in order of appearance.
  - Bytes input is held as UTF-8 with surrogate escapes, so 8bit and binary
    bodies re-encode to their exact wire bytes; charsets are applied only when
    producing text, and undecodable bytes are replaced, never raised.
"""
from __future__ import annotations

import base64
import binascii
import quopri
import re
from dataclasses import dataclass, field
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from ..errors import MalformedMessageError

HEADER_SEPARATOR = "\r\n\r\n"
WIRE_ENCODING = "utf-8"
DEFAULT_FILENAME = "unknown"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

BOUNDARY_RE = re.compile(r'boundary="?([^";\r\n]+)"?', re.IGNORECASE)
TRANSFER_ENCODING_RE = re.compile(r"Content-Transfer-Encoding:\s*([^\r\n]+)", re.IGNORECASE)
CONTENT_TYPE_RE = re.compile(r"Content-Type:\s*([^;\r\n]+)", re.IGNORECASE)
CHARSET_RE = re.compile(r'charset="?([^";\s]+)"?', re.IGNORECASE)
DISPOSITION_RE = re.compile(r"Content-Disposition:\s*attachment", re.IGNORECASE)
FILENAME_RE = re.compile(r'filename="([^"]+)"', re.IGNORECASE)
_BASE64_JUNK_RE = re.compile(r"[^A-Za-z0-9+/]")

RawMessage = Union[str, bytes]


class TransferEncoding(Enum):
    """Content-Transfer-Encoding kinds the decoder distinguishes."""

    PLAIN = "plain"
    BASE64 = "base64"
    QUOTED_PRINTABLE = "quoted-printable"
    OTHER = "other"

    @classmethod
    def from_header(cls, value: Optional[str]) -> "TransferEncoding":
        if value is None:
            return cls.PLAIN
        value = value.strip().lower()
        if value in ("", "7bit", "8bit", "binary"):
            return cls.PLAIN
        if value == "base64":
            return cls.BASE64
        if value == "quoted-printable":
            return cls.QUOTED_PRINTABLE
        return cls.OTHER


class Disposition(Enum):
    INLINE = "inline"
    ATTACHMENT = "attachment"


class DecodeStatus(Enum):
    """Outcome of :func:`decode`; ``MALFORMED`` means no header/body separator."""

    OK = "ok"
    MALFORMED = "malformed"


def _parse_headers(block: str) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    current: Optional[str] = None
    for line in re.split(r"\r\n|\n", block):
        if line[:1] in (" ", "\t") and current is not None:
            headers[current] = f"{headers[current]} {line.strip()}"
            continue
        name, sep, value = line.partition(":")
        if not sep or not name.strip() or " " in name.strip():
            current = None
            continue
        current = name.strip().lower()
        if current in headers:
            # First occurrence wins; later duplicates are ignored.
            current = None
            continue
        headers[current] = value.strip()
    return headers


def _decode_filename(value: str) -> str:
    try:
        return str(make_header(decode_header(value)))
    except (HeaderParseError, LookupError, UnicodeDecodeError):
        return value


def _wire_bytes(text: str) -> bytes:
    return text.encode(WIRE_ENCODING, errors="surrogateescape")


def _b64decode(body: str) -> bytes:
    """Decode base64 while ignoring non-alphabet characters and bad padding."""

    cleaned = _BASE64_JUNK_RE.sub("", body)
    remainder = len(cleaned) % 4
    if remainder == 1:
        cleaned = cleaned[:-1]
    elif remainder:
        cleaned += "=" * (4 - remainder)
    try:
        return base64.b64decode(cleaned)
    except binascii.Error:  # pragma: no cover - cleaned input is always valid
        return b""


@dataclass(frozen=True)
class MessagePart:
    """One header block plus its undecoded body.

    Derived fields are computed once from ``raw_headers`` by
    :meth:`from_block`; ``headers`` offers case-insensitive lookup through
    :meth:`header`. ``content_type`` is lowercased for classification while
    ``declared_type`` keeps the header value as sent.
    """

    raw_headers: str
    body: str
    headers: Dict[str, str] = field(default_factory=dict)
    content_type: str = ""
    declared_type: str = ""
    transfer_encoding: TransferEncoding = TransferEncoding.PLAIN
    disposition: Disposition = Disposition.INLINE
    filename: Optional[str] = None
    charset: Optional[str] = None
    boundary: Optional[str] = None

    @classmethod
    def from_block(cls, raw_headers: str, body: str) -> "MessagePart":
        declared_type = ""
        match = CONTENT_TYPE_RE.search(raw_headers)
        if match:
            declared_type = match.group(1).strip()
        encoding = TRANSFER_ENCODING_RE.search(raw_headers)
        charset = CHARSET_RE.search(raw_headers)
        filename = FILENAME_RE.search(raw_headers)
        boundary = BOUNDARY_RE.search(raw_headers)
        return cls(
            raw_headers=raw_headers,
            body=body,
            headers=_parse_headers(raw_headers),
            content_type=declared_type.lower(),
            declared_type=declared_type,
            transfer_encoding=TransferEncoding.from_header(encoding.group(1) if encoding else None),
            disposition=Disposition.ATTACHMENT if DISPOSITION_RE.search(raw_headers) else Disposition.INLINE,
            filename=_decode_filename(filename.group(1)) if filename else None,
            charset=charset.group(1).lower() if charset else None,
            boundary=boundary.group(1).strip() if boundary else None,
        )

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @property
    def is_multipart(self) -> bool:
        return self.content_type.startswith("multipart/")

    @property
    def is_attachment(self) -> bool:
        return self.disposition is Disposition.ATTACHMENT

    def decoded_bytes(self, body: Optional[str] = None) -> bytes:
        """Return the body with its transfer encoding removed."""

        payload = self.body if body is None else body
        if self.transfer_encoding is TransferEncoding.BASE64:
            return _b64decode(payload)
        if self.transfer_encoding is TransferEncoding.QUOTED_PRINTABLE:
            return quopri.decodestring(_wire_bytes(payload))
        return _wire_bytes(payload)

    def decoded_text(self) -> str:
        """Return the transfer-decoded body as text in the part's charset.

        Unknown charsets fall back to UTF-8; undecodable bytes are replaced.
        """

        data = self.decoded_bytes()
        try:
            return data.decode(self.charset or "utf-8", errors="replace")
        except LookupError:
            return data.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class Attachment:
    filename: str = DEFAULT_FILENAME
    content_type: str = DEFAULT_CONTENT_TYPE
    content: bytes = b""

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class DecodedMessage:
    """Aggregate view of a decoded message.

    Attributes:
      plain: Concatenation of every ``text/plain`` part.
      html: Concatenation of every ``text/html`` part.
      attachments: Parts marked ``Content-Disposition: attachment``.
      parts: Every part that was recognised, in order.
      status: ``MALFORMED`` when the input had no header/body separator.
    """

    plain: str = ""
    html: str = ""
    attachments: Tuple[Attachment, ...] = ()
    parts: Tuple[MessagePart, ...] = ()
    status: DecodeStatus = DecodeStatus.OK

    @property
    def is_empty(self) -> bool:
        return not self.plain and not self.html and not self.attachments

    @property
    def malformed(self) -> bool:
        return self.status is DecodeStatus.MALFORMED


def _as_text(raw: RawMessage) -> str:
    if isinstance(raw, bytes):
        return raw.decode(WIRE_ENCODING, errors="surrogateescape")
    return raw


def _split(text: str) -> Tuple[Optional[str], List[MessagePart]]:
    raw_headers, sep, body = text.partition(HEADER_SEPARATOR)
    if not sep:
        raise MalformedMessageError("message has no header/body separator")
    match = BOUNDARY_RE.search(raw_headers)
    boundary = match.group(1).strip() if match else None
    if not boundary:
        return None, [MessagePart.from_block(raw_headers, body)]

    parts: List[MessagePart] = []
    for block in body.split(f"--{boundary}"):
        block = block.strip()
        if not block or block == "--":
            continue
        part_headers, sep, part_body = block.partition(HEADER_SEPARATOR)
        if not sep:
            continue
        parts.append(MessagePart.from_block(part_headers, part_body))
    return boundary, parts


def split_parts(raw: RawMessage) -> List[MessagePart]:
    """Split ``raw`` into its top-level parts.

    Raises:
      MalformedMessageError: If ``raw`` has no CRLF-CRLF separator.
    """

    return _split(_as_text(raw))[1]


def _attachments(parts: List[MessagePart]) -> List[Attachment]:
    attachments: List[Attachment] = []
    for part in parts:
        if not part.is_attachment:
            continue
        attachments.append(
            Attachment(
                filename=part.filename or DEFAULT_FILENAME,
                content_type=part.declared_type or DEFAULT_CONTENT_TYPE,
                content=part.decoded_bytes(part.body.strip()),
            )
        )
    return attachments


def decode(raw: RawMessage, *, strict: bool = False) -> DecodedMessage:
    """Decode a raw fetched message into text, HTML and attachments.

    What:
      Runs the boundary split, transfer-decodes every part, and concatenates
      ``text/plain`` and ``text/html`` content in order of appearance.

    Why:
      A message without a header/body separator is reported through
      ``status`` (or an exception when ``strict``) so callers can tell "no
      text" from "not a message".

    Args:
      raw: Message text (or bytes) as returned by a ``BODY[]`` fetch.
      strict: Raise instead of returning an empty ``MALFORMED`` result.

    Returns:
      The :class:`DecodedMessage`.

    Raises:
      MalformedMessageError: Only when ``strict`` is set.
    """

    try:
        boundary, parts = _split(_as_text(raw))
    except MalformedMessageError:
        if strict:
            raise
        return DecodedMessage(status=DecodeStatus.MALFORMED)

    plain: List[str] = []
    html: List[str] = []
    for part in parts:
        if "text/plain" in part.content_type:
            plain.append(part.decoded_text())
        if "text/html" in part.content_type:
            html.append(part.decoded_text())
    attachments = _attachments(parts) if boundary else []
    return DecodedMessage(
        plain="".join(plain),
        html="".join(html),
        attachments=tuple(attachments),
        parts=tuple(parts),
    )


def extract_attachments(raw: RawMessage) -> List[Attachment]:
    """Return the attachments of a multipart message in order of appearance.

    Non-multipart and malformed messages have no attachments.
    """

    try:
        boundary, parts = _split(_as_text(raw))
    except MalformedMessageError:
        return []
    if not boundary:
        return []
    return _attachments(parts)
