"""Stateful IMAP connection built on the tagged protocol engine.

What:
  Own one already-open byte stream and expose the mailbox operations callers
  need (select, list, search, status, flag changes, fetches), plus
  message-level helpers that run fetched data through the MIME decoder.

Why:
  Each operation is just a formatted command string and, for some, a response
  parser. Collecting them on one object keeps the tag counter, the stream and
  the lifecycle (``LOGOUT`` then release, exactly once) in a single place.

How:
  Delegates every command to :class:`~imapsock.protocol.engine.ProtocolEngine`,
  parses with :mod:`imapsock.imap.responses`, encodes folder names with
  ``imapclient``'s modified UTF-7 codec, and decodes messages with
  :mod:`imapsock.mime.decoder`. Settings come from
  :class:`~imapsock.config.schema.ClientSettings`.

Interfaces:
  :class:`Connection` and :func:`open_connection`.

Invariants & Safety:
  - One command in flight at a time; the object is not thread-safe.
  - After :meth:`Connection.close` every operation raises
    :class:`~imapsock.errors.ConnectionClosedError`; ``close`` is idempotent.
  - The garbage-collection backstop only releases the stream, it never talks
    to the server.
"""
from __future__ import annotations

import contextlib
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Union

from imapclient import imap_utf7
from pydantic import ValidationError

from ..config.loader import get_settings
from ..config.schema import ClientSettings
from ..mime.decoder import Attachment, DecodedMessage, decode, extract_attachments
from ..protocol.engine import ProtocolEngine, RawResponse
from ..protocol.transport import LineStream
from ..utils.logging import JsonLogger, get_logger
from .responses import (
    MessageIds,
    extract_literal,
    field_list,
    parse_header_fields,
    parse_list,
    parse_search,
    parse_status,
    quote_folder_name,
    sequence_set,
)

MessageId = Union[int, str]


def _decode_folder(name: str) -> str:
    # Servers announcing UTF8=ACCEPT may send raw names, including a bare "&".
    if not name.isascii():
        return name
    try:
        return imap_utf7.decode(name.encode("ascii"))
    except (UnicodeDecodeError, ValueError):
        return name


class Connection:
    """IMAP session over a caller-supplied :class:`LineStream`.

    What:
      Formats IMAP commands, runs them through the protocol engine and parses
      the interesting bits of the replies.

    Why:
      Connecting and authenticating are left to the caller; this class only
      needs an open stream, which keeps it usable over plain TCP, TLS or an
      in-memory fake.

    How:
      Builds a :class:`ProtocolEngine` configured from ``settings`` and keeps
      the attachments directory as mutable per-connection state.

    Args:
      stream: Open transport. Ownership passes to the connection.
      settings: Client settings; the cached :func:`get_settings` value when
        omitted.
      logger: Structured logger; built from ``settings.log_level`` when omitted.
    """

    def __init__(
        self,
        stream: LineStream,
        settings: Optional[ClientSettings] = None,
        *,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._settings = settings if settings is not None else get_settings()
        self._logger = logger or get_logger("imapsock.connection", level=self._settings.log_level)
        self._engine = ProtocolEngine(
            stream,
            tag_prefix=self._settings.tag_prefix,
            tag_width=self._settings.tag_width,
            strict=self._settings.strict_responses,
            logger=get_logger("imapsock.engine", level=self._settings.log_level),
        )

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self) -> None:
        engine = getattr(self, "_engine", None)
        if engine is not None and not engine.closed:
            engine.close()

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def closed(self) -> bool:
        return self._engine.closed

    @property
    def attachments_directory(self) -> Optional[Path]:
        return self._settings.attachments_dir

    def execute(self, command: str) -> RawResponse:
        """Run an arbitrary command (without tag) and return the raw reply."""

        return self._engine.execute(command)

    def close(self) -> None:
        """Send ``LOGOUT`` and release the stream.

        What:
          Ends the session once; further calls do nothing.

        How:
          ``LOGOUT`` runs inside ``try``/``finally`` so the stream is released
          even when the server connection already broke. Transport errors from
          ``LOGOUT`` still propagate.
        """

        if self._engine.closed:
            return
        try:
            self._engine.execute("LOGOUT")
        finally:
            self._engine.close()
            self._logger.info("connection closed", tags_issued=self._engine.tags.counter)

    def _folder(self, folder: str) -> str:
        if not self._settings.utf7_folder_names:
            return folder
        return imap_utf7.encode(folder).decode("ascii")

    def select_folder(self, folder: str = "INBOX") -> RawResponse:
        return self.execute(f"SELECT {self._folder(folder)}")

    def list_folders(self) -> List[str]:
        """Return every mailbox name the server lists, in server order."""

        response = self.execute('LIST "" "*"')
        folders = parse_list(response.text)
        if self._settings.utf7_folder_names:
            folders = [_decode_folder(name) for name in folders]
        return folders

    def search_mails(self, criteria: str = "ALL") -> List[str]:
        """Return identifiers matching ``criteria`` (``[]`` when none)."""

        return parse_search(self.execute(f"SEARCH {criteria}").text)

    def get_folder_info(self, folder: str = "INBOX") -> Dict[str, int]:
        """Return STATUS counters for ``folder``.

        Keys are ``messages``, ``unseen``, ``recent``, ``uidnext`` and
        ``uidvalidity``; a counter the server did not report is absent.
        """

        name = quote_folder_name(self._folder(folder))
        response = self.execute(f"STATUS {name} (MESSAGES UNSEEN RECENT UIDNEXT UIDVALIDITY)")
        return parse_status(response.text)

    def mark_as_read(self, ids: MessageIds) -> RawResponse:
        return self.execute(f"STORE {sequence_set(ids)} +FLAGS (\\Seen)")

    def mark_as_unread(self, ids: MessageIds) -> RawResponse:
        """Clear the read state of ``ids``.

        The default ``unseen-flag`` strategy sends ``+FLAGS (\\Unseen)``;
        ``remove-seen`` sends ``-FLAGS (\\Seen)``.
        """

        if self._settings.unread_strategy == "remove-seen":
            return self.execute(f"STORE {sequence_set(ids)} -FLAGS (\\Seen)")
        return self.execute(f"STORE {sequence_set(ids)} +FLAGS (\\Unseen)")

    def delete_messages(self, ids: MessageIds) -> RawResponse:
        return self.execute(f"STORE {sequence_set(ids)} +FLAGS (\\Deleted)")

    def fetch_headers(
        self, message_id: MessageId, headers: Optional[Union[str, Sequence[str]]] = None
    ) -> RawResponse:
        if headers:
            return self.execute(f"FETCH {message_id} (BODY.PEEK[HEADER.FIELDS ({field_list(headers)})])")
        return self.execute(f"FETCH {message_id} (ENVELOPE)")

    def fetch_body(self, message_id: MessageId, peek: bool = True) -> RawResponse:
        item = "BODY.PEEK[TEXT]" if peek else "BODY[TEXT]"
        return self.execute(f"FETCH {message_id} ({item})")

    def fetch_message(self, message_id: MessageId, peek: bool = True) -> RawResponse:
        item = "BODY.PEEK[]" if peek else "RFC822"
        return self.execute(f"FETCH {message_id} ({item})")

    def get_header_fields(self, message_id: MessageId, fields: Sequence[str]) -> Dict[str, List[str]]:
        """Fetch only ``fields`` and return their values keyed by uppercase name."""

        response = self.fetch_headers(message_id, list(fields))
        return parse_header_fields(response.text, fields)

    def get_from(self, message_id: MessageId) -> str:
        return self.get_header_fields(message_id, ["FROM"]).get("FROM", [""])[0]

    def get_to(self, message_id: MessageId) -> List[str]:
        return self.get_header_fields(message_id, ["TO"]).get("TO", [])

    def get_date(self, message_id: MessageId) -> str:
        return self.get_header_fields(message_id, ["DATE"]).get("DATE", [""])[0]

    def _fetch_raw_message(self, message_id: MessageId) -> bytes:
        response = self.fetch_message(message_id)
        literal = extract_literal(response.data)
        return response.data if literal is None else literal

    def get_message_text(self, message_id: MessageId) -> DecodedMessage:
        """Fetch a full message and decode its text, HTML and attachments.

        The ``{n}`` literal is cut out of the FETCH response when present so
        the tagged completion line never leaks into the last body part.
        """

        raw = self._fetch_raw_message(message_id)
        return decode(raw, strict=self._settings.strict_decoding)

    def get_attachments(self, message_id: MessageId) -> List[Attachment]:
        return extract_attachments(self._fetch_raw_message(message_id))

    def set_attachments_directory(self, directory: Union[str, Path]) -> bool:
        """Accept ``directory`` for :meth:`save_attachment` if usable.

        Returns:
          ``True`` when the directory exists and is writable, ``False`` (with
          the previous directory kept) otherwise.
        """

        payload = self._settings.model_dump()
        payload["attachments_dir"] = Path(directory)
        try:
            self._settings = ClientSettings.model_validate(payload)
        except ValidationError as exc:
            self._logger.warning(
                "attachments directory rejected",
                directory=str(directory),
                errors=exc.error_count(),
            )
            return False
        return True

    def save_attachment(self, message_id: MessageId, filename: str) -> bool:
        """Write the attachment named ``filename`` into the attachments directory.

        Only the base name of ``filename`` is used for the target path.

        Returns:
          ``True`` when a matching attachment was written, ``False`` when no
          directory is configured or the message has no such attachment.
        """

        directory = self._settings.attachments_dir
        if directory is None:
            self._logger.warning("no attachments directory configured", message_id=str(message_id))
            return False
        for attachment in self.get_attachments(message_id):
            if attachment.filename == filename:
                target = directory / Path(filename).name
                target.write_bytes(attachment.content)
                self._logger.info(
                    "attachment saved", message_id=str(message_id), path=str(target), size=attachment.size
                )
                return True
        return False


@contextlib.contextmanager
def open_connection(
    stream: LineStream,
    settings: Optional[ClientSettings] = None,
    *,
    logger: Optional[JsonLogger] = None,
) -> Iterator[Connection]:
    """Yield a :class:`Connection` that is closed on every exit path."""

    connection = Connection(stream, settings, logger=logger)
    try:
        yield connection
    finally:
        connection.close()
