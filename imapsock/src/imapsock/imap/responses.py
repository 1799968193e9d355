"""Parse untagged IMAP response lines and format command arguments.

What:
  Pure helpers that turn raw response text into folder lists, search hits,
  STATUS counters and header values, plus the small formatters used when
  building commands (folder quoting, sequence sets, HEADER.FIELDS lists).

Why:
  Keeping the response grammars in one module guarantees every call site uses
  the same patterns, and lets tests feed canned server text without a stream.

How:
  Compiled regular expressions applied line by line (LIST, header fields) or to
  the whole response (SEARCH, STATUS). Misses degrade to empty results.

Interfaces:
  :func:`parse_list`, :func:`parse_search`, :func:`parse_status`,
  :func:`parse_header_fields`, :func:`quote_folder_name`,
  :func:`sequence_set`, :func:`field_list`, :func:`extract_literal`.

Invariants & Safety:
  - LIST names keep server order and duplicates.
  - STATUS fields are matched independently; absent ones are omitted, never
    defaulted to zero.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, Union

LIST_RE = re.compile(r'\* LIST \([^)]*\) "([^"]*)" "([^"]*)"')
SEARCH_RE = re.compile(r"\* SEARCH (.+)")
STATUS_FIELDS = ("MESSAGES", "UNSEEN", "RECENT", "UIDNEXT", "UIDVALIDITY")
STATUS_RES = {name: re.compile(name + r" (\d+)") for name in STATUS_FIELDS}
LITERAL_RE = re.compile(rb"\{(\d+)\}\r\n")
_NEEDS_QUOTING_RE = re.compile(r'[\s"\\]')

MessageIds = Union[int, str, Iterable[Union[int, str]]]


def parse_list(text: str) -> List[str]:
    """Return mailbox names from ``* LIST`` lines in response order."""

    folders: List[str] = []
    for line in text.splitlines():
        match = LIST_RE.search(line)
        if match:
            folders.append(match.group(2))
    return folders


def parse_search(text: str) -> List[str]:
    """Return message identifiers from the ``* SEARCH`` line.

    An empty list means the server sent no SEARCH line (or an empty one).
    """

    match = SEARCH_RE.search(text)
    if not match:
        return []
    return [token for token in match.group(1).strip().split() if token]


def parse_status(text: str) -> Dict[str, int]:
    """Extract STATUS counters keyed by lowercase field name."""

    info: Dict[str, int] = {}
    for name, pattern in STATUS_RES.items():
        match = pattern.search(text)
        if match:
            info[name.lower()] = int(match.group(1))
    return info


def parse_header_fields(text: str, fields: Sequence[str]) -> Dict[str, List[str]]:
    """Collect header values for ``fields`` from a HEADER.FIELDS response.

    What:
      Attributes each line starting with ``<field>:`` (case-insensitive) to the
      uppercased field name, appending the trimmed remainder.

    Why:
      Multiple occurrences (several ``Received`` or ``To`` lines) must all be
      kept, in order.

    Returns:
      Mapping of ``FIELD`` to its values. Fields never seen are absent.
    """

    result: Dict[str, List[str]] = {}
    prefixes = [(field, field.lower() + ":") for field in fields]
    for line in re.split(r"\r\n|\n", text):
        lowered = line.lower()
        for field, prefix in prefixes:
            if lowered.startswith(prefix):
                result.setdefault(field.upper(), []).append(line[len(prefix):].strip())
    return result


def quote_folder_name(folder: str) -> str:
    """Quote ``folder`` when it contains whitespace, ``"`` or ``\\``.

    >>> quote_folder_name('Sent Items')
    '"Sent Items"'
    """

    if _NEEDS_QUOTING_RE.search(folder):
        escaped = folder.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return folder


def sequence_set(ids: MessageIds) -> str:
    """Render a scalar or a sequence of identifiers as an IMAP sequence set."""

    if isinstance(ids, (str, bytes, int)):
        return ids.decode("ascii") if isinstance(ids, bytes) else str(ids)
    return ",".join(str(item) for item in ids)


def field_list(fields: Union[str, Iterable[str]]) -> str:
    """Join header field names with spaces for ``HEADER.FIELDS (...)``."""

    if isinstance(fields, str):
        return fields
    return " ".join(fields)


def extract_literal(data: bytes) -> Optional[bytes]:
    """Return the first ``{n}`` literal payload in ``data``, if complete.

    FETCH responses carry message data as ``{n}\\r\\n`` followed by exactly
    ``n`` octets. ``None`` means no literal was announced or it was cut short.
    """

    match = LITERAL_RE.search(data)
    if not match:
        return None
    start = match.end()
    size = int(match.group(1))
    if len(data) < start + size:
        return None
    return data[start:start + size]
