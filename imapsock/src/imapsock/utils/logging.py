"""imapsock logging helpers with deterministic JSON emission and redaction.

What:
  Offer a tiny facade over Python streams so the protocol engine and the
  connection can emit JSON log lines with consistent fields and automatic
  removal of sensitive payloads.

Why:
  IMAP sessions carry credentials and message content. A structured layout
  keeps log parsing trivial while preventing accidental leakage of passwords
  or message bodies when debugging a session.

How:
  Provide a :class:`JsonLogger` dataclass that accepts a target stream, a
  minimum severity, and enforces uppercase severity levels. ``extra``
  dictionaries are scrubbed via a recursive redaction helper before being
  serialised with ``json.dump``.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - The emitted payload always includes an ISO8601 timestamp, severity, and
    component name.
  - Known sensitive keys (``password``, ``body``, ``content``, ``subject``)
    are replaced with ``[redacted]`` even inside nested dictionaries.
  - Records below the configured level are dropped before serialisation.
  - Streams are flushed after every write.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"

LEVELS: Dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


@dataclass
class JsonLogger:
    """Structured JSON logger with level filtering and automatic redaction.

    What:
      Emits single-line JSON log entries that include timestamps, severity, a
      component tag, and optional supplemental fields.

    Why:
      Centralising structured logging avoids duplicating the redaction logic
      and guarantees a uniform schema for test assertions and log shippers.

    How:
      Stores the destination stream, component label and threshold, then
      exposes :meth:`debug`, :meth:`info`, :meth:`warning` and :meth:`error`
      that merge a canonical payload with redacted extras.
    """

    stream: Any = field(default_factory=lambda: sys.stdout)
    component: str = "imapsock"
    level: str = "INFO"

    def enabled_for(self, level: str) -> bool:
        """Return ``True`` when records at ``level`` would be written."""

        return LEVELS.get(level.upper(), 0) >= LEVELS.get(self.level.upper(), 0)

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Emit a structured JSON log entry.

        Args:
          level: Human-readable severity (e.g., ``"info"`` or ``"error"``).
          message: Core log message.
          extra: Optional context dictionary that will be redacted recursively.
        """

        if not self.enabled_for(level):
            return
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        json.dump(payload, self.stream, separators=(",", ":"), default=str)
        self.stream.write("\n")
        self.stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log("ERROR", message, extra=kwargs)

    @staticmethod
    def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``data`` with sensitive values masked.

        Walks the dictionary, applying the sentinel to known keys and recursing
        into nested dictionaries so structure is preserved for downstream
        parsing.
        """

        sensitive_keys = {"password", "body", "content", "subject"}
        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key in sensitive_keys:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = JsonLogger._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str, level: str = "INFO", stream: Any = None) -> JsonLogger:
    """Construct a :class:`JsonLogger` for the requested component.

    Args:
      component: Logical subsystem name to include in log payloads.
      level: Minimum severity that will be written.
      stream: Optional destination; ``stdout`` when omitted.

    Returns:
      Configured :class:`JsonLogger` instance.
    """

    if stream is None:
        return JsonLogger(component=component, level=level)
    return JsonLogger(stream=stream, component=component, level=level)
