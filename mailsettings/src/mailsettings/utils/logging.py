"""Structured JSON logging with secret redaction for the settings service.

What:
  Offer a tiny facade over Python streams so every component emits single-line
  JSON log entries with consistent fields and automatic masking of secrets.

Why:
  The settings document carries SMTP passwords and object-storage keys. A
  careless ``extra`` mapping in a log call must not be enough to write them to
  disk, and a fixed layout keeps log parsing trivial.

How:
  :class:`JsonLogger` merges ``ts``/``lvl``/``msg``/``component`` with a
  redacted copy of the keyword context and serialises the result with
  ``json.dump``. Writes are serialised through a lock because the deferred
  reload timer logs from its own thread.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - Keys in :data:`SENSITIVE_KEYS` are replaced with ``[redacted]`` inside
    nested mappings and lists.
  - Streams are flushed after every entry.
"""
from __future__ import annotations

import json
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO


REDACTED = "[redacted]"

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "secret_access_key",
        "aws_secret_access_key",
        "upload.s3.aws_secret_access_key",
        "key",
    }
)


@dataclass
class JsonLogger:
    """Structured JSON logger with automatic redaction.

    What:
      Emit one JSON object per line carrying a timestamp, severity, component
      tag and optional context fields.

    Why:
      Centralising structured logging keeps the redaction rules in one place
      and gives tests a stable schema to assert on.

    How:
      Store the destination stream and component label; :meth:`log` builds the
      payload and the level helpers forward to it.
    """

    stream: TextIO = field(default_factory=lambda: sys.stdout)
    component: str = "mailsettings"
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Emit a structured JSON log entry.

        Args:
          level: Severity name (e.g. ``"info"``); stored uppercased.
          message: Core log message, conventionally a ``snake_case`` event.
          extra: Optional context, redacted recursively before serialisation.
        """

        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        with self._lock:
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

    @classmethod
    def _redact(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``data`` with sensitive keys masked at any depth."""

        return {key: REDACTED if key in SENSITIVE_KEYS else cls._redact_value(value) for key, value in data.items()}

    @classmethod
    def _redact_value(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return cls._redact(value)
        if isinstance(value, (list, tuple)):
            return [cls._redact_value(item) for item in value]
        return value


def get_logger(component: str, *, stream: Optional[TextIO] = None) -> JsonLogger:
    """Construct a :class:`JsonLogger` bound to ``component``.

    Args:
      component: Logical subsystem name included in every entry.
      stream: Destination stream; defaults to ``stdout``. The CLI passes
        ``stderr`` so that command output stays machine readable.
    """

    if stream is None:
        return JsonLogger(component=component)
    return JsonLogger(stream=stream, component=component)
