"""mailsettings.utils.privacy

What:
  Scrub storage backend diagnostics before they are attached to errors that
  travel back to API callers.

Why:
  Database drivers put a lot into their messages: SQL detail and hint lines,
  absolute file paths, and connection strings that may embed credentials.
  Operators only need the primary message; the rest belongs in server-side
  investigation, not in an HTTP response body.

How:
  Keep the first line of the message, cut any ``DETAIL:``/``HINT:``/
  ``CONTEXT:`` trailer, mask userinfo in URLs and ``key=value`` secrets, and
  replace absolute paths with a placeholder.

Interfaces:
  - :func:`sanitize_backend_message`

Invariants & Safety:
  - The function is idempotent: sanitising an already sanitised message
    returns it unchanged.
  - It never returns an empty string; the exception class name is the fallback.
"""
from __future__ import annotations

import re
from typing import Union

REDACTED = "[redacted]"

_TRAILER_MARKERS = ("DETAIL:", "HINT:", "CONTEXT:", "QUERY:")
_URL_USERINFO = re.compile(r"\b([a-zA-Z][a-zA-Z0-9+.\-]*://)[^\s/@]+@")
_SECRET_ASSIGNMENT = re.compile(r"\b(password|passwd|pwd|secret|key)(\s*=\s*)(?!\[redacted\])\S+", re.IGNORECASE)
_ABSOLUTE_PATH = re.compile(r"(?<![\w:/.\]])(?:[A-Za-z]:)?(?:[/\\][\w.\-]+){2,}")


def sanitize_backend_message(error: Union[BaseException, str]) -> str:
    """Return a caller-safe version of a storage backend error message.

    Args:
      error: The exception raised by the driver, or its message.

    Returns:
      The primary message line with credentials, paths, and trailers removed.
    """

    text = str(error).strip()
    line = text.splitlines()[0].strip() if text else ""
    for marker in _TRAILER_MARKERS:
        line = line.split(marker, 1)[0].strip()
    line = _URL_USERINFO.sub(rf"\1{REDACTED}@", line)
    line = _SECRET_ASSIGNMENT.sub(rf"\1\2{REDACTED}", line)
    line = _ABSOLUTE_PATH.sub("[path]", line)
    if line:
        return line
    return error.__class__.__name__ if isinstance(error, BaseException) else "storage error"
