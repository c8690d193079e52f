"""Expose the public utility surface for mailsettings.

Interfaces:
  ``get_logger``, ``checksum``, ``sanitize_backend_message``,
  ``SqlCipherUnavailable`` and ``open_encrypted_database``.
"""

from .ids import checksum
from .logging import get_logger
from .privacy import sanitize_backend_message
from .sqlcipher import SqlCipherUnavailable, open_encrypted_database

__all__ = [
    "checksum",
    "get_logger",
    "sanitize_backend_message",
    "SqlCipherUnavailable",
    "open_encrypted_database",
]
