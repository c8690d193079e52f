"""SQLCipher helpers for encrypting the settings database at rest.

What:
  Provide a guarded import of :mod:`pysqlcipher3`, a helper opening encrypted
  SQLite databases, and a reader for the key file referenced by
  ``database.key_path``.

Why:
  The settings row holds SMTP passwords and object-storage keys. Deployments
  that can install SQLCipher should be able to keep them encrypted without the
  store caring which driver it talks to; deployments that cannot must get a
  clear error instead of a silently plaintext database.

How:
  Attempt to import :mod:`pysqlcipher3`. If unavailable, :func:`open_encrypted_database`
  raises :class:`SqlCipherUnavailable`. When present it connects, applies
  ``PRAGMA key`` and then any caller-supplied PRAGMAs.

Interfaces:
  :class:`SqlCipherUnavailable`, :data:`DRIVER_ERRORS`,
  :func:`open_encrypted_database`, :func:`read_key_file`.

Invariants & Safety:
  - Connections are only returned once ``PRAGMA key`` has executed.
  - Additional PRAGMAs are executed verbatim; callers must supply trusted values.
"""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional, Tuple, Union

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from pysqlcipher3 import dbapi2 as _sqlcipher

    SqlCipherConnection = _sqlcipher.Connection
else:  # pragma: no cover - runtime fallback
    SqlCipherConnection = object


try:  # pragma: no cover - optional dependency
    from pysqlcipher3 import dbapi2 as sqlcipher
except ImportError:  # pragma: no cover
    sqlcipher = None  # type: ignore[assignment]

DRIVER_ERRORS: Tuple[type, ...] = (sqlcipher.Error,) if sqlcipher is not None else ()


class SqlCipherUnavailable(RuntimeError):
    """Raised when an encrypted store is configured but SQLCipher is missing."""


def open_encrypted_database(
    path: str,
    *,
    key: str,
    pragmas: Optional[Dict[str, str]] = None,
) -> SqlCipherConnection:
    """Open ``path`` through SQLCipher using ``key`` as the encryption secret.

    Args:
      path: Location of the settings database file.
      key: Passphrase read from ``database.key_path``.
      pragmas: Optional PRAGMA directives (e.g. ``{"cipher_page_size": "4096"}``).

    Returns:
      An open SQLCipher connection.

    Raises:
      SqlCipherUnavailable: If the driver could not be imported.
    """

    if sqlcipher is None:
        raise SqlCipherUnavailable("SQLCipher driver pysqlcipher3 is required for encrypted settings stores")
    connection = sqlcipher.connect(path)
    connection.execute(f"PRAGMA key = {_quote_key(key)}")
    for name, value in (pragmas or {}).items():
        connection.execute(f"PRAGMA {name} = {value}")
    return connection


def _quote_key(key: str) -> str:
    """Render ``key`` as an SQL string literal; PRAGMA statements take no bound parameters."""

    return "'" + key.replace("'", "''") + "'"


def read_key_file(path: Union[Path, str]) -> str:
    """Return the SQLCipher key stored in ``path`` without surrounding whitespace.

    Raises:
      ValueError: If the file is empty.
    """

    key = Path(path).expanduser().read_text(encoding="utf-8").strip()
    if not key:
        raise ValueError(f"Key file {path} is empty")
    return key
