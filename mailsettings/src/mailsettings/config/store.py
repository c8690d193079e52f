"""Persistence for the single settings document.

What:
  Define the :class:`SettingsStore` contract (``get``/``put`` of an opaque
  blob) and its SQLite implementation, optionally encrypted with SQLCipher.

Why:
  The coordinator must not care where the canonical blob lives; it only needs
  "give me the current blob" and "atomically replace it". Keeping the backend
  behind a small protocol also lets tests substitute an in-memory fake.

How:
  :class:`SqliteSettingsStore` keeps one row in a ``settings`` table whose
  primary key is pinned to ``1``. Each call opens its own connection so the
  store can be shared by request threads. ``put`` is a single upsert inside a
  transaction. Every driver failure is re-raised as :class:`StorageError`
  carrying a message passed through
  :func:`~mailsettings.utils.privacy.sanitize_backend_message`.

Interfaces:
  ``SettingsStore`` (protocol), ``SqliteSettingsStore`` exposing
  ``initialize``, ``get`` and ``put``; ``StorageError``.

Invariants & Safety:
  - ``get`` fails when the row is absent; it never fabricates a document.
  - ``initialize`` inserts the default row only when none exists.
  - No read-modify-write atomicity is offered across ``get`` and ``put``; the
    last writer wins.
"""
from __future__ import annotations

import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from ..utils.privacy import sanitize_backend_message
from ..utils.sqlcipher import DRIVER_ERRORS, SqlCipherUnavailable, open_encrypted_database
from .schema import SettingsError


class StorageError(SettingsError):
    """Raised when the settings backend is unreachable or a query fails.

    The message is already sanitised and safe to return to API callers.
    """


class SettingsStore(Protocol):
    """Contract every settings backend satisfies."""

    def get(self) -> bytes:
        """Return the current canonical blob or raise :class:`StorageError`."""

    def put(self, blob: bytes) -> None:
        """Atomically replace the stored blob or raise :class:`StorageError`."""


_SCHEMA = """
CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    value BLOB NOT NULL,
    updated_at TEXT NOT NULL
)
"""

_BACKEND_ERRORS = (sqlite3.Error, SqlCipherUnavailable, *DRIVER_ERRORS)

_UPSERT = """
INSERT INTO settings (id, value, updated_at) VALUES (1, ?, ?)
ON CONFLICT(id) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
"""


class SqliteSettingsStore:
    """SQLite-backed settings store holding exactly one row.

    What:
      Persist the canonical settings blob and return it on demand.

    Why:
      A single-row table is the simplest layout that still gives atomic
      replacement through the database's own transaction handling.

    How:
      Open a fresh connection per operation (plain :mod:`sqlite3`, or SQLCipher
      when ``key`` is given), run one statement, commit, close.
    """

    def __init__(
        self,
        path: Union[Path, str],
        *,
        key: Optional[str] = None,
        pragmas: Optional[Dict[str, str]] = None,
    ) -> None:
        """Create a store writing to ``path``.

        Args:
          path: Database file location; parent directories are created.
          key: SQLCipher key. When ``None`` the database is plain SQLite.
          pragmas: Extra SQLCipher PRAGMAs applied after the key.
        """
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._key = key
        self._pragmas = pragmas

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> Any:
        if self._key is not None:
            return open_encrypted_database(str(self._path), key=self._key, pragmas=self._pragmas)
        return sqlite3.connect(str(self._path))

    def initialize(self, default: bytes) -> bool:
        """Create the table and insert ``default`` when no row exists yet.

        Returns:
          ``True`` when the default row was inserted, ``False`` when a document
          was already present.

        Raises:
          StorageError: If the backend cannot be opened or written.
        """
        now = datetime.now(timezone.utc).isoformat()
        try:
            with closing(self._connect()) as connection:
                with connection:
                    connection.execute(_SCHEMA)
                    cursor = connection.execute(
                        "INSERT OR IGNORE INTO settings (id, value, updated_at) VALUES (1, ?, ?)",
                        (sqlite3.Binary(default), now),
                    )
                    return cursor.rowcount == 1
        except _BACKEND_ERRORS as exc:
            raise StorageError(sanitize_backend_message(exc)) from exc

    def get(self) -> bytes:
        """Return the stored canonical blob.

        Raises:
          StorageError: If the backend fails or the settings row is absent.
        """
        try:
            with closing(self._connect()) as connection:
                row = connection.execute("SELECT value FROM settings WHERE id = 1").fetchone()
        except _BACKEND_ERRORS as exc:
            raise StorageError(sanitize_backend_message(exc)) from exc
        if row is None:
            raise StorageError("settings row is missing")
        value = row[0]
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)

    def put(self, blob: bytes) -> None:
        """Replace the stored blob in a single transaction.

        Raises:
          StorageError: If the backend fails; the previous row is kept.
        """
        now = datetime.now(timezone.utc).isoformat()
        try:
            with closing(self._connect()) as connection:
                with connection:
                    connection.execute(_UPSERT, (sqlite3.Binary(blob), now))
        except _BACKEND_ERRORS as exc:
            raise StorageError(sanitize_backend_message(exc)) from exc
