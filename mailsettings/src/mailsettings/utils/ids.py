"""Stable checksums for stored settings revisions.

What:
  Wrap :mod:`hashlib` so every component identifies a canonical settings blob
  the same way.

Why:
  The store keeps no history. Logging the checksum of each accepted blob is
  the only way to correlate an API update with the revision a reloaded
  process later reads back.

Interfaces:
  :func:`checksum`.

Invariants & Safety:
  - Checksums are namespaced with ``sha256:`` so future algorithms can coexist.
  - Only digests are logged, never the blob itself, which carries secrets.
"""
from __future__ import annotations

import hashlib


def checksum(data: bytes) -> str:
    """Return the ``sha256:``-prefixed hex digest of ``data``."""

    return f"sha256:{hashlib.sha256(data).hexdigest()}"
