"""Helpers assembling the settings service from its runtime configuration.

What:
  Build the store, reload target, signaler and coordinator described by a
  :class:`~mailsettings.config.schema.RuntimeConfig`.

Why:
  The CLI and an embedding web service need the same object graph. Keeping
  construction here means ``config.yaml`` is interpreted in one place.

How:
  Small pure functions taking the runtime model and returning ready-to-use
  collaborators; anything the caller already has (a probe, a target) is
  passed in rather than guessed.

Interfaces:
  ``open_store``, ``build_reload_target``, ``build_coordinator``.
"""
from __future__ import annotations

from typing import Optional, TextIO

from .config.schema import RuntimeConfig
from .config.store import SqliteSettingsStore
from .core.activity import ActivityProbe
from .core.reload import ProcessSignalTarget, ReloadChannel, ReloadCoordinator, ReloadSignaler, ReloadTarget
from .utils.logging import get_logger
from .utils.sqlcipher import read_key_file


def open_store(runtime: RuntimeConfig) -> SqliteSettingsStore:
    """Return the store configured under ``database``.

    A ``key_path`` switches the store to SQLCipher using the key read from
    that file.
    """

    key = read_key_file(runtime.database.key_path) if runtime.database.key_path else None
    return SqliteSettingsStore(runtime.database.path, key=key)


def build_reload_target(runtime: RuntimeConfig) -> ReloadTarget:
    """Return the in-process channel or a self-``SIGHUP`` target."""

    if runtime.reload.target == "signal":
        return ProcessSignalTarget()
    return ReloadChannel()


def build_coordinator(
    runtime: RuntimeConfig,
    probe: ActivityProbe,
    *,
    target: Optional[ReloadTarget] = None,
    daemon: bool = True,
    stream: Optional[TextIO] = None,
) -> ReloadCoordinator:
    """Assemble a :class:`ReloadCoordinator` for ``runtime``.

    Args:
      runtime: Validated runtime configuration.
      probe: Source of the protected-activity answer.
      target: Reload receiver; defaults to :func:`build_reload_target`.
      daemon: Forwarded to :class:`ReloadSignaler`.
      stream: Log destination; defaults to ``stdout``.
    """

    component = runtime.logging.component
    signaler = ReloadSignaler(
        target if target is not None else build_reload_target(runtime),
        grace_seconds=runtime.reload.grace_seconds,
        daemon=daemon,
        logger=get_logger(f"{component}.reload", stream=stream),
    )
    return ReloadCoordinator(
        open_store(runtime),
        probe,
        signaler,
        logger=get_logger(f"{component}.coordinator", stream=stream),
    )
