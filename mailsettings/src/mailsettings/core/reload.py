"""Update-and-reload coordination for the settings document.

What:
  Turn an inbound settings payload into a persisted canonical document and
  decide how the running process picks it up: either an immediate (slightly
  deferred) reload, or a sticky "restart needed" flag when campaigns are
  sending.

Why:
  The new configuration only takes effect after the process re-reads storage.
  Reloading blindly would interrupt campaigns mid-send; never reloading would
  leave operators guessing. The coordinator owns that decision and the only
  piece of cross-request mutable state involved in it.

How:
  :meth:`ReloadCoordinator.apply_update` runs decode → validate → canonicalize
  → ``store.put`` and stops at the first failure, leaving storage and
  :class:`RestartState` untouched. After a successful write it asks the
  :class:`~mailsettings.core.activity.ActivityProbe` once. ``True`` sets the
  restart flag under its lock; ``False`` asks the :class:`ReloadSignaler` to
  notify the process after a grace delay so the response can reach the caller
  first.

Interfaces:
  ``RestartState``, ``UpdateOutcome``, ``ReloadTarget``, ``ReloadChannel``,
  ``ProcessSignalTarget``, ``ReloadSignaler``, ``ReloadCoordinator``.

Invariants & Safety:
  - Only a successful ``put`` can set the flag or schedule a reload.
  - The flag is never cleared here; clearing belongs to whatever restarts the
    process.
  - Persist-then-probe is not atomic. An activity starting right after the
    probe answers ``False`` may be interrupted by the reload, and one ending
    right after ``True`` defers the reload needlessly. This is accepted.
  - Scheduled reloads are neither joined, cancelled nor retried. Two updates
    inside the grace window produce two independent notifications.
"""
from __future__ import annotations

import os
import queue
import signal
import threading
from dataclasses import dataclass
from typing import Optional, Protocol

from ..config.loader import SettingsSource, canonicalize, decode_settings
from ..config.schema import Settings, SettingsError
from ..config.store import SettingsStore
from ..config.validation import validate_settings
from ..utils.ids import checksum
from ..utils.logging import JsonLogger, get_logger
from .activity import ActivityProbe

DEFAULT_GRACE_SECONDS = 0.5


class RestartState:
    """Lock-guarded "the live configuration is stale" flag."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._needs_restart = False

    @property
    def needs_restart(self) -> bool:
        with self._lock:
            return self._needs_restart

    def mark(self) -> None:
        """Set the flag; repeated calls are no-ops."""
        with self._lock:
            self._needs_restart = True


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of a successful :meth:`ReloadCoordinator.apply_update`.

    Attributes:
      needs_restart: ``True`` when the reload was deferred because protected
        work was running.
      checksum: Digest of the canonical blob that was stored.
    """

    needs_restart: bool
    checksum: str


class ReloadTarget(Protocol):
    """Receiver of the "re-read configuration" notification."""

    def deliver(self) -> None:
        ...


class ReloadChannel:
    """In-process reload notification consumed by the service main loop.

    Notifications are queued, so none is lost between two :meth:`wait`
    calls; :meth:`wait` coalesces everything pending into a single reload.
    """

    def __init__(self) -> None:
        self._queue: "queue.SimpleQueue[None]" = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._delivered = 0

    @property
    def delivered(self) -> int:
        """Number of notifications delivered since creation."""
        with self._lock:
            return self._delivered

    def deliver(self) -> None:
        with self._lock:
            self._delivered += 1
        self._queue.put(None)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until a reload is requested.

        Returns:
          ``True`` when at least one notification was pending, ``False`` on
          timeout.
        """
        try:
            self._queue.get(timeout=timeout)
        except queue.Empty:
            return False
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return True


class ProcessSignalTarget:
    """Deliver the reload as a POSIX signal, ``SIGHUP`` by default.

    For services whose supervisor reloads on a hang-up signal. ``pid``
    defaults to the current process.
    """

    def __init__(self, pid: Optional[int] = None, signum: Optional[int] = None) -> None:
        if signum is None:
            signum = getattr(signal, "SIGHUP", None)
            if signum is None:
                raise RuntimeError("SIGHUP is not available on this platform; use a ReloadChannel")
        self.pid = os.getpid() if pid is None else pid
        self.signum = signum

    def deliver(self) -> None:
        os.kill(self.pid, self.signum)


class ReloadSignaler:
    """Fire a reload notification once, after a fixed grace interval.

    What:
      Schedule ``target.deliver()`` on a background timer thread.

    Why:
      The HTTP response reporting a successful update must be flushed before
      the process starts reloading; the grace interval gives it time to go out.

    How:
      Each call starts a new :class:`threading.Timer`. The timer is returned
      for observability only; callers do not join or cancel it. Delivery
      failures are logged, not retried.
    """

    def __init__(
        self,
        target: ReloadTarget,
        *,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
        daemon: bool = True,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        """Create a signaler for ``target``.

        Args:
          target: Receiver of the notification.
          grace_seconds: Delay before delivery.
          daemon: Whether timer threads are daemonic. Daemon timers die with
            the process; short-lived callers such as the CLI pass ``False`` so
            the notification still fires before interpreter exit.
          logger: Structured logger; defaults to the package logger.
        """
        self._target = target
        self._grace = grace_seconds
        self._daemon = daemon
        self._logger = logger or get_logger("mailsettings.reload")

    @property
    def grace_seconds(self) -> float:
        return self._grace

    def schedule_reload(self) -> threading.Timer:
        timer = threading.Timer(self._grace, self._fire)
        timer.daemon = self._daemon
        self._logger.info("reload_scheduled", grace_seconds=self._grace)
        timer.start()
        return timer

    def _fire(self) -> None:
        try:
            self._target.deliver()
        except Exception as exc:  # the caller is gone; the log is the only record
            self._logger.error("reload_delivery_failed", error=str(exc))
            return
        self._logger.info("reload_delivered")


class ReloadCoordinator:
    """Validate, persist, and decide how a settings update takes effect.

    What:
      Own the read path (stored blob → sanitised document) and the write path
      (payload → stored canonical blob → reload decision), plus the process's
      :class:`RestartState`.

    Why:
      Keeping the ordering of steps and the restart flag in one object makes
      the "no side effect on failure" rule easy to audit: nothing after a
      failing step runs.

    How:
      Collaborators are injected: a :class:`~mailsettings.config.store.SettingsStore`,
      an :class:`~mailsettings.core.activity.ActivityProbe`, and a
      :class:`ReloadSignaler`. Safe to share between request threads; the
      only shared mutable state is the lock-guarded restart flag.
    """

    def __init__(
        self,
        store: SettingsStore,
        probe: ActivityProbe,
        signaler: ReloadSignaler,
        *,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._store = store
        self._probe = probe
        self._signaler = signaler
        self._logger = logger or get_logger("mailsettings.coordinator")
        self.restart_state = RestartState()

    @property
    def needs_restart(self) -> bool:
        return self.restart_state.needs_restart

    def read_settings(self) -> Settings:
        """Return the stored document with secrets scrubbed.

        Raises:
          StorageError: If the blob cannot be fetched.
          ParseError: If the stored blob no longer decodes.
        """
        return decode_settings(self._store.get()).sanitized_for_read()

    def stored_checksum(self) -> str:
        """Return the digest of the blob currently held by the store.

        Raises:
          StorageError: If the blob cannot be fetched.
        """
        return checksum(self._store.get())

    def apply_update(self, candidate: SettingsSource) -> UpdateOutcome:
        """Persist ``candidate`` and trigger or defer the process reload.

        What:
          Decode, validate, canonicalise and store the candidate, then either
          set the restart flag or schedule a reload.

        Why:
          Each step gates the next so that a rejected or failed update leaves
          both storage and the restart flag exactly as they were.

        How:
          Steps run in order and any :class:`SettingsError` propagates
          unchanged after being logged. The probe is consulted only after
          ``put`` returns.

        Args:
          candidate: JSON bytes/text or an already-bound mapping.

        Returns:
          :class:`UpdateOutcome` describing the reload decision.

        Raises:
          ParseError: The candidate does not decode.
          ValidationError: No SMTP block is enabled.
          EncodeError: The document cannot be canonicalised.
          StorageError: The store rejected the write.
        """
        try:
            settings = decode_settings(candidate)
            validate_settings(settings)
            blob = canonicalize(settings)
            self._store.put(blob)
        except SettingsError as exc:
            self._logger.warning("settings_update_rejected", error=type(exc).__name__, reason=str(exc))
            raise

        digest = checksum(blob)
        if self._probe.has_protected_activity():
            self.restart_state.mark()
            self._logger.info("settings_updated_restart_deferred", checksum=digest)
            return UpdateOutcome(needs_restart=True, checksum=digest)

        self._logger.info("settings_updated", checksum=digest)
        self._signaler.schedule_reload()
        return UpdateOutcome(needs_restart=False, checksum=digest)
