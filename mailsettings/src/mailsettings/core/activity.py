"""Answer "is protected work currently in progress?" for the reload decision.

What:
  Define the :class:`ActivityProbe` protocol consumed by the reload
  coordinator plus a few concrete probes: a constant one, one wrapping an
  arbitrary callable, and :class:`CampaignRegistry`, a thread-safe set of
  campaigns currently sending.

Why:
  Reloading the process while a campaign is mid-send would interrupt it. The
  coordinator does not know what a campaign is; it only asks this question
  once per successful update.

How:
  Probes return a best-effort snapshot without blocking. Nothing here is
  linearised with the coordinator's decision: an activity may start or end
  right after the answer is given.

Interfaces:
  ``ActivityProbe``, ``StaticActivityProbe``, ``CallableActivityProbe``,
  ``CampaignRegistry``.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Hashable, Protocol, Set


class ActivityProbe(Protocol):
    """Snapshot of whether a reload would disrupt in-flight work."""

    def has_protected_activity(self) -> bool:
        ...


@dataclass
class StaticActivityProbe:
    """Probe returning a fixed answer; used by the CLI and tests."""

    active: bool = False

    def has_protected_activity(self) -> bool:
        return self.active


class CallableActivityProbe:
    """Adapt a zero-argument callable (e.g. a campaign manager method)."""

    def __init__(self, check: Callable[[], bool]) -> None:
        self._check = check

    def has_protected_activity(self) -> bool:
        return bool(self._check())


class CampaignRegistry:
    """Track campaigns that are currently sending.

    Send workers call :meth:`started` and :meth:`finished` around a campaign
    run; the registry doubles as the activity probe for the settings
    coordinator.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._running: Set[Hashable] = set()

    def started(self, campaign_id: Hashable) -> None:
        with self._lock:
            self._running.add(campaign_id)

    def finished(self, campaign_id: Hashable) -> None:
        with self._lock:
            self._running.discard(campaign_id)

    def running(self) -> Set[Hashable]:
        with self._lock:
            return set(self._running)

    def has_protected_activity(self) -> bool:
        with self._lock:
            return bool(self._running)
