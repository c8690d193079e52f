"""Pytest fixtures for unit tests of the settings coordinator.

What:
  Make ``tests/unit`` importable so :mod:`fakes` resolves, and expose ready
  made collaborators: an in-memory store seeded with the default document, a
  recording signaler, a switchable activity probe, a log buffer, and a
  coordinator wired to all of them.

Invariants & Safety:
  - Each test receives fresh instances; nothing is shared across tests.
"""

import io
import sys
from pathlib import Path

import pytest

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeSettingsStore, RecordingSignaler

from mailsettings.config.loader import canonicalize
from mailsettings.config.schema import Settings
from mailsettings.core.activity import StaticActivityProbe
from mailsettings.core.reload import ReloadCoordinator
from mailsettings.utils.logging import JsonLogger


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> JsonLogger:
    return JsonLogger(stream=log_stream, component="test")


@pytest.fixture
def store() -> FakeSettingsStore:
    return FakeSettingsStore(canonicalize(Settings.minimal()))


@pytest.fixture
def signaler() -> RecordingSignaler:
    return RecordingSignaler()


@pytest.fixture
def probe() -> StaticActivityProbe:
    return StaticActivityProbe(active=False)


@pytest.fixture
def coordinator(store, probe, signaler, logger) -> ReloadCoordinator:
    return ReloadCoordinator(store, probe, signaler, logger=logger)
