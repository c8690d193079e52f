"""Pytest configuration shared by every suite.

What:
  Make the in-repo ``mailsettings/src`` tree importable and keep the runtime
  configuration cache and environment deterministic between tests.

Why:
  The loader caches ``config.yaml`` in a module global and honours the
  ``MAILSETTINGS_CONFIG_PATH`` variable. Without a reset, one test's
  configuration would leak into the next.

How:
  Prepend the source directory to ``sys.path`` at import time, then use an
  autouse fixture that clears the environment override and the cache before
  and after each test. :func:`runtime_config_file` writes a minimal
  ``config.yaml`` pointing at a temporary database.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mailsettings" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from mailsettings.config.loader import reset_runtime_config


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Clear ``MAILSETTINGS_CONFIG_PATH`` and the runtime cache around each test."""

    monkeypatch.delenv("MAILSETTINGS_CONFIG_PATH", raising=False)
    reset_runtime_config()
    try:
        yield
    finally:
        reset_runtime_config()


@pytest.fixture
def runtime_config_file(tmp_path: Path) -> Path:
    """Write a ``config.yaml`` whose database lives under ``tmp_path``."""

    path = tmp_path / "config.yaml"
    path.write_text(
        f"""
database:
  path: {tmp_path / "state" / "settings.db"}
reload:
  grace_seconds: 0.01
  target: channel
logging:
  component: mailsettings-test
"""
    )
    return path
