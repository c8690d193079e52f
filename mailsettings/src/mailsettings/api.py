"""Framework-neutral handlers for the settings read and write endpoints.

What:
  Map :class:`~mailsettings.core.reload.ReloadCoordinator` results and errors
  onto status codes and JSON bodies, ready for any web framework to return.

Why:
  Routing is owned by the host application. What belongs here is the contract
  at the boundary: which failure is the caller's fault (400) and which is ours
  (500), the ``{"data": ...}`` success envelope, and the fixed message
  prefixes operators grep for.

How:
  Each handler calls the coordinator once and translates the typed
  :class:`~mailsettings.config.schema.SettingsError` subclasses. Storage
  messages are already sanitised by the store.

Interfaces:
  ``ApiResponse``, ``handle_get_settings``, ``handle_update_settings``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .config.loader import SettingsSource
from .config.schema import EncodeError, ParseError, ValidationError
from .config.store import StorageError
from .core.reload import ReloadCoordinator


@dataclass(frozen=True)
class ApiResponse:
    """Status code plus JSON-serialisable body."""

    status_code: int
    body: Dict[str, Any]


def _ok(data: Any) -> ApiResponse:
    return ApiResponse(200, {"data": data})


def _error(status_code: int, message: str) -> ApiResponse:
    return ApiResponse(status_code, {"message": message})


def handle_get_settings(coordinator: ReloadCoordinator) -> ApiResponse:
    """Return the current settings with secrets scrubbed."""

    try:
        settings = coordinator.read_settings()
    except StorageError as exc:
        return _error(500, f"Error fetching settings: {exc}")
    except ParseError as exc:
        return _error(500, f"Error parsing settings: {exc}")
    return _ok(settings.model_dump(mode="json", by_alias=True))


def handle_update_settings(coordinator: ReloadCoordinator, body: SettingsSource) -> ApiResponse:
    """Replace the settings document and report how the reload is handled.

    Returns:
      ``{"data": {"needs_restart": true}}`` when campaigns are running,
      ``{"data": true}`` when a reload was scheduled, or an error body.
    """

    try:
        outcome = coordinator.apply_update(body)
    except ParseError as exc:
        return _error(400, f"Invalid settings: {exc}")
    except ValidationError as exc:
        return _error(400, str(exc))
    except EncodeError as exc:
        return _error(500, f"Error encoding settings: {exc}")
    except StorageError as exc:
        return _error(500, f"Error updating settings: {exc}")
    if outcome.needs_restart:
        return _ok({"needs_restart": True})
    return _ok(True)
