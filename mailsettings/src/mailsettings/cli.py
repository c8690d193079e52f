"""Command-line interface for operating the settings store.

What:
  Provide a Typer application with ``init``, ``show`` and ``update`` commands
  so operators can bootstrap, inspect and replace the settings document
  without going through the web API.

Why:
  First-time installation and recovery happen before (or without) a running
  web service. The commands reuse the exact coordinator and boundary handlers
  the API uses, so a file pushed from the shell is validated, canonicalised
  and scrubbed the same way as an HTTP request.

How:
  Load ``config.yaml`` through :func:`load_runtime_config`, assemble the
  collaborators with :mod:`mailsettings._wiring`, and print JSON to stdout.
  Structured logs go to stderr.

Interfaces:
  ``app`` (Typer application), ``init``, ``show``, ``update``, ``main``.

Invariants & Safety:
  - Exit codes: ``0`` success, ``1`` service/storage failure, ``2`` the
    supplied settings were rejected.
  - ``show`` never prints secrets.
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from ._wiring import build_coordinator, open_store
from .api import handle_get_settings, handle_update_settings
from .config.loader import (
    RuntimeConfigError,
    canonicalize,
    get_runtime_config,
    load_runtime_config,
    load_settings_file,
)
from .config.schema import ParseError, RuntimeConfig, Settings
from .config.store import SqliteSettingsStore, StorageError
from .core.activity import StaticActivityProbe
from .core.reload import ProcessSignalTarget, ReloadChannel, ReloadCoordinator, ReloadTarget


app = typer.Typer(help="Mail service settings management")

LOGGER = logging.getLogger("mailsettings.cli")

_EXIT_CODES = {200: 0, 400: 2}


def _load_runtime(config: Optional[Path]) -> RuntimeConfig:
    try:
        return load_runtime_config(config) if config is not None else get_runtime_config()
    except RuntimeConfigError as exc:
        LOGGER.error("runtime_load_failed: %s", exc)
        raise typer.Exit(code=1) from exc


def _open_store(runtime: RuntimeConfig) -> SqliteSettingsStore:
    try:
        return open_store(runtime)
    except (OSError, ValueError) as exc:
        LOGGER.error("store_open_failed: %s", exc)
        raise typer.Exit(code=1) from exc


def _build_coordinator(
    runtime: RuntimeConfig,
    probe: StaticActivityProbe,
    *,
    target: Optional[ReloadTarget] = None,
    daemon: bool = True,
) -> ReloadCoordinator:
    try:
        return build_coordinator(runtime, probe, target=target, daemon=daemon, stream=sys.stderr)
    except (OSError, ValueError) as exc:
        LOGGER.error("store_open_failed: %s", exc)
        raise typer.Exit(code=1) from exc


@app.command("init")
def init(
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config.yaml"),
) -> None:
    """Create the settings table and write the default document if absent."""

    store = _open_store(_load_runtime(config))
    try:
        created = store.initialize(canonicalize(Settings.minimal()))
    except StorageError as exc:
        LOGGER.error("init_failed: %s", exc)
        raise typer.Exit(code=1) from exc
    typer.echo("Initialised default settings" if created else "Settings already present")


@app.command("show")
def show(
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config.yaml"),
) -> None:
    """Print the stored settings as JSON with secrets scrubbed."""

    coordinator = _build_coordinator(_load_runtime(config), StaticActivityProbe())
    response = handle_get_settings(coordinator)
    if response.status_code != 200:
        LOGGER.error("show_failed: %s", response.body["message"])
        typer.echo(json.dumps(response.body), err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(response.body["data"], indent=2))
    try:
        typer.echo(coordinator.stored_checksum(), err=True)
    except StorageError as exc:
        LOGGER.error("show_failed: %s", exc)
        raise typer.Exit(code=1) from exc


@app.command("update")
def update(
    path: Path = typer.Argument(..., help="YAML or JSON file holding the complete settings document"),
    campaigns_running: bool = typer.Option(
        False,
        "--campaigns-running",
        help="Treat the service as busy: defer the reload and report needs_restart",
    ),
    pid: Optional[int] = typer.Option(
        None,
        "--pid",
        help="Send SIGHUP to this service process once the update is stored",
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config.yaml"),
) -> None:
    """Validate and store a complete settings document.

    What:
      Replace the stored settings with the contents of ``path``.

    Why:
      Operators need a way to push configuration when the web UI is not
      reachable, with the same validation and reload semantics.

    How:
      Parse the file, run it through :func:`handle_update_settings`, print the
      response body, and map its status code onto the exit code. With
      ``--pid`` the reload is delivered as ``SIGHUP`` to that process; the
      timer is non-daemonic so it fires before this command exits.
    """

    runtime = _load_runtime(config)
    try:
        payload = load_settings_file(path)
    except ParseError as exc:
        typer.echo(json.dumps({"message": f"Invalid settings: {exc}"}))
        raise typer.Exit(code=2) from exc

    target: ReloadTarget = ProcessSignalTarget(pid) if pid is not None else ReloadChannel()
    coordinator = _build_coordinator(
        runtime,
        StaticActivityProbe(active=campaigns_running),
        target=target,
        daemon=pid is None,
    )
    response = handle_update_settings(coordinator, payload)
    typer.echo(json.dumps(response.body))
    code = _EXIT_CODES.get(response.status_code, 1)
    if code:
        raise typer.Exit(code=code)


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
