"""Strict loaders and serializers for the settings document and runtime config.

What:
  Decode inbound or stored settings payloads into :class:`Settings`, produce
  the canonical blob written to storage, and locate/parse the service's own
  ``config.yaml``.

Why:
  Settings arrive from operators and leave through the API; both directions
  must pass through the same schema so that storage only ever holds the
  minimal, canonical document. The service configuration is external too and
  can be malformed, so it is validated before any store is opened.

How:
  Settings travel as JSON. :func:`decode_settings` accepts raw bytes, text, or
  an already-bound mapping and wraps every structural failure in
  :class:`ParseError`. :func:`canonicalize` re-encodes the typed model with
  wire aliases; running it on a freshly decoded document is the write-side
  sanitisation step. Runtime configuration is YAML resolved through an
  explicit path, the ``MAILSETTINGS_CONFIG_PATH`` variable, then well-known
  locations, and cached until :func:`reset_runtime_config`.

Interfaces:
  - :func:`decode_settings`, :func:`canonicalize`, :func:`load_settings_file`.
  - :func:`load_runtime_config` / :func:`get_runtime_config` /
    :func:`reset_runtime_config`.

Invariants:
  - Error messages built from pydantic failures name the offending location
    but never echo the input value, so secrets cannot leak through them.
  - ``canonicalize(decode_settings(canonicalize(doc)))`` equals
    ``canonicalize(doc)``.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

import yaml
from pydantic import ValidationError as _PydanticValidationError
from pydantic_core import PydanticSerializationError

from .schema import EncodeError, ParseError, RuntimeConfig, Settings


class ConfigLoadError(Exception):
    """Base error for service configuration failures.

    Kept separate from :class:`~mailsettings.config.schema.SettingsError`:
    a broken ``config.yaml`` stops the service, a broken settings payload only
    fails one request.
    """


class RuntimeConfigError(ConfigLoadError):
    """Error raised when ``config.yaml`` cannot be located, read or validated."""


SettingsSource = Union[bytes, bytearray, str, Mapping[str, Any]]

_CONFIG_ENV = "MAILSETTINGS_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("config.yaml"),
    Path("/etc/mailsettings/config.yaml"),
    Path("/var/lib/mailsettings/config.yaml"),
)
_RUNTIME_CACHE: Optional[Tuple[Path, RuntimeConfig]] = None


def describe_validation_error(exc: _PydanticValidationError) -> str:
    """Summarise a pydantic error as ``loc: msg`` pairs without input values."""

    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def decode_settings(source: SettingsSource) -> Settings:
    """Decode a settings payload into the typed document.

    What:
      Convert JSON bytes/text, or a mapping already bound by a web framework,
      into a :class:`Settings` instance.

    Why:
      Decoding is the first gate of both the read path (stored blob) and the
      write path (operator payload). Keys the schema does not know are dropped
      here, which is what keeps unexpected content out of storage.

    How:
      Parse text with :func:`json.loads`, insist on a top-level object, and
      validate through :meth:`Settings.model_validate`. Every failure is
      re-raised as :class:`ParseError`.

    Args:
      source: Raw payload or decoded mapping.

    Returns:
      The decoded :class:`Settings` model.

    Raises:
      ParseError: If the payload is not a JSON object matching the schema.
    """

    if isinstance(source, Mapping):
        payload: Any = dict(source)
    elif not isinstance(source, (bytes, bytearray, str)):
        raise ParseError("settings must be a JSON object")
    else:
        if isinstance(source, (bytes, bytearray)):
            try:
                text = bytes(source).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ParseError(f"settings are not valid UTF-8: {exc.reason}") from exc
        else:
            text = source
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(f"invalid JSON at line {exc.lineno} column {exc.colno}: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ParseError("settings must be a JSON object")
    try:
        return Settings.model_validate(payload)
    except _PydanticValidationError as exc:
        raise ParseError(describe_validation_error(exc)) from exc


def canonicalize(settings: Settings) -> bytes:
    """Serialise ``settings`` into the canonical blob persisted by the store.

    What:
      Emit compact JSON using the wire aliases and the schema's field order.

    Why:
      The decode-then-encode round trip is mandatory before every write: it
      guarantees storage never receives keys or substructures the schema does
      not describe, even when the inbound payload already looked canonical.

    Raises:
      EncodeError: If pydantic cannot serialise the model.
    """

    try:
        return settings.model_dump_json(by_alias=True).encode("utf-8")
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise EncodeError(str(exc)) from exc


def load_settings_file(path: Union[Path, str]) -> Mapping[str, Any]:
    """Read an operator-supplied settings file written in YAML or JSON.

    JSON is a subset of YAML, so both are parsed with ``yaml.safe_load``. The
    result is only checked for being a mapping; schema validation happens in
    :func:`decode_settings` so the CLI and the API share one code path.

    Raises:
      ParseError: If the file cannot be read or does not hold a mapping.
    """

    source = Path(path).expanduser()
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ParseError(f"Unable to read settings file {source}: {exc.strerror or exc}") from exc
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ParseError(f"{source} must contain a mapping at the top-level")
    return payload


def _candidate_paths(path: Optional[Path]) -> Iterable[Path]:
    """Yield ``config.yaml`` locations in priority order, deduplicated."""

    seen: set[Path] = set()
    candidates = []
    if path is not None:
        candidates.append(path)
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        candidates.append(Path(env_path))
    candidates.extend(_DEFAULT_LOCATIONS)
    for candidate in candidates:
        candidate = candidate.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    """Read and validate ``config.yaml`` from ``path``.

    Raises:
      RuntimeConfigError: If the file cannot be read, parsed, or validated.
    """

    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise RuntimeConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise RuntimeConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeConfigError("config.yaml must contain a mapping at the top-level")
    try:
        return RuntimeConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise RuntimeConfigError(f"Invalid config.yaml: {describe_validation_error(exc)}") from exc


def load_runtime_config(
    path: Optional[Union[Path, str]] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the service runtime configuration.

    What:
      Locate ``config.yaml`` using the precedence chain (argument, environment,
      defaults) and return a validated :class:`RuntimeConfig`.

    Why:
      The CLI and the service wiring both need the database location and reload
      policy; caching avoids re-reading the file for every command while
      ``reload`` allows a deliberate refresh.

    How:
      Return the cached value unless ``reload`` is requested or a different
      explicit path is asked for, then walk the candidates and keep the first
      file that exists.

    Args:
      path: Optional explicit location of ``config.yaml``.
      reload: When ``True`` bypass the cache.

    Returns:
      The validated runtime configuration.

    Raises:
      RuntimeConfigError: If no candidate exists or the chosen file is invalid.
    """

    global _RUNTIME_CACHE

    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    searched: list[str] = []
    for candidate in _candidate_paths(requested_path):
        if not candidate.exists():
            searched.append(str(candidate))
            continue
        config = _load_runtime_from_path(candidate)
        _RUNTIME_CACHE = (candidate, config)
        return config

    listing = ", ".join(searched) if searched else "<none>"
    raise RuntimeConfigError(f"Unable to locate config.yaml (searched: {listing})")


def get_runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand."""

    return load_runtime_config()


def reset_runtime_config() -> None:
    """Clear the runtime configuration cache."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None
