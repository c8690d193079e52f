"""Settings document configuration package.

What:
  Provide a cohesive import surface for decoding, validating, canonicalising
  and storing the settings document, and for loading the service's own
  ``config.yaml``.

Why:
  Callers should go through the schema and loader helpers rather than touching
  raw JSON, so every payload passes the same decode and validation gates.

Interfaces:
  - decode_settings / canonicalize / load_settings_file: settings payloads.
  - validate_settings: invariants checked before persistence.
  - SettingsStore / SqliteSettingsStore / StorageError: persistence.
  - load_runtime_config / get_runtime_config / reset_runtime_config: service
    configuration.
  - Settings / RuntimeConfig and the SettingsError hierarchy.
"""

from .loader import (
    ConfigLoadError,
    RuntimeConfigError,
    canonicalize,
    decode_settings,
    get_runtime_config,
    load_runtime_config,
    load_settings_file,
    reset_runtime_config,
)
from .schema import (
    EncodeError,
    ParseError,
    RuntimeConfig,
    Settings,
    SettingsError,
    SmtpBlock,
    ValidationError,
)
from .store import SettingsStore, SqliteSettingsStore, StorageError
from .validation import validate_settings

__all__ = [
    "ConfigLoadError",
    "RuntimeConfigError",
    "canonicalize",
    "decode_settings",
    "get_runtime_config",
    "load_runtime_config",
    "load_settings_file",
    "reset_runtime_config",
    "EncodeError",
    "ParseError",
    "RuntimeConfig",
    "Settings",
    "SettingsError",
    "SmtpBlock",
    "ValidationError",
    "SettingsStore",
    "SqliteSettingsStore",
    "StorageError",
    "validate_settings",
]
