"""
Module: mailsettings.__init__

What:
  Package for the mail service's runtime settings: the typed settings
  document, its store, and the coordinator that persists updates and reloads
  the running process.

Interfaces:
  - config: Settings schema, loaders, validation and storage.
  - core: Activity probes and the update/reload coordinator.
  - api: Framework-neutral read/write handlers.
  - utils: Logging, checksums, backend message scrubbing, SQLCipher access.

Invariants:
  - Settings never leave the package with SMTP passwords or the object
    storage secret key populated.
"""

__all__ = [
    "api",
    "config",
    "core",
    "utils",
]
