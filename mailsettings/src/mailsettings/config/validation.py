"""Structural invariants checked before a settings document may be persisted.

Decoding only proves that a payload has the right shape. The checks here
encode what the mail service needs to keep working after a reload: at least
one SMTP transport it can send through. They run after decode and before
canonicalisation, so a rejected document never reaches storage.
"""
from __future__ import annotations

from .schema import Settings, ValidationError

SMTP_REQUIRED_REASON = "At least one SMTP block should be enabled"


def validate_settings(settings: Settings) -> None:
    """Raise :class:`ValidationError` when ``settings`` may not be persisted.

    Args:
      settings: Freshly decoded candidate document.

    Raises:
      ValidationError: With an operator-facing reason surfaced verbatim to
        API callers.
    """

    if not any(block.enabled for block in settings.smtp):
        raise ValidationError(SMTP_REQUIRED_REASON)
