"""Reload coordination and activity probes."""

from .activity import ActivityProbe, CallableActivityProbe, CampaignRegistry, StaticActivityProbe
from .reload import (
    DEFAULT_GRACE_SECONDS,
    ProcessSignalTarget,
    ReloadChannel,
    ReloadCoordinator,
    ReloadSignaler,
    ReloadTarget,
    RestartState,
    UpdateOutcome,
)

__all__ = [
    "ActivityProbe",
    "CallableActivityProbe",
    "CampaignRegistry",
    "StaticActivityProbe",
    "DEFAULT_GRACE_SECONDS",
    "ProcessSignalTarget",
    "ReloadChannel",
    "ReloadCoordinator",
    "ReloadSignaler",
    "ReloadTarget",
    "RestartState",
    "UpdateOutcome",
]
