"""
Foundational stage table, configuration and logging utilities.

The structuring components under `apps/` depend on these without pulling in
the HTTP client or the CLI.
"""

from .config import CoachConfig, load_coach_config
from .provenance import TurnEvent, TurnLogger
from .stages import SKELETON_FIELDS, STAGE_ORDER, STAGE_PROFILES, Stage, StageProfile, profile_for

__all__ = [
    "CoachConfig",
    "SKELETON_FIELDS",
    "STAGE_ORDER",
    "STAGE_PROFILES",
    "Stage",
    "StageProfile",
    "TurnEvent",
    "TurnLogger",
    "load_coach_config",
    "profile_for",
]
