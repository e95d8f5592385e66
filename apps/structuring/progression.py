"""Seven-state linear authoring workflow."""

from __future__ import annotations

import logging

from essaycoach.core.stages import STAGE_ORDER, Stage

from .sections import Skeleton

LOGGER = logging.getLogger("essaycoach.structuring.progression")


class ProgressionStateMachine:
    """Moves forward one stage at a time once the current stage's field is filled.

    There is no backward transition; ``reset`` is the only way back to ``topic``.
    """

    def __init__(self, stage: Stage = Stage.TOPIC) -> None:
        self._stage = stage

    @property
    def stage(self) -> Stage:
        return self._stage

    @property
    def index(self) -> int:
        return STAGE_ORDER.index(self._stage)

    @property
    def is_final(self) -> bool:
        return self._stage.is_final

    def check(self, skeleton: Skeleton) -> bool:
        """Advance at most one stage; return whether a transition happened."""

        field_name = self._stage.field
        if field_name is None or not skeleton.is_filled(field_name):
            return False
        previous = self._stage
        self._stage = previous.next()
        LOGGER.info("Stage advanced %s -> %s", previous.value, self._stage.value)
        return True

    def reset(self) -> None:
        self._stage = Stage.TOPIC


__all__ = ["ProgressionStateMachine"]
