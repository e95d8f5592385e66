"""Six-field essay skeleton and the only code allowed to mutate it."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Mapping, Optional

from essaycoach.core.stages import SKELETON_FIELDS, Stage, profile_for

LOGGER = logging.getLogger("essaycoach.structuring.sections")


@dataclass(frozen=True)
class Skeleton:
    """Planned essay content; empty fields are ``None``."""

    topic: Optional[str] = None
    thesis: Optional[str] = None
    introduction: Optional[str] = None
    development1: Optional[str] = None
    development2: Optional[str] = None
    conclusion: Optional[str] = None

    def get(self, field_name: str) -> Optional[str]:
        return getattr(self, field_name)

    def is_filled(self, field_name: str) -> bool:
        value = self.get(field_name)
        return bool(value and value.strip())

    @property
    def filled_count(self) -> int:
        return sum(1 for name in SKELETON_FIELDS if self.is_filled(name))

    def as_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


class SectionStore:
    """Holds the skeleton and enforces its write rules.

    The structured path (``apply_structured``) is trusted and may overwrite any
    field. The heuristic path (``apply_heuristic``) only fills empty fields,
    and only with text longer than the stage minimum.
    """

    def __init__(self, skeleton: Skeleton | None = None) -> None:
        self._skeleton = skeleton or Skeleton()

    def snapshot(self) -> Skeleton:
        return replace(self._skeleton)

    def field(self, stage: Stage) -> Optional[str]:
        if stage.field is None:
            return None
        return self._skeleton.get(stage.field)

    def apply_structured(self, partial: Mapping[str, Any] | None) -> List[str]:
        """Overwrite every present, non-empty field; return the fields that changed."""

        if not partial:
            return []
        updates: Dict[str, str] = {}
        for name in SKELETON_FIELDS:
            value = partial.get(name)
            if not isinstance(value, str) or not value.strip():
                continue
            value = value.strip()
            if self._skeleton.get(name) != value:
                updates[name] = value
        if updates:
            self._skeleton = replace(self._skeleton, **updates)
            LOGGER.debug("Structured update applied", extra={"fields": sorted(updates)})
        return sorted(updates, key=SKELETON_FIELDS.index)

    def apply_heuristic(self, stage: Stage, candidate: str | None) -> bool:
        """Fill the stage's field once; later heuristic writes are ignored."""

        field_name = stage.field
        if field_name is None or not candidate:
            return False
        if self._skeleton.is_filled(field_name):
            return False
        value = candidate.strip()
        if len(value) <= profile_for(stage).min_length:
            return False
        self._skeleton = replace(self._skeleton, **{field_name: value})
        LOGGER.debug("Heuristic fill for %s", field_name)
        return True

    def is_complete(self) -> bool:
        return self._skeleton.filled_count == len(SKELETON_FIELDS)

    def completion_percent(self) -> int:
        return round(self._skeleton.filled_count / len(SKELETON_FIELDS) * 100)

    def reset(self) -> None:
        self._skeleton = Skeleton()


__all__ = ["SectionStore", "Skeleton"]
