"""Append-only JSONL log of conversation turns."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class TurnEvent(BaseModel):
    """Structured record for one orchestrator event."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str
    stage: str = Field(..., description="Stage active when the event was recorded.")
    kind: str = Field(..., description="Event kind, e.g. 'user_message', 'extraction' or 'service_error'.")
    message: str = Field(default="")
    payload: Dict[str, Any] = Field(default_factory=dict)


class TurnLogger:
    """Writes one JSON line per event."""

    def __init__(self, output_path: Path):
        self.output_path = output_path
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, event: TurnEvent | Dict[str, Any]) -> TurnEvent:
        if not isinstance(event, TurnEvent):
            event = TurnEvent(**event)
        with self.output_path.open("a", encoding="utf-8") as handle:
            handle.write(event.model_dump_json() + "\n")
        return event

    def read(self) -> List[TurnEvent]:
        if not self.output_path.exists():
            return []
        events: List[TurnEvent] = []
        for line in self.output_path.read_text(encoding="utf-8").splitlines():
            if line.strip():
                events.append(TurnEvent.model_validate_json(line))
        return events


__all__ = ["TurnEvent", "TurnLogger"]
