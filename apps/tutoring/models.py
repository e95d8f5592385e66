"""Wire models for the tutoring service (camelCase on the wire)."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TutorParagraphs(_WireModel):
    introduction: str | None = None
    development1: str | None = None
    development2: str | None = None
    conclusion: str | None = None


class TutorContext(_WireModel):
    topic: str | None = None
    thesis: str | None = None
    paragraphs: TutorParagraphs | None = None


class TutorRequest(_WireModel):
    session_id: str | None = Field(default=None, alias="sessionId")
    message_id: str = Field(..., alias="messageId")
    message: str
    stage: str
    context: TutorContext = Field(default_factory=TutorContext)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TutorProgress(_WireModel):
    stage: str
    percent: float = Field(default=0.0, ge=0.0, le=100.0)

    @field_validator("percent", mode="before")
    @classmethod
    def clamp_percent(cls, value: Any) -> Any:
        if value is None:
            return 0.0
        if isinstance(value, bool):
            return value
        try:
            number = float(value)
        except (TypeError, ValueError):
            return value
        return min(max(number, 0.0), 100.0)


class TutorResponse(_WireModel):
    conversation_id: str = Field(..., alias="conversationId")
    response: str
    stage: str
    suggested_next_steps: List[str] = Field(default_factory=list, alias="suggestedNextSteps")
    progress: TutorProgress | None = None

    @field_validator("suggested_next_steps", mode="before")
    @classmethod
    def drop_blank_steps(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return value


__all__ = ["TutorContext", "TutorParagraphs", "TutorProgress", "TutorRequest", "TutorResponse"]
