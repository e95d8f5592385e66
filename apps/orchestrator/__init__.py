"""Conversation orchestration interface."""
from .conversation import (
    ConversationOrchestrator,
    ErrorNotice,
    Message,
    PendingTurn,
    Session,
    TurnOutcome,
    new_session_id,
)
from .guidance import GUIDANCE, WELCOME_MESSAGE, StageGuidance, guidance_for, guidance_table

__all__ = [
    "ConversationOrchestrator",
    "ErrorNotice",
    "GUIDANCE",
    "Message",
    "PendingTurn",
    "Session",
    "StageGuidance",
    "TurnOutcome",
    "WELCOME_MESSAGE",
    "guidance_for",
    "guidance_table",
    "new_session_id",
]
