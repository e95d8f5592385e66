"""Conversation orchestrator for the essay-structuring workflow.

One user message produces one tutoring request; the reply is sanitized for
display and mined for skeleton content (structured fragment first, heuristics
otherwise) before the stage machine gets a chance to advance.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional, Protocol, Tuple

from apps.persistence.session_store import SessionPersistence, SessionSnapshot, SQLiteSessionStore
from apps.structuring.heuristics import HeuristicContentExtractor
from apps.structuring.progression import ProgressionStateMachine
from apps.structuring.sanitizer import ResponseSanitizer
from apps.structuring.sections import SectionStore, Skeleton
from apps.structuring.structured_fragment import StructuredDataExtractor
from apps.tutoring.client import TutoringServiceClient, TutoringServiceError
from apps.tutoring.models import TutorContext, TutorParagraphs, TutorRequest, TutorResponse
from essaycoach.core.config import CoachConfig
from essaycoach.core.provenance import TurnLogger
from essaycoach.core.stages import Stage

from .guidance import WELCOME_MESSAGE, StageGuidance, guidance_for

LOGGER_NAME = "essaycoach.orchestrator"

Role = Literal["user", "assistant"]
TurnStatus = Literal["rejected", "completed", "failed", "discarded"]


class TutoringClient(Protocol):
    def send(self, request: TutorRequest) -> TutorResponse: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


def new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Message:
    id: str
    role: Role
    text: str
    stage: Stage
    timestamp: datetime

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "text": self.text,
            "stage": self.stage.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class PendingTurn:
    """The one request allowed in flight for a session."""

    session_id: str
    user_message: Message
    request: TutorRequest


@dataclass(frozen=True)
class ErrorNotice:
    title: str
    description: str
    status_code: int | None = None

    @classmethod
    def from_error(cls, error: Exception) -> "ErrorNotice":
        status_code = getattr(error, "status_code", None)
        if status_code == 429:
            description = "Request limit reached. Please try again later."
        else:
            description = "The message could not be sent. Please try again."
        return cls(title="Message not sent", description=description, status_code=status_code)


@dataclass(frozen=True)
class TurnOutcome:
    status: TurnStatus
    user_message: Message | None = None
    assistant_message: Message | None = None
    error: ErrorNotice | None = None
    extraction: str | None = None
    advanced: bool = False


@dataclass
class Session:
    id: str
    sections: SectionStore = field(default_factory=SectionStore)
    progression: ProgressionStateMachine = field(default_factory=ProgressionStateMachine)
    messages: List[Message] = field(default_factory=list)
    pending: PendingTurn | None = None
    suggested_next_steps: List[str] = field(default_factory=list)

    @property
    def stage(self) -> Stage:
        return self.progression.stage


class ConversationOrchestrator:
    """Owns the session and coordinates extractors, sections and stage machine."""

    def __init__(
        self,
        client: TutoringClient,
        *,
        store: SessionPersistence | None = None,
        turn_logger: TurnLogger | None = None,
        structured_extractor: StructuredDataExtractor | None = None,
        heuristic_extractor: HeuristicContentExtractor | None = None,
        sanitizer: ResponseSanitizer | None = None,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._turn_logger = turn_logger
        self._structured = structured_extractor or StructuredDataExtractor()
        self._heuristics = heuristic_extractor or HeuristicContentExtractor()
        self._sanitizer = sanitizer or ResponseSanitizer()
        self._clock = clock or _utcnow
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.last_error: ErrorNotice | None = None
        restored = self._restore_session_id()
        self._session = self._open_session(restored or new_session_id())

    @classmethod
    def from_config(cls, config: CoachConfig, *, client: TutoringClient | None = None) -> "ConversationOrchestrator":
        """Wire collaborators from a loaded config."""

        store = SQLiteSessionStore(config.persistence.sqlite_path) if config.persistence.enabled else None
        turn_logger = TurnLogger(config.provenance.path) if config.provenance.path else None
        return cls(
            client or TutoringServiceClient.from_settings(config.tutor),
            store=store,
            turn_logger=turn_logger,
            heuristic_extractor=HeuristicContentExtractor(extra_hedge_markers=config.extraction.extra_hedge_markers),
        )

    # ------------------------------------------------------------------
    # UI boundary

    @property
    def session_id(self) -> str:
        return self._session.id

    @property
    def current_stage(self) -> Stage:
        return self._session.stage

    @property
    def skeleton(self) -> Skeleton:
        return self._session.sections.snapshot()

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._session.messages)

    @property
    def is_pending(self) -> bool:
        return self._session.pending is not None

    @property
    def suggested_next_steps(self) -> Tuple[str, ...]:
        return tuple(self._session.suggested_next_steps)

    def completion_percent(self) -> int:
        return self._session.sections.completion_percent()

    def is_complete(self) -> bool:
        return self._session.sections.is_complete()

    def guidance(self, stage: Stage | None = None) -> StageGuidance:
        return guidance_for(stage or self.current_stage)

    # ------------------------------------------------------------------
    # Entry points

    def send_user_message(self, text: str) -> TurnOutcome:
        """Run one full turn against the tutoring service."""

        turn = self.begin_turn(text)
        if turn is None:
            return TurnOutcome(status="rejected")
        try:
            response = self._client.send(turn.request)
        except TutoringServiceError as exc:
            return self.fail_turn(turn, exc)
        except Exception as exc:  # noqa: BLE001 - any client fault becomes a notice
            self.logger.exception("Tutoring client raised unexpectedly")
            return self.fail_turn(turn, TutoringServiceError(str(exc)))
        return self.complete_turn(turn, response)

    def begin_turn(self, text: str) -> PendingTurn | None:
        """Record the user's message and build the request; ``None`` when rejected."""

        if not text or not text.strip():
            self.logger.debug("Ignoring blank submission")
            return None
        if self.is_pending:
            self.logger.debug("Ignoring submission while a request is in flight")
            return None

        session = self._session
        self.last_error = None
        user_message = Message(
            id=new_message_id(),
            role="user",
            text=text.strip(),
            stage=session.stage,
            timestamp=self._clock(),
        )
        session.messages.append(user_message)
        self._record("user_message", user_message.text, {"message_id": user_message.id})

        # The stage only moves once the reply is in; the request goes out under
        # the stage the user was answering.
        stage = session.stage
        found = self._heuristics.match(text, stage)
        if found is not None and session.sections.apply_heuristic(stage, found.text):
            self._record(
                "extraction",
                found.text,
                {"source": "user", "strategy": found.strategy, "field": stage.field},
            )

        request = TutorRequest(
            session_id=session.id,
            message_id=user_message.id,
            message=user_message.text,
            stage=session.stage.value,
            context=self._request_context(session),
        )
        turn = PendingTurn(session_id=session.id, user_message=user_message, request=request)
        session.pending = turn
        return turn

    def complete_turn(self, turn: PendingTurn, response: TutorResponse) -> TurnOutcome:
        """Apply a successful reply to the session the turn was sent from."""

        session = self._session
        if self._is_stale(turn):
            self.logger.info(
                "Discarding tutoring response for a replaced session",
                extra={"turn_session": turn.session_id, "active_session": session.id},
            )
            return TurnOutcome(status="discarded", user_message=turn.user_message)

        raw = response.response
        reported = Stage.parse(response.stage) or session.stage
        assistant_message = Message(
            id=new_message_id(),
            role="assistant",
            text=self._sanitizer.sanitize(raw),
            stage=reported,
            timestamp=self._clock(),
        )
        session.messages.append(assistant_message)

        extraction = self._extract_from_reply(session, raw)
        advanced = self._advance(session)
        session.suggested_next_steps = list(response.suggested_next_steps)
        if response.conversation_id and response.conversation_id != session.id:
            self.logger.debug("Adopting service conversation id %s", response.conversation_id)
            session.id = response.conversation_id
        session.pending = None
        self._persist(session)
        return TurnOutcome(
            status="completed",
            user_message=turn.user_message,
            assistant_message=assistant_message,
            extraction=extraction,
            advanced=advanced,
        )

    def fail_turn(self, turn: PendingTurn, error: Exception) -> TurnOutcome:
        """Surface a service failure; the skeleton and history stay untouched."""

        if self._is_stale(turn):
            return TurnOutcome(status="discarded", user_message=turn.user_message)
        session = self._session
        session.pending = None
        notice = ErrorNotice.from_error(error)
        self.last_error = notice
        self.logger.warning("Tutoring request failed: %s", error)
        self._record("service_error", str(error), {"status_code": notice.status_code})
        return TurnOutcome(status="failed", user_message=turn.user_message, error=notice)

    def restart(self) -> None:
        """Drop everything and start over under a fresh session id."""

        previous = self._session.id
        self._session = self._open_session(new_session_id())
        self.last_error = None
        self.logger.info("Session restarted", extra={"previous_session": previous, "session": self._session.id})
        self._persist(self._session)

    # ------------------------------------------------------------------

    def _open_session(self, session_id: str) -> Session:
        session = Session(id=session_id)
        session.messages.append(
            Message(
                id=new_message_id(),
                role="assistant",
                text=WELCOME_MESSAGE,
                stage=Stage.TOPIC,
                timestamp=self._clock(),
            )
        )
        return session

    def _is_stale(self, turn: PendingTurn) -> bool:
        return turn.session_id != self._session.id or self._session.pending is not turn

    def _extract_from_reply(self, session: Session, raw: str) -> Optional[str]:
        partial = self._structured.extract(raw)
        if partial is not None:
            changed = session.sections.apply_structured(partial)
            self._record("extraction", "structured fragment", {"source": "assistant", "fields": changed})
            return "structured"
        stage = session.stage
        found = self._heuristics.match(raw, stage)
        if found is not None and session.sections.apply_heuristic(stage, found.text):
            self._record(
                "extraction",
                found.text,
                {"source": "assistant", "strategy": found.strategy, "field": stage.field},
            )
            return found.strategy
        return None

    def _advance(self, session: Session) -> bool:
        before = session.stage
        advanced = session.progression.check(session.sections.snapshot())
        if advanced:
            self._record("stage_advanced", f"{before.value} -> {session.stage.value}", {})
        return advanced

    @staticmethod
    def _request_context(session: Session) -> TutorContext:
        skeleton = session.sections.snapshot()
        paragraphs = TutorParagraphs(
            introduction=skeleton.introduction,
            development1=skeleton.development1,
            development2=skeleton.development2,
            conclusion=skeleton.conclusion,
        )
        has_paragraphs = any(paragraphs.model_dump(exclude_none=True).values())
        return TutorContext(
            topic=skeleton.topic,
            thesis=skeleton.thesis,
            paragraphs=paragraphs if has_paragraphs else None,
        )

    def _restore_session_id(self) -> Optional[str]:
        if self._store is None:
            return None
        try:
            return self._store.load_conversation_id()
        except Exception as exc:  # noqa: BLE001 - persistence is best-effort
            self.logger.warning("Could not read the saved session id: %s", exc)
            return None

    def _persist(self, session: Session) -> None:
        if self._store is None:
            return
        snapshot = SessionSnapshot(
            conversation_id=session.id,
            messages=[message.as_dict() for message in session.messages],
            stage=session.stage.value,
            skeleton=session.sections.snapshot().as_dict(),
            saved_at=self._clock(),
        )
        try:
            self._store.save_snapshot(snapshot)
        except Exception as exc:  # noqa: BLE001 - persistence is best-effort
            self.logger.warning("Could not save session snapshot: %s", exc)

    def _record(self, kind: str, message: str, payload: Dict[str, Any]) -> None:
        if self._turn_logger is None:
            return
        try:
            self._turn_logger.log(
                {
                    "session_id": self._session.id,
                    "stage": self._session.stage.value,
                    "kind": kind,
                    "message": message,
                    "payload": payload,
                }
            )
        except Exception as exc:  # noqa: BLE001 - the turn log is best-effort
            self.logger.warning("Could not append turn event: %s", exc)


__all__ = [
    "ConversationOrchestrator",
    "ErrorNotice",
    "Message",
    "PendingTurn",
    "Session",
    "TurnOutcome",
    "new_session_id",
]
