from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, List

import pytest

from apps.orchestrator.conversation import ConversationOrchestrator
from apps.orchestrator.guidance import WELCOME_MESSAGE
from apps.persistence.session_store import InMemorySessionStore, SQLiteSessionStore
from apps.structuring.sections import Skeleton
from apps.tutoring.client import TutoringServiceError
from apps.tutoring.models import TutorRequest, TutorResponse
from essaycoach.core.config import CoachConfig
from essaycoach.core.provenance import TurnLogger
from essaycoach.core.stages import Stage

HEDGED_REPLY = "Nice work. Try to keep going with the next step."

FULL_FRAGMENT = {
    "tema": "Digital education in public schools",
    "tese": "Digital education needs public investment to be fair",
    "introducao": "Since the pandemic, remote learning exposed deep inequalities between students.",
    "desenvolvimento1": "Firstly, broadband access is still unequal across regions of the country.",
    "desenvolvimento2": "Secondly, teachers rarely receive training to use digital tools in class.",
    "conclusao": "Therefore, the Ministry of Education should fund devices and teacher training.",
}


def _fragment_reply(payload: dict) -> str:
    return f"Here is your structure so far.\n\n```json\n{json.dumps(payload)}\n```\n\nKeep going!"


class FakeTutor:
    """Returns canned replies and records every request."""

    def __init__(self, replies: List[str] | None = None, *, conversation_id: str | None = None) -> None:
        self.replies = list(replies or [])
        self.conversation_id = conversation_id
        self.requests: List[TutorRequest] = []
        self.error: Exception | None = None

    def send(self, request: TutorRequest) -> TutorResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        text = self.replies.pop(0) if self.replies else HEDGED_REPLY
        return TutorResponse.model_validate(
            {
                "conversationId": self.conversation_id or request.session_id,
                "response": text,
                "stage": request.stage,
                "suggestedNextSteps": ["Review the skeleton"],
            }
        )


class BrokenStore:
    def __init__(self, *, fail_load: bool = False) -> None:
        self.fail_load = fail_load

    def load_conversation_id(self):
        if self.fail_load:
            raise OSError("disk gone")
        return None

    def save_snapshot(self, snapshot) -> None:
        raise OSError("disk full")


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


def _orchestrator(client: FakeTutor, store=None, **kwargs) -> ConversationOrchestrator:
    return ConversationOrchestrator(client, store=store, **kwargs)


def test_new_session_starts_with_welcome_message(store: InMemorySessionStore) -> None:
    orchestrator = _orchestrator(FakeTutor(), store)
    assert orchestrator.session_id.startswith("session_")
    assert orchestrator.current_stage is Stage.TOPIC
    assert [message.text for message in orchestrator.messages] == [WELCOME_MESSAGE]
    assert orchestrator.skeleton == Skeleton()
    assert orchestrator.guidance().label == "Choosing the Topic"


def test_user_text_fills_the_field_and_the_stage_moves_after_the_reply(store: InMemorySessionStore) -> None:
    tutor = FakeTutor()
    orchestrator = _orchestrator(tutor, store)

    first = orchestrator.send_user_message("My topic is the role of digital education in Brazil.")
    assert first.status == "completed"
    assert first.advanced
    assert orchestrator.skeleton.topic == "the role of digital education in Brazil"
    assert tutor.requests[0].stage == "topic"
    assert tutor.requests[0].context.topic == "the role of digital education in Brazil"
    assert orchestrator.current_stage is Stage.THESIS

    second = orchestrator.send_user_message(
        "I defend that digital education is essential but needs public investment."
    )
    assert second.status == "completed"
    assert orchestrator.skeleton.thesis == "digital education is essential but needs public investment"
    assert tutor.requests[1].stage == "thesis"
    assert tutor.requests[1].context.thesis == "digital education is essential but needs public investment"
    assert tutor.requests[1].context.paragraphs is None
    assert orchestrator.current_stage is Stage.INTRODUCTION
    assert orchestrator.completion_percent() == 33


def test_structured_reply_fills_fields_but_advances_one_stage_per_reply(store: InMemorySessionStore) -> None:
    reply = _fragment_reply({"tema": FULL_FRAGMENT["tema"], "tese": FULL_FRAGMENT["tese"]})
    orchestrator = _orchestrator(FakeTutor([reply]), store)

    outcome = orchestrator.send_user_message("Hello there")

    assert outcome.extraction == "structured"
    assert outcome.advanced
    assert orchestrator.skeleton.topic == FULL_FRAGMENT["tema"]
    assert orchestrator.skeleton.thesis == FULL_FRAGMENT["tese"]
    assert orchestrator.current_stage is Stage.THESIS
    assert "```" not in outcome.assistant_message.text
    assert outcome.assistant_message.text == "Here is your structure so far.\n\nKeep going!"
    assert orchestrator.suggested_next_steps == ("Review the skeleton",)

    orchestrator.send_user_message("ok")
    assert orchestrator.current_stage is Stage.INTRODUCTION


def test_tutor_praise_never_lands_in_a_later_field(store: InMemorySessionStore) -> None:
    praise = "Great thesis, your position on digital education and public investment is very clear."
    orchestrator = _orchestrator(FakeTutor([praise, praise]), store)
    orchestrator.send_user_message("My topic is the role of digital education in Brazil.")
    outcome = orchestrator.send_user_message(
        "I defend that digital education is essential but needs public investment."
    )

    assert outcome.extraction is None
    assert orchestrator.skeleton.topic == "the role of digital education in Brazil"
    assert orchestrator.skeleton.thesis == "digital education is essential but needs public investment"
    assert orchestrator.skeleton.introduction is None
    assert orchestrator.current_stage is Stage.INTRODUCTION


def test_reply_fills_the_current_field_when_the_user_did_not(store: InMemorySessionStore) -> None:
    reply = "The topic of urban mobility in large cities is a great choice."
    orchestrator = _orchestrator(FakeTutor([reply]), store)

    outcome = orchestrator.send_user_message("Hello there")

    assert outcome.extraction == "scored"
    assert outcome.advanced
    assert orchestrator.skeleton.topic == reply
    assert orchestrator.skeleton.thesis is None
    assert orchestrator.current_stage is Stage.THESIS


def test_restart_clears_a_finished_session(store: InMemorySessionStore) -> None:
    orchestrator = _orchestrator(FakeTutor([_fragment_reply(FULL_FRAGMENT)]), store)
    for _ in range(6):
        assert orchestrator.send_user_message("ok").status == "completed"
    assert orchestrator.current_stage is Stage.FINALIZE
    assert orchestrator.is_complete()
    assert orchestrator.completion_percent() == 100

    previous_id = orchestrator.session_id
    orchestrator.restart()

    assert orchestrator.session_id != previous_id
    assert orchestrator.current_stage is Stage.TOPIC
    assert all(value is None for value in orchestrator.skeleton.as_dict().values())
    assert len(orchestrator.messages) == 1
    assert store.load_conversation_id() == orchestrator.session_id


def test_response_for_a_replaced_session_is_discarded(store: InMemorySessionStore) -> None:
    tutor = FakeTutor()
    orchestrator = _orchestrator(tutor, store)
    turn = orchestrator.begin_turn("Hello there")
    assert turn is not None and orchestrator.is_pending

    orchestrator.restart()
    late = TutorResponse.model_validate(
        {"conversationId": turn.session_id, "response": _fragment_reply(FULL_FRAGMENT), "stage": "tema"}
    )
    outcome = orchestrator.complete_turn(turn, late)

    assert outcome.status == "discarded"
    assert orchestrator.skeleton == Skeleton()
    assert len(orchestrator.messages) == 1
    assert not orchestrator.is_pending
    assert orchestrator.fail_turn(turn, TutoringServiceError("late")).status == "discarded"
    assert orchestrator.last_error is None


def test_blank_and_concurrent_submissions_are_rejected(store: InMemorySessionStore) -> None:
    tutor = FakeTutor()
    orchestrator = _orchestrator(tutor, store)
    assert orchestrator.send_user_message("   ").status == "rejected"

    orchestrator.begin_turn("First message")
    assert orchestrator.send_user_message("Second message").status == "rejected"
    assert tutor.requests == []
    assert [message.text for message in orchestrator.messages[1:]] == ["First message"]


def test_service_failure_surfaces_notice_and_allows_retry(store: InMemorySessionStore) -> None:
    tutor = FakeTutor()
    tutor.error = TutoringServiceError("slow down", status_code=429)
    orchestrator = _orchestrator(tutor, store)

    failed = orchestrator.send_user_message("Hello there")
    assert failed.status == "failed"
    assert failed.error is not None and failed.error.status_code == 429
    assert "limit" in failed.error.description.lower()
    assert orchestrator.last_error == failed.error
    assert not orchestrator.is_pending
    assert orchestrator.skeleton == Skeleton()
    assert orchestrator.messages[-1].role == "user"
    assert store.snapshots == {}

    tutor.error = None
    retried = orchestrator.send_user_message("Hello there")
    assert retried.status == "completed"
    assert orchestrator.last_error is None


def test_unexpected_client_errors_become_generic_notices(store: InMemorySessionStore) -> None:
    tutor = FakeTutor()
    tutor.error = KeyError("boom")
    outcome = _orchestrator(tutor, store).send_user_message("Hello there")
    assert outcome.status == "failed"
    assert outcome.error.status_code is None


def test_persistence_failures_do_not_break_turns() -> None:
    orchestrator = _orchestrator(FakeTutor(), BrokenStore(fail_load=True))
    assert orchestrator.session_id.startswith("session_")
    assert orchestrator.send_user_message("Hello there").status == "completed"
    orchestrator.restart()
    assert orchestrator.current_stage is Stage.TOPIC


def test_saved_session_id_is_reused_and_snapshots_are_written() -> None:
    store = InMemorySessionStore(conversation_id="session_saved")
    tutor = FakeTutor()
    orchestrator = _orchestrator(tutor, store)
    assert orchestrator.session_id == "session_saved"

    orchestrator.send_user_message("My topic is the role of digital education in Brazil.")
    assert tutor.requests[0].session_id == "session_saved"
    snapshot = store.snapshots["session_saved"]
    assert snapshot.stage == "thesis"
    assert snapshot.skeleton["topic"] == "the role of digital education in Brazil"
    assert [message["role"] for message in snapshot.messages] == ["assistant", "user", "assistant"]


def test_service_conversation_id_is_adopted(store: InMemorySessionStore) -> None:
    orchestrator = _orchestrator(FakeTutor(conversation_id="conv-42"), store)
    orchestrator.send_user_message("Hello there")
    assert orchestrator.session_id == "conv-42"
    assert store.load_conversation_id() == "conv-42"


def test_turn_events_are_logged(tmp_path: Path, store: InMemorySessionStore) -> None:
    turn_logger = TurnLogger(tmp_path / "turns.jsonl")
    orchestrator = _orchestrator(FakeTutor(), store, turn_logger=turn_logger)
    orchestrator.send_user_message("My topic is the role of digital education in Brazil.")

    kinds = [event.kind for event in turn_logger.read()]
    assert kinds == ["user_message", "extraction", "stage_advanced"]


def test_from_config_wires_sqlite_store_and_turn_log(tmp_path: Path) -> None:
    config = CoachConfig.model_validate(
        {
            "persistence": {"sqlite_path": str(tmp_path / "sessions.sqlite")},
            "provenance": {"path": str(tmp_path / "turns.jsonl")},
            "extraction": {"extra_hedge_markers": ["maybe"]},
        }
    )
    orchestrator = ConversationOrchestrator.from_config(config, client=FakeTutor())
    outcome = orchestrator.send_user_message("Maybe my topic is the role of digital education in Brazil.")

    assert outcome.status == "completed"
    assert orchestrator.skeleton.topic is None
    assert SQLiteSessionStore(tmp_path / "sessions.sqlite").load_conversation_id() == orchestrator.session_id
    assert (tmp_path / "turns.jsonl").exists()
