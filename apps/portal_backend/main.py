from __future__ import annotations

import os
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from apps.orchestrator.guidance import guidance_table
from apps.persistence.session_store import SessionSnapshot, SQLiteSessionStore

REPO_ROOT = Path(__file__).resolve().parents[2]
STORE_ENV_VAR = "ESSAYCOACH_SESSION_STORE"


class PortalSettings(BaseModel):
    """Runtime configuration for the portal backend."""

    store_path: Path = Field(default=REPO_ROOT / "outputs" / "sessions.sqlite")

    def open_store(self) -> SQLiteSessionStore | None:
        if not self.store_path.exists():
            return None
        return SQLiteSessionStore(self.store_path)


@lru_cache
def get_settings() -> PortalSettings:
    store_path = os.getenv(STORE_ENV_VAR)
    return PortalSettings(
        store_path=Path(store_path).expanduser().resolve() if store_path else REPO_ROOT / "outputs" / "sessions.sqlite",
    )


class SessionListItem(BaseModel):
    conversation_id: str
    stage: str
    completion_percent: int
    message_count: int
    saved_at: datetime


class SessionDetail(BaseModel):
    conversation_id: str
    stage: str
    completion_percent: int
    saved_at: datetime
    skeleton: Dict[str, str | None] = Field(default_factory=dict)
    messages: List[Dict[str, Any]] = Field(default_factory=list)


class StageGuidanceItem(BaseModel):
    stage: str
    label: str
    guidance: str
    focus_prompt: str


class HealthResponse(BaseModel):
    status: str
    store_exists: bool
    latest_session_id: str | None = None


app = FastAPI(title="Essay Coach Portal API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=HealthResponse)
def health(settings: PortalSettings = Depends(get_settings)) -> HealthResponse:
    store = settings.open_store()
    latest = store.load_conversation_id() if store is not None else None
    return HealthResponse(status="ok", store_exists=store is not None, latest_session_id=latest)


@app.get("/sessions", response_model=List[SessionListItem])
def list_sessions(
    limit: int = Query(50, ge=1, le=500, description="Maximum sessions to return"),
    offset: int = Query(0, ge=0, description="Number of sessions to skip before listing"),
    settings: PortalSettings = Depends(get_settings),
) -> List[SessionListItem]:
    store = settings.open_store()
    if store is None:
        return []
    return [_to_list_item(snapshot) for snapshot in store.list_snapshots(limit=limit, offset=offset)]


@app.get("/sessions/{conversation_id}", response_model=SessionDetail)
def get_session(conversation_id: str, settings: PortalSettings = Depends(get_settings)) -> SessionDetail:
    store = settings.open_store()
    snapshot = store.get_snapshot(conversation_id) if store is not None else None
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Session {conversation_id} not found")
    return SessionDetail(
        conversation_id=snapshot.conversation_id,
        stage=snapshot.stage,
        completion_percent=snapshot.completion_percent,
        saved_at=snapshot.saved_at,
        skeleton=snapshot.skeleton,
        messages=snapshot.messages,
    )


@app.get("/stages", response_model=List[StageGuidanceItem])
def list_stages() -> List[StageGuidanceItem]:
    return [StageGuidanceItem(**entry.as_dict()) for entry in guidance_table()]


def _to_list_item(snapshot: SessionSnapshot) -> SessionListItem:
    return SessionListItem(
        conversation_id=snapshot.conversation_id,
        stage=snapshot.stage,
        completion_percent=snapshot.completion_percent,
        message_count=len(snapshot.messages),
        saved_at=snapshot.saved_at,
    )
