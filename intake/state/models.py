"""
Intake session state. One record per conversation, owned by the session store;
the engine loads it, mutates a copy for one turn and writes it back.
"""

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from intake import settings
from intake.schemas.contract import ClientContext


class IntakeStage(str, Enum):
    COLLECTING = "collecting"
    COMPLETE = "complete"
    SUBMITTED = "submitted"
    RESET = "reset"


class TranscriptTurn(BaseModel):
    role: str  # "user" | "assistant"
    text: str
    at: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    return f"intake_{uuid.uuid4().hex[:12]}"


class IntakeSession(BaseModel):
    session_id: str
    category: str | None = None
    subcategory: str | None = None
    answers: dict[str, Any] = Field(default_factory=dict)
    stage: IntakeStage = IntakeStage.COLLECTING
    transcript: list[TranscriptTurn] = Field(default_factory=list)
    last_question_field: str | None = None
    extraction_misses: dict[str, int] = Field(default_factory=dict)
    client: ClientContext = Field(default_factory=ClientContext)
    lead_id: str | None = None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def add_turn(self, role: str, text: str, at: datetime | None = None) -> None:
        self.transcript.append(TranscriptTurn(role=role, text=text, at=at or utcnow()))

    def history(self, limit: int = 10) -> list[dict[str, str]]:
        """Last ``limit`` turns as ``{"role", "text"}`` dicts for model prompts."""
        return [{"role": t.role, "text": t.text} for t in self.transcript[-limit:]]


def new_session(
    session_id: str | None = None,
    *,
    ttl_seconds: int | None = None,
    now: datetime | None = None,
) -> IntakeSession:
    now = now or utcnow()
    ttl = settings.SESSION_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    return IntakeSession(
        session_id=session_id or new_session_id(),
        created_at=now,
        updated_at=now,
        expires_at=now + timedelta(seconds=ttl),
    )


def reset_session(
    session: IntakeSession,
    *,
    rotate_id: bool = False,
    now: datetime | None = None,
) -> IntakeSession:
    """Fresh state for the same visitor; answers, category and transcript are dropped."""
    fresh = new_session(None if rotate_id else session.session_id, now=now)
    return fresh.model_copy(update={"stage": IntakeStage.RESET, "client": session.client})
