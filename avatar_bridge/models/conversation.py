"""
Conversation records for lesson sessions.

This module provides the SessionContextStore which holds, per session id, what the
realtime gateway needs to build an AudioRouter (avatar socket address and system
prompt) together with the transcript collected during the conversation. It stands in
for the external session-lifecycle service and its database.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from avatar_bridge.config.constants import DEFAULT_MAX_STORED_SESSIONS, LOGGER_NAME
from avatar_bridge.config.prompts import build_realtime_voice_prompt
from avatar_bridge.models.openai_schemas import MessageRole

logger = logging.getLogger(LOGGER_NAME)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TranscriptEntry(BaseModel):
    """One completed utterance."""

    role: MessageRole
    text: str
    created_at: datetime = Field(default_factory=_utcnow)


class CreateSessionRequest(BaseModel):
    """Body of a request registering a lesson session."""

    session_id: Optional[str] = Field(None, description="Caller-chosen session id")
    avatar_ws_url: Optional[str] = Field(None, description="LiveAvatar lip-sync socket address")
    avatar_session_token: Optional[str] = Field(None, description="LiveAvatar session token")
    user_name: Optional[str] = Field(None, max_length=200)
    lesson_title: Optional[str] = Field(None, max_length=200)
    system_prompt: Optional[str] = Field(None, description="Overrides the generated prompt")

    @field_validator("session_id")
    def validate_session_id(cls, v):
        """Validate that a supplied session id is not blank."""
        if v is not None and not v.strip():
            raise ValueError("Session id cannot be empty")
        return v

    @field_validator("avatar_ws_url")
    def validate_avatar_ws_url(cls, v):
        """Validate that the avatar address is a WebSocket URL."""
        if v and not v.startswith(("ws://", "wss://")):
            raise ValueError("Avatar socket address must be a ws:// or wss:// URL")
        return v or None


class SessionContext(BaseModel):
    """Everything known about one lesson session."""

    session_id: str
    system_prompt: str
    avatar_ws_url: Optional[str] = None
    avatar_session_token: Optional[str] = None
    user_name: Optional[str] = None
    lesson_title: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    lesson_ended: bool = False
    transcript: List[TranscriptEntry] = Field(default_factory=list)


class SessionContextStore:
    """
    In-memory registry of lesson session records.

    Records outlive the realtime connection so transcripts stay readable after
    the browser disconnects. Once more than ``max_sessions`` records are held,
    creating a session evicts the oldest records whose conversation is not active.

    Args:
        max_sessions: Number of records kept before the oldest are evicted
        is_active: Returns True for session ids with a live conversation; those
            records are never evicted
    """

    def __init__(
        self,
        max_sessions: int = DEFAULT_MAX_STORED_SESSIONS,
        is_active: Optional[Callable[[str], bool]] = None,
    ):
        """Initialize an empty dictionary of session records."""
        self.sessions: Dict[str, SessionContext] = {}
        self.max_sessions = max_sessions
        self._is_active = is_active or (lambda session_id: False)

    def create(self, request: CreateSessionRequest) -> SessionContext:
        """
        Create (or replace) the record for a session.

        Args:
            request: Session parameters; a session id is generated when absent

        Returns:
            The stored SessionContext
        """
        session_id = request.session_id or str(uuid.uuid4())
        context = SessionContext(
            session_id=session_id,
            system_prompt=request.system_prompt
            or build_realtime_voice_prompt(request.user_name, request.lesson_title),
            avatar_ws_url=request.avatar_ws_url,
            avatar_session_token=request.avatar_session_token,
            user_name=request.user_name,
            lesson_title=request.lesson_title,
        )
        # Re-created sessions count as the newest record
        self.sessions.pop(session_id, None)
        self.sessions[session_id] = context
        self._evict(keep=session_id)
        return context

    def _evict(self, keep: str) -> None:
        excess = len(self.sessions) - self.max_sessions
        if excess <= 0:
            return
        # Dicts keep insertion order, so the oldest records come first
        for session_id in list(self.sessions):
            if excess <= 0:
                break
            if session_id == keep or self._is_active(session_id):
                continue
            self.remove(session_id)
            excess -= 1
            logger.debug(f"Evicted stored session record: {session_id}")
        if excess > 0:
            logger.warning(f"Session store over capacity with {len(self.sessions)} records still in use")

    def get(self, session_id: str) -> Optional[SessionContext]:
        """Get a session record by its id, or None if it does not exist."""
        return self.sessions.get(session_id)

    def remove(self, session_id: str) -> None:
        """Remove a session record if present."""
        self.sessions.pop(session_id, None)

    def append_transcript(self, session_id: str, role: str, text: str) -> Optional[TranscriptEntry]:
        """
        Append an utterance to a session's transcript.

        Returns:
            The stored entry, or None if the session is unknown
        """
        context = self.sessions.get(session_id)
        if context is None:
            return None
        entry = TranscriptEntry(role=MessageRole(role), text=text)
        context.transcript.append(entry)
        return entry

    def mark_lesson_ended(self, session_id: str) -> None:
        context = self.sessions.get(session_id)
        if context is not None:
            context.lesson_ended = True
