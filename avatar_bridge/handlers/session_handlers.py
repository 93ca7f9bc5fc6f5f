"""
Handles lesson session lifecycle requests from the browser.

This module implements the REST side of a lesson: registering a session before the
realtime socket is opened, reading back its transcript, and stopping an active
conversation on request.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel

from avatar_bridge.config.constants import LOGGER_NAME
from avatar_bridge.exceptions import SessionNotFound
from avatar_bridge.models.conversation import (
    CreateSessionRequest,
    SessionContextStore,
    TranscriptEntry,
)
from avatar_bridge.session_registry import SessionRegistry

logger = logging.getLogger(LOGGER_NAME)

REALTIME_PATH_TEMPLATE = "/api/realtime/{session_id}"


class SessionCreatedResponse(BaseModel):
    """Response to a session registration."""

    session_id: str
    realtime_path: str
    lip_sync: bool


class TranscriptResponse(BaseModel):
    """Transcript of a session."""

    session_id: str
    lesson_ended: bool
    active: bool
    transcript: List[TranscriptEntry]


class SessionStoppedResponse(BaseModel):
    """Response to an explicit stop."""

    session_id: str
    stopped: bool


async def handle_create_session(
    request: CreateSessionRequest,
    store: SessionContextStore,
) -> SessionCreatedResponse:
    """
    Register a lesson session so the browser can open its realtime socket.

    Args:
        request: Session parameters (avatar address, learner name, lesson title)
        store: Session record store

    Returns:
        The session id and the realtime socket path to connect to
    """
    context = store.create(request)
    logger.info(
        f"Session created: {context.session_id} "
        f"(lip-sync: {'on' if context.avatar_ws_url else 'off'})"
    )
    return SessionCreatedResponse(
        session_id=context.session_id,
        realtime_path=REALTIME_PATH_TEMPLATE.format(session_id=context.session_id),
        lip_sync=bool(context.avatar_ws_url),
    )


async def handle_get_transcript(
    session_id: str,
    store: SessionContextStore,
    registry: Optional[SessionRegistry] = None,
) -> TranscriptResponse:
    """
    Return the transcript collected for a session.

    Raises:
        SessionNotFound: If no record exists for the session
    """
    context = store.get(session_id)
    if context is None:
        raise SessionNotFound(session_id)
    return TranscriptResponse(
        session_id=session_id,
        lesson_ended=context.lesson_ended,
        active=registry is not None and session_id in registry,
        transcript=list(context.transcript),
    )


async def handle_stop_session(session_id: str, registry: SessionRegistry) -> SessionStoppedResponse:
    """
    Stop the active conversation of a session.

    Closes the upstream connections and the browser socket.

    Raises:
        SessionNotFound: If the session has no active conversation
    """
    await registry.dispose(session_id, missing_ok=False)
    logger.info(f"Session stopped on request: {session_id}")
    return SessionStoppedResponse(session_id=session_id, stopped=True)
