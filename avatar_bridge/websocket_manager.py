"""
WebSocket connection manager for realtime lesson conversations.

This module implements the server side of the browser's realtime socket, providing the
infrastructure to:
- Accept the browser connection and look up the session's conversation record
- Build an AudioRouter for the session and register it in the SessionRegistry
- Pump browser text and binary frames into the router until the browser disconnects
- Close the browser socket with a meaningful code when the session cannot start or its
  upstream connection is lost

The WebSocketManager class is the central component that ties the browser socket, the
router and the transcript sink of one conversation together.
"""

import json
import logging
from typing import Any, Dict

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from avatar_bridge.bot.audio_router import AudioRouter
from avatar_bridge.config.constants import (
    CLOSE_CODE_INTERNAL_ERROR,
    CLOSE_CODE_NORMAL,
    CLOSE_CODE_POLICY_VIOLATION,
    CLOSE_CODE_SESSION_CONFLICT,
    LOGGER_NAME,
)
from avatar_bridge.config.settings import Settings
from avatar_bridge.exceptions import SessionConflict, UpstreamConnectError
from avatar_bridge.handlers.transcript_handlers import TranscriptRecorder
from avatar_bridge.models.conversation import SessionContextStore
from avatar_bridge.session_registry import SessionRegistry

logger = logging.getLogger(LOGGER_NAME)


async def close_websocket(websocket: WebSocket, code: int, reason: str = "") -> None:
    """Close the browser socket unless it is already closed."""
    if (
        websocket.application_state != WebSocketState.CONNECTED
        or websocket.client_state != WebSocketState.CONNECTED
    ):
        return
    try:
        await websocket.close(code=code, reason=reason)
    except RuntimeError as e:
        # Raised by Starlette when the close races with the client's own close
        logger.debug(f"Browser socket already closed: {e}")


class WebSocketManager:
    """Manages browser WebSocket connections for realtime lesson conversations.

    One call to handle_websocket serves one conversation from accept to teardown:
    - Conversation record lookup (unknown session -> close 1008)
    - Router creation, upstream connection and registration (conflict -> close 4409,
      OpenAI unreachable -> close 1011)
    - Frame pumping (text frames are Realtime API events, binary frames are raw PCM16)
    - Cleanup: the router is always disposed when the browser goes away
    """

    def __init__(
        self,
        registry: SessionRegistry,
        context_store: SessionContextStore,
        settings: Settings,
    ):
        self.registry = registry
        self.context_store = context_store
        self.settings = settings

    def create_router(self, websocket: WebSocket, session_id: str, recorder: TranscriptRecorder) -> AudioRouter:
        """Build the router of one conversation, wired to the browser socket."""
        context = self.context_store.get(session_id)

        async def send_to_client(message: Dict[str, Any]) -> None:
            await websocket.send_text(json.dumps(message, ensure_ascii=False))

        async def on_closed() -> None:
            if router.upstream_lost:
                await close_websocket(websocket, CLOSE_CODE_INTERNAL_ERROR, "upstream connection lost")
            else:
                await close_websocket(websocket, CLOSE_CODE_NORMAL, "session ended")

        router = AudioRouter(
            session_id=session_id,
            system_prompt=context.system_prompt,
            send_to_client=send_to_client,
            avatar_ws_url=context.avatar_ws_url,
            settings=self.settings,
            on_transcript=recorder,
            on_closed=on_closed,
        )
        return router

    def create_recorder(self, session_id: str) -> TranscriptRecorder:
        on_lesson_end = None
        if self.settings.lesson_auto_end:
            async def on_lesson_end() -> None:
                logger.info(f"Ending lesson for session: {session_id}")
                await self.registry.dispose(session_id)

        return TranscriptRecorder(
            session_id,
            self.context_store,
            on_lesson_end=on_lesson_end,
            lesson_end_delay=self.settings.lesson_end_delay_seconds,
        )

    async def handle_websocket(self, websocket: WebSocket, session_id: str):
        """Handle a browser WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object
            session_id (str): Session id taken from the socket path

        This method:
        1. Accepts the WebSocket connection
        2. Looks up the conversation record and builds the router
        3. Opens the upstream connections and registers the router
        4. Forwards browser frames to the router until the browser disconnects
        5. Disposes the router and closes the socket on the way out
        """
        await websocket.accept()
        logger.info(f"Browser WebSocket connected for session: {session_id}")

        if self.context_store.get(session_id) is None:
            logger.warning(f"No conversation record for session: {session_id}")
            await close_websocket(websocket, CLOSE_CODE_POLICY_VIOLATION, "unknown session")
            return

        if session_id in self.registry:
            logger.warning(f"Session already active, rejecting connection: {session_id}")
            await close_websocket(websocket, CLOSE_CODE_SESSION_CONFLICT, "session already active")
            return

        recorder = self.create_recorder(session_id)
        router = self.create_router(websocket, session_id, recorder)

        try:
            await router.connect()
        except UpstreamConnectError as e:
            logger.error(f"Could not start session {session_id}: {e}")
            await close_websocket(websocket, CLOSE_CODE_INTERNAL_ERROR, "upstream connection failed")
            return

        try:
            await self.registry.register(session_id, router)
        except SessionConflict:
            await router.disconnect(notify=False)
            await close_websocket(websocket, CLOSE_CODE_SESSION_CONFLICT, "session already active")
            return

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info(f"Browser disconnected from session: {session_id}")
                    break

                if message.get("text") is not None:
                    await router.handle_client_message(message["text"])
                elif message.get("bytes") is not None:
                    await router.handle_client_audio(message["bytes"])

        except Exception as e:
            logger.error(f"Error in WebSocket connection for session {session_id}: {e}", exc_info=True)
        finally:
            recorder.cancel()
            # A lesson end may already have disposed this router
            if self.registry.lookup(session_id) is router:
                await self.registry.dispose(session_id)
            else:
                await router.disconnect(notify=False)
            await close_websocket(websocket, CLOSE_CODE_NORMAL)
            logger.info(f"WebSocket connection closed for session: {session_id}")
