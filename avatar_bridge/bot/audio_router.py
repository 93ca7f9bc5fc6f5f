"""
Router between the browser, the OpenAI Realtime API and the LiveAvatar renderer.

This module provides the per-conversation state machine of the bridge:
- Owns one RealtimeSpeechClient and, when an avatar socket address is known, one
  LiveAvatarClient
- Configures the realtime session itself and buffers browser frames until the
  configuration is acknowledged
- Sends synthesized audio to the avatar for lip-sync while also forwarding it to
  the browser, and interrupts the avatar when the user talks over it
- Reports completed transcripts to a caller-supplied callback
"""

import asyncio
import base64
import json
import logging
from collections import deque
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from avatar_bridge.bot.avatar_client import LiveAvatarClient
from avatar_bridge.bot.realtime_api import RealtimeSpeechClient
from avatar_bridge.config.constants import EVENT_SESSION_UPDATE, LOGGER_NAME, MAX_PENDING_CLIENT_FRAMES
from avatar_bridge.config.settings import Settings
from avatar_bridge.exceptions import (
    AvatarUnavailable,
    ClientProtocolError,
    UpstreamConnectError,
)
from avatar_bridge.models.avatar_schemas import (
    AvatarEvent,
    AvatarStatusEvent,
)
from avatar_bridge.models.openai_schemas import (
    AudioDeltaEvent,
    AudioDoneEvent,
    ErrorEvent,
    InputAudioAppendMessage,
    InputAudioTranscription,
    RealtimeServerEvent,
    SessionConfig,
    SessionCreatedEvent,
    SessionUpdatedEvent,
    SessionUpdateMessage,
    SpeechStartedEvent,
    TranscriptEvent,
    TurnDetection,
)

logger = logging.getLogger(LOGGER_NAME)

ClientSender = Callable[[Dict[str, Any]], Awaitable[None]]
TranscriptCallback = Callable[[str, str], None]
ClosedCallback = Callable[[], Awaitable[None]]


class RouterState(str, Enum):
    """Lifecycle of an AudioRouter. CLOSED is terminal."""
    INITIALIZING = "initializing"
    AWAITING_CONFIG = "awaiting_config"
    ACTIVE = "active"
    CLOSED = "closed"


class AudioRouter:
    """
    Routes messages for one conversation between the browser, OpenAI and LiveAvatar.

    The browser speaks the Realtime API protocol almost directly: its frames are
    forwarded verbatim once the session is configured, except session.update,
    which is always discarded because the router owns the session configuration.
    """

    def __init__(
        self,
        session_id: str,
        system_prompt: str,
        send_to_client: ClientSender,
        avatar_ws_url: Optional[str] = None,
        settings: Optional[Settings] = None,
        on_transcript: Optional[TranscriptCallback] = None,
        on_closed: Optional[ClosedCallback] = None,
        speech_client: Optional[RealtimeSpeechClient] = None,
        avatar_client: Optional[LiveAvatarClient] = None,
    ):
        self.session_id = session_id
        self.system_prompt = system_prompt
        self.avatar_ws_url = avatar_ws_url
        self.settings = settings or Settings()
        self._send_to_client_cb = send_to_client
        self._on_transcript = on_transcript
        self._on_closed = on_closed

        self._speech = speech_client or RealtimeSpeechClient(
            self.settings.openai_api_key, self.settings.realtime_model
        )
        self._avatar: Optional[LiveAvatarClient] = None
        if avatar_ws_url:
            self._avatar = avatar_client or LiveAvatarClient()

        self.state = RouterState.INITIALIZING
        self.pending_messages: Deque[str] = deque()
        self._event_sequence = 0
        self._client_lock = asyncio.Lock()
        self.upstream_lost = False

    @property
    def closed(self) -> bool:
        return self.state is RouterState.CLOSED

    @property
    def lip_sync_enabled(self) -> bool:
        return self._avatar is not None and self._avatar.is_open

    def next_event_id(self) -> str:
        self._event_sequence += 1
        return f"evt_{self._event_sequence}"

    def build_session_update(self) -> SessionUpdateMessage:
        """Build the one session.update this conversation sends."""
        s = self.settings
        return SessionUpdateMessage(
            session=SessionConfig(
                instructions=self.system_prompt,
                voice=s.voice,
                input_audio_transcription=InputAudioTranscription(
                    model=s.transcribe_model, language=s.transcribe_language
                ),
                turn_detection=TurnDetection(
                    threshold=s.vad_threshold,
                    prefix_padding_ms=s.vad_prefix_padding_ms,
                    silence_duration_ms=s.vad_silence_duration_ms,
                    create_response=s.vad_create_response,
                ),
            )
        )

    async def connect(self) -> None:
        """
        Open the upstream connections and configure the realtime session.

        The avatar connection is optional: when it is missing or fails the
        conversation continues with audio going to the browser only.

        Raises:
            UpstreamConnectError: If the OpenAI connection or configuration fails;
                the router is closed before the error propagates
        """
        if self.state is not RouterState.INITIALIZING:
            raise RuntimeError(f"Router for {self.session_id} cannot connect from state {self.state.value}")

        try:
            await self._speech.connect(
                on_message=self.handle_speech_event,
                on_error=self._on_speech_error,
                on_close=self._on_speech_closed,
            )
            self.state = RouterState.AWAITING_CONFIG
            await self._speech.send_config(self.build_session_update())
        except UpstreamConnectError:
            logger.error(f"OpenAI connection failed for session: {self.session_id}")
            await self.disconnect(notify=False)
            raise

        if self._avatar is None:
            logger.info(f"No LiveAvatar WebSocket URL - audio lip-sync disabled for session: {self.session_id}")
            return

        try:
            await self._avatar.connect(
                self.avatar_ws_url,
                on_message=self.handle_avatar_event,
                on_error=self._on_avatar_error,
                on_close=self._on_avatar_closed,
            )
        except AvatarUnavailable as e:
            logger.warning(f"LiveAvatar unavailable, lip-sync disabled for session {self.session_id}: {e}")
            self._avatar = None

    # Browser -> router

    async def handle_client_message(self, data: str) -> None:
        """
        Handle one text frame from the browser.

        Malformed frames are logged and dropped.
        """
        try:
            message = json.loads(data)
            if not isinstance(message, dict):
                raise ClientProtocolError("frame is not a JSON object")
        except (json.JSONDecodeError, ClientProtocolError) as e:
            logger.warning(f"Dropping malformed client frame for session {self.session_id}: {e}")
            return

        if message.get("type") == EVENT_SESSION_UPDATE:
            logger.debug(f"Discarding client session.update for session: {self.session_id}")
            return

        await self._route_client_frame(data)

    async def handle_client_audio(self, chunk: bytes) -> None:
        """Handle a binary frame of raw PCM16 audio from the browser."""
        if not chunk:
            return
        audio = base64.b64encode(chunk).decode("utf-8")
        if self.state is RouterState.ACTIVE:
            await self._speech.send_audio_chunk(audio)
        else:
            await self._route_client_frame(InputAudioAppendMessage(audio=audio).model_dump_json())

    async def _route_client_frame(self, data: str) -> None:
        if self.state is RouterState.ACTIVE:
            await self._speech.send_raw(data)
        elif self.state is RouterState.CLOSED:
            logger.debug(f"Dropping client frame for closed session: {self.session_id}")
        elif len(self.pending_messages) >= MAX_PENDING_CLIENT_FRAMES:
            logger.error(
                f"Realtime session not configured after {len(self.pending_messages)} buffered client frames, "
                f"closing session: {self.session_id}"
            )
            self.upstream_lost = True
            await self.disconnect()
        else:
            self.pending_messages.append(data)

    async def _flush_pending(self) -> None:
        # Frames arriving while the flush awaits are appended and drained here too.
        while self.pending_messages:
            data = self.pending_messages.popleft()
            try:
                if json.loads(data).get("type") == EVENT_SESSION_UPDATE:
                    continue
            except (json.JSONDecodeError, AttributeError):
                continue
            await self._speech.send_raw(data)

    # OpenAI -> router

    async def handle_speech_event(self, event: RealtimeServerEvent) -> None:
        """Route one event received from the OpenAI Realtime API."""
        if self.closed:
            return

        if isinstance(event, SessionCreatedEvent):
            logger.info(f"Realtime session created for session: {self.session_id}")
            return

        if isinstance(event, SessionUpdatedEvent):
            logger.info(f"Realtime session configured for session: {self.session_id}")
            if self.state is RouterState.AWAITING_CONFIG:
                flushed = len(self.pending_messages)
                await self._flush_pending()
                if self.closed:
                    return
                self.state = RouterState.ACTIVE
                logger.debug(f"Flushed {flushed} buffered client frames for session: {self.session_id}")

        elif isinstance(event, AudioDeltaEvent):
            if event.delta and self.lip_sync_enabled:
                await self._avatar.speak(event.delta, self.next_event_id())

        elif isinstance(event, AudioDoneEvent):
            if self.lip_sync_enabled:
                await self._avatar.signal_speak_end(self.next_event_id())

        elif isinstance(event, SpeechStartedEvent):
            if self.lip_sync_enabled:
                await self._avatar.signal_interrupt(self.next_event_id())

        elif isinstance(event, TranscriptEvent):
            if event.transcript:
                self._emit_transcript(event.role.value, event.transcript)

        elif isinstance(event, ErrorEvent):
            logger.error(f"OpenAI error for session {self.session_id}: {event.error}")

        await self._send_to_client(event.payload)

    def _emit_transcript(self, role: str, text: str) -> None:
        if not self._on_transcript:
            return
        try:
            self._on_transcript(role, text)
        except Exception as e:
            logger.error(f"Transcript callback failed for session {self.session_id}: {e}", exc_info=True)

    async def _on_speech_error(self, error: Exception) -> None:
        logger.warning(f"OpenAI WebSocket error for session {self.session_id}: {error}")

    async def _on_speech_closed(self) -> None:
        if self.closed:
            return
        logger.warning(f"OpenAI connection lost for session: {self.session_id}")
        self.upstream_lost = True
        await self.disconnect()

    # LiveAvatar -> router

    async def handle_avatar_event(self, event: AvatarEvent) -> None:
        """Forward avatar speaking status to the browser; drop everything else."""
        logger.debug(f"LiveAvatar event for session {self.session_id}: {event.type}")
        if isinstance(event, AvatarStatusEvent):
            await self._send_to_client(event.payload)

    async def _on_avatar_error(self, error: Exception) -> None:
        logger.warning(f"LiveAvatar WebSocket error for session {self.session_id}: {error}")

    async def _on_avatar_closed(self) -> None:
        if self.closed:
            return
        logger.warning(f"LiveAvatar connection lost, lip-sync disabled for session: {self.session_id}")
        self._avatar = None

    # Router -> browser

    async def _send_to_client(self, message: Dict[str, Any]) -> None:
        if self.closed:
            return
        async with self._client_lock:
            try:
                await self._send_to_client_cb(message)
            except Exception as e:
                logger.warning(f"Failed to send {message.get('type')} to client for session {self.session_id}: {e}")

    # Teardown

    async def disconnect(self, notify: bool = True) -> None:
        """
        Close both upstream connections. Idempotent; close errors are logged.

        Args:
            notify: Whether to await the on_closed callback (once)
        """
        if self.closed:
            return
        self.state = RouterState.CLOSED
        self.pending_messages.clear()
        logger.info(f"Closing router for session: {self.session_id}")

        for client in (self._speech, self._avatar):
            if client is None:
                continue
            try:
                await client.close()
            except Exception as e:
                logger.warning(f"Error closing {getattr(client, 'name', client)} for session {self.session_id}: {e}")

        if notify and self._on_closed:
            try:
                await self._on_closed()
            except Exception as e:
                logger.warning(f"Error in close callback for session {self.session_id}: {e}")
