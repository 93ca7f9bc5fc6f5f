import logging
from typing import Optional, Union

from avatar_bridge.bot.upstream import (
    CloseCallback,
    ErrorCallback,
    MessageCallback,
    UpstreamSocket,
)
from avatar_bridge.config.constants import LOGGER_NAME
from avatar_bridge.exceptions import AvatarUnavailable, UpstreamConnectError
from avatar_bridge.models.avatar_schemas import (
    AgentInterruptMessage,
    AgentSpeakEndMessage,
    AgentSpeakMessage,
    AvatarEvent,
    OutgoingAvatarCommand,
    parse_avatar_event,
)

logger = logging.getLogger(LOGGER_NAME)


class LiveAvatarClient(UpstreamSocket):
    """
    Client for the LiveAvatar lip-sync WebSocket of one avatar session.

    The socket address is created per session by the avatar-session API and
    already carries its credentials, so no headers are sent.
    """

    name = "LiveAvatar"

    async def connect(
        self,
        ws_url: str,
        on_message: MessageCallback,
        on_error: Optional[ErrorCallback] = None,
        on_close: Optional[CloseCallback] = None,
    ) -> None:
        """
        Connect to the avatar renderer.

        Raises:
            AvatarUnavailable: If the socket cannot be opened
        """
        if not ws_url:
            raise AvatarUnavailable("No LiveAvatar WebSocket URL")
        logger.info("Connecting to LiveAvatar WebSocket")
        try:
            await self._open(ws_url, None, on_message, on_error, on_close)
        except UpstreamConnectError as e:
            raise AvatarUnavailable(str(e)) from e
        logger.info("LiveAvatar WebSocket connected")

    def _decode(self, message: Union[str, bytes]) -> AvatarEvent:
        return parse_avatar_event(message)

    async def _command(self, command: OutgoingAvatarCommand) -> bool:
        return await self.send_best_effort(command.model_dump())

    async def speak(self, audio: str, event_id: str) -> bool:
        """Send one chunk of PCM16 24 kHz audio for lip-sync."""
        return await self._command(AgentSpeakMessage(event_id=event_id, audio=audio))

    async def signal_speak_end(self, event_id: str) -> bool:
        """Tell the renderer the current utterance is complete."""
        return await self._command(AgentSpeakEndMessage(event_id=event_id))

    async def signal_interrupt(self, event_id: str) -> bool:
        """Stop any in-flight playback immediately (the user started talking)."""
        logger.info(f"Interrupting avatar playback ({event_id})")
        return await self._command(AgentInterruptMessage(event_id=event_id))
