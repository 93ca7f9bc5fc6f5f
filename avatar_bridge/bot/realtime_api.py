import logging
from typing import Optional, Union

from avatar_bridge.bot.upstream import (
    CloseCallback,
    ErrorCallback,
    Frame,
    MessageCallback,
    UpstreamSocket,
)
from avatar_bridge.config.constants import (
    DEFAULT_REALTIME_MODEL,
    LOGGER_NAME,
    REALTIME_API_URL,
    REALTIME_PROTOCOL_HEADER,
    REALTIME_PROTOCOL_VERSION,
)
from avatar_bridge.exceptions import UpstreamConnectError
from avatar_bridge.models.openai_schemas import (
    InputAudioAppendMessage,
    RealtimeServerEvent,
    SessionUpdateMessage,
    parse_server_event,
)

logger = logging.getLogger(LOGGER_NAME)


class RealtimeSpeechClient(UpstreamSocket):
    """
    Client to connect to OpenAI Realtime API over WebSocket for streaming speech-to-speech.

    One instance serves one conversation. The connection is never retried
    automatically: silently reconnecting a realtime voice session would lose
    the turn state, so a lost connection ends the conversation instead.
    """

    name = "OpenAI Realtime"

    def __init__(self, api_key: Optional[str], model: str = DEFAULT_REALTIME_MODEL):
        super().__init__()
        self.api_key = api_key
        self.model = model
        self._config_sent = False
        logger.info(f"RealtimeSpeechClient initialized with model: {model}")

    @property
    def url(self) -> str:
        return f"{REALTIME_API_URL}?model={self.model}"

    async def connect(
        self,
        on_message: MessageCallback,
        on_error: Optional[ErrorCallback] = None,
        on_close: Optional[CloseCallback] = None,
    ) -> None:
        """
        Connect to the OpenAI Realtime WebSocket endpoint.

        Args:
            on_message: Awaited with each decoded RealtimeServerEvent, in arrival order
            on_error: Awaited with malformed-frame and abnormal-closure errors
            on_close: Awaited once when the server side closes the connection

        Raises:
            UpstreamConnectError: If the API key is missing or the handshake fails
        """
        if not self.api_key:
            logger.error("OPENAI_API_KEY environment variable not set")
            raise UpstreamConnectError("OPENAI_API_KEY environment variable not set")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            REALTIME_PROTOCOL_HEADER: REALTIME_PROTOCOL_VERSION,
        }
        logger.info(f"Connecting to OpenAI Realtime API with model: {self.model}")
        logger.debug(
            f"Using headers: Authorization: Bearer [API_KEY_HIDDEN], "
            f"{REALTIME_PROTOCOL_HEADER}: {REALTIME_PROTOCOL_VERSION}"
        )
        await self._open(self.url, headers, on_message, on_error, on_close)
        logger.info("Successfully connected to OpenAI Realtime API")

    def _decode(self, message: Union[str, bytes]) -> RealtimeServerEvent:
        return parse_server_event(message)

    async def send_config(self, config: SessionUpdateMessage) -> None:
        """
        Send the session.update configuration message.

        Must be sent exactly once, right after connecting and before any audio.

        Raises:
            RuntimeError: If the configuration was already sent
            UpstreamConnectError: If the message could not be delivered
        """
        if self._config_sent:
            raise RuntimeError("Session configuration already sent")
        try:
            await self._send(config.model_dump(exclude_none=True))
        except Exception as e:
            raise UpstreamConnectError(f"Failed to send session configuration: {e}") from e
        self._config_sent = True
        logger.info(
            f"Sent session.update (voice: {config.session.voice}, "
            f"transcription: {config.session.input_audio_transcription.model})"
        )

    async def send_audio_chunk(self, audio: str) -> bool:
        """
        Append one base64 PCM16 chunk to the input audio buffer.

        Args:
            audio: Base64-encoded audio

        Returns:
            bool: True if the chunk was sent; False if it was dropped
        """
        message = InputAudioAppendMessage(audio=audio)
        return await self.send_best_effort(message.model_dump())

    async def send_raw(self, frame: Frame) -> bool:
        """Forward a client frame verbatim, best-effort."""
        return await self.send_best_effort(frame)
