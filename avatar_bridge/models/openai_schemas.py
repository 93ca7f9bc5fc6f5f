"""
Pydantic models for OpenAI Realtime API message structures.

This module provides type-safe models for the messages exchanged with the OpenAI Realtime API.
Incoming frames are decoded into one model per event type; event types this module does not
know about decode to ``UnknownServerEvent`` so they can still be forwarded unchanged. Every
decoded event keeps the original JSON payload for verbatim forwarding to the browser.
"""

import json
import logging
from enum import Enum
from typing import Any, ClassVar, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from avatar_bridge.config.constants import (
    AUDIO_FORMAT_PCM16,
    EVENT_AUDIO_DELTA,
    EVENT_AUDIO_DONE,
    EVENT_AUDIO_TRANSCRIPT_DONE,
    EVENT_ERROR,
    EVENT_INPUT_AUDIO_APPEND,
    EVENT_INPUT_TRANSCRIPTION_COMPLETED,
    EVENT_RESPONSE_DONE,
    EVENT_SESSION_CREATED,
    EVENT_SESSION_UPDATE,
    EVENT_SESSION_UPDATED,
    EVENT_SPEECH_STARTED,
    EVENT_SPEECH_STOPPED,
    LOGGER_NAME,
)
from avatar_bridge.exceptions import UpstreamProtocolError

logger = logging.getLogger(LOGGER_NAME)


class MessageRole(str, Enum):
    """Role of a participant in a conversation."""
    USER = "user"
    ASSISTANT = "assistant"


# Outgoing (router -> OpenAI) messages

class InputAudioTranscription(BaseModel):
    """Transcription settings for the user's audio."""
    model: str
    language: Optional[str] = None


class TurnDetection(BaseModel):
    """Server-side voice activity detection parameters."""
    type: Literal["server_vad"] = "server_vad"
    threshold: float = Field(..., ge=0.0, le=1.0)
    prefix_padding_ms: int = Field(..., ge=0)
    silence_duration_ms: int = Field(..., gt=0)
    create_response: bool = True


class SessionConfig(BaseModel):
    """Body of a session.update message."""
    modalities: List[str] = Field(default_factory=lambda: ["text", "audio"])
    instructions: str
    voice: str
    input_audio_format: str = AUDIO_FORMAT_PCM16
    output_audio_format: str = AUDIO_FORMAT_PCM16
    input_audio_transcription: InputAudioTranscription
    turn_detection: TurnDetection


class SessionUpdateMessage(BaseModel):
    """session.update message configuring the realtime session."""
    type: Literal["session.update"] = EVENT_SESSION_UPDATE
    session: SessionConfig


class InputAudioAppendMessage(BaseModel):
    """input_audio_buffer.append message carrying one base64 PCM16 chunk."""
    type: Literal["input_audio_buffer.append"] = EVENT_INPUT_AUDIO_APPEND
    audio: str


# Incoming (OpenAI -> router) events

class RealtimeServerEvent(BaseModel):
    """Base model for events received from the Realtime API."""
    model_config = ConfigDict(extra="allow")

    type: str
    event_id: Optional[Any] = None

    _payload: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def payload(self) -> Dict[str, Any]:
        """The event exactly as it was received."""
        return self._payload


class SessionCreatedEvent(RealtimeServerEvent):
    type: Literal["session.created"]
    session: Optional[Any] = None


class SessionUpdatedEvent(RealtimeServerEvent):
    type: Literal["session.updated"]
    session: Optional[Any] = None


class SpeechStartedEvent(RealtimeServerEvent):
    """The user started talking (server VAD)."""
    type: Literal["input_audio_buffer.speech_started"]
    audio_start_ms: Optional[Any] = None
    item_id: Optional[Any] = None


class SpeechStoppedEvent(RealtimeServerEvent):
    type: Literal["input_audio_buffer.speech_stopped"]
    audio_end_ms: Optional[Any] = None
    item_id: Optional[Any] = None


class AudioDeltaEvent(RealtimeServerEvent):
    """One chunk of synthesized assistant audio."""
    type: Literal["response.audio.delta"]
    delta: Optional[str] = None
    response_id: Optional[Any] = None
    item_id: Optional[Any] = None


class AudioDoneEvent(RealtimeServerEvent):
    type: Literal["response.audio.done"]
    response_id: Optional[Any] = None
    item_id: Optional[Any] = None


class TranscriptEvent(RealtimeServerEvent):
    """Base for events carrying a completed utterance transcript."""
    role: ClassVar[MessageRole]

    transcript: Optional[str] = None
    item_id: Optional[Any] = None


class InputTranscriptionCompletedEvent(TranscriptEvent):
    """Transcript of what the user said."""
    role: ClassVar[MessageRole] = MessageRole.USER

    type: Literal["conversation.item.input_audio_transcription.completed"]


class AudioTranscriptDoneEvent(TranscriptEvent):
    """Transcript of what the assistant said."""
    role: ClassVar[MessageRole] = MessageRole.ASSISTANT

    type: Literal["response.audio_transcript.done"]


class ResponseDoneEvent(RealtimeServerEvent):
    type: Literal["response.done"]
    response: Optional[Any] = None


class ErrorEvent(RealtimeServerEvent):
    """Error reported by the Realtime API."""
    type: Literal["error"]
    error: Optional[Any] = None


class UnknownServerEvent(RealtimeServerEvent):
    """Any event type not modelled above; forwarded unchanged."""


SERVER_EVENT_MODELS: Dict[str, Type[RealtimeServerEvent]] = {
    EVENT_SESSION_CREATED: SessionCreatedEvent,
    EVENT_SESSION_UPDATED: SessionUpdatedEvent,
    EVENT_SPEECH_STARTED: SpeechStartedEvent,
    EVENT_SPEECH_STOPPED: SpeechStoppedEvent,
    EVENT_AUDIO_DELTA: AudioDeltaEvent,
    EVENT_AUDIO_DONE: AudioDoneEvent,
    EVENT_INPUT_TRANSCRIPTION_COMPLETED: InputTranscriptionCompletedEvent,
    EVENT_AUDIO_TRANSCRIPT_DONE: AudioTranscriptDoneEvent,
    EVENT_RESPONSE_DONE: ResponseDoneEvent,
    EVENT_ERROR: ErrorEvent,
}


def load_json_object(raw: Union[str, bytes], source: str) -> Dict[str, Any]:
    """
    Parse a JSON text frame that must be an object with a string ``type``.

    Raises:
        UpstreamProtocolError: If the frame is not such an object
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise UpstreamProtocolError(source, f"invalid JSON ({e})", raw)
    if not isinstance(data, dict):
        raise UpstreamProtocolError(source, "frame is not a JSON object", raw)
    if not isinstance(data.get("type"), str):
        raise UpstreamProtocolError(source, "frame has no string 'type' field", raw)
    return data


def parse_server_event(raw: Union[str, bytes]) -> RealtimeServerEvent:
    """
    Decode one Realtime API frame into its event model.

    A known event type whose fields do not match its model decodes to UnknownServerEvent,
    so it is still forwarded to the browser but triggers no router side effects.

    Args:
        raw: The text frame received from the socket

    Returns:
        The typed event, or UnknownServerEvent for unrecognised or mistyped events

    Raises:
        UpstreamProtocolError: If the frame is not a JSON object with a string type
    """
    data = load_json_object(raw, "speech model")
    model = SERVER_EVENT_MODELS.get(data["type"], UnknownServerEvent)
    try:
        event = model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Realtime event {data['type']} does not match its model, forwarding as-is: {e}")
        event = UnknownServerEvent.model_validate(data)
    event._payload = data
    return event
