"""
Pydantic models for the LiveAvatar lip-sync WebSocket protocol.

This module defines structured data models for the commands sent to the avatar renderer
(agent.speak, agent.speak_end, agent.interrupt) and the lifecycle events it sends back,
providing type validation and documentation.
"""

import logging
import re
from typing import Any, Dict, Literal, Optional, Pattern, Type, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator

from avatar_bridge.config.constants import (
    AVATAR_EVENT_SPEAKING_ENDED,
    AVATAR_EVENT_SPEAKING_STARTED,
    LOGGER_NAME,
)
from avatar_bridge.models.openai_schemas import load_json_object

logger = logging.getLogger(LOGGER_NAME)

# Event identifiers are generated by the router as evt_1, evt_2, ...
EVENT_ID_PATTERN: Pattern = re.compile(r"^evt_[0-9]+$")


# Outgoing (router -> avatar) commands
class AvatarCommand(BaseModel):
    """Base model for commands sent to the avatar renderer."""

    type: str = Field(..., description="Command type identifier")
    event_id: str = Field(..., description="Sequenced event identifier (evt_<n>)")

    @field_validator("event_id")
    def validate_event_id(cls, v):
        """Validate that the event id follows the evt_<n> sequence format."""
        if not EVENT_ID_PATTERN.match(v):
            raise ValueError(f"Invalid event id: {v}")
        return v


class AgentSpeakMessage(AvatarCommand):
    """Model for agent.speak: one chunk of PCM16 24 kHz audio to lip-sync."""

    type: Literal["agent.speak"] = "agent.speak"
    audio: str = Field(..., description="Base64-encoded PCM16 audio")

    @field_validator("audio")
    def validate_audio(cls, v):
        """Validate that the audio chunk is not empty."""
        if not v:
            raise ValueError("Audio chunk cannot be empty")
        return v


class AgentSpeakEndMessage(AvatarCommand):
    """Model for agent.speak_end: the current utterance is complete."""

    type: Literal["agent.speak_end"] = "agent.speak_end"


class AgentInterruptMessage(AvatarCommand):
    """Model for agent.interrupt: stop in-flight playback immediately (barge-in)."""

    type: Literal["agent.interrupt"] = "agent.interrupt"


# Incoming (avatar -> router) events
class AvatarEvent(BaseModel):
    """Base model for events received from the avatar renderer."""

    model_config = ConfigDict(extra="allow")

    type: str
    event_id: Optional[Any] = None

    _payload: Dict = PrivateAttr(default_factory=dict)

    @property
    def payload(self) -> Dict:
        """The event exactly as it was received."""
        return self._payload


class AvatarSpeakingStartedEvent(AvatarEvent):
    type: Literal["avatar.speaking_started"]


class AvatarSpeakingEndedEvent(AvatarEvent):
    type: Literal["avatar.speaking_ended"]


class UnknownAvatarEvent(AvatarEvent):
    """Any other renderer event; carries no state the router acts on."""


AVATAR_EVENT_MODELS: Dict[str, Type[AvatarEvent]] = {
    AVATAR_EVENT_SPEAKING_STARTED: AvatarSpeakingStartedEvent,
    AVATAR_EVENT_SPEAKING_ENDED: AvatarSpeakingEndedEvent,
}

# Union type for avatar events the browser is told about
AvatarStatusEvent = Union[AvatarSpeakingStartedEvent, AvatarSpeakingEndedEvent]

# Union type for all commands sent to the renderer
OutgoingAvatarCommand = Union[AgentSpeakMessage, AgentSpeakEndMessage, AgentInterruptMessage]


def parse_avatar_event(raw: Union[str, bytes]) -> AvatarEvent:
    """
    Decode one avatar renderer frame.

    A known event type whose fields do not match its model decodes to UnknownAvatarEvent.

    Raises:
        UpstreamProtocolError: If the frame is not a JSON object with a string type
    """
    data = load_json_object(raw, "avatar renderer")
    model = AVATAR_EVENT_MODELS.get(data["type"], UnknownAvatarEvent)
    try:
        event = model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Avatar event {data['type']} does not match its model, ignoring it: {e}")
        event = UnknownAvatarEvent.model_validate(data)
    event._payload = data
    return event
