import pytest
from pydantic import ValidationError

from avatar_bridge.exceptions import UpstreamProtocolError
from avatar_bridge.models.avatar_schemas import (
    AgentInterruptMessage,
    AgentSpeakEndMessage,
    AgentSpeakMessage,
    AvatarSpeakingEndedEvent,
    AvatarSpeakingStartedEvent,
    UnknownAvatarEvent,
    parse_avatar_event,
)


def test_agent_speak_message():
    message = AgentSpeakMessage(event_id="evt_1", audio="AAA=")
    assert message.model_dump() == {"type": "agent.speak", "event_id": "evt_1", "audio": "AAA="}


def test_control_messages():
    assert AgentSpeakEndMessage(event_id="evt_2").model_dump() == {"type": "agent.speak_end", "event_id": "evt_2"}
    assert AgentInterruptMessage(event_id="evt_3").model_dump() == {"type": "agent.interrupt", "event_id": "evt_3"}


@pytest.mark.parametrize("event_id", ["", "evt_", "evt_x", "1", "event_1"])
def test_invalid_event_id(event_id):
    with pytest.raises(ValidationError):
        AgentSpeakEndMessage(event_id=event_id)


def test_empty_audio_rejected():
    with pytest.raises(ValidationError):
        AgentSpeakMessage(event_id="evt_1", audio="")


def test_parse_avatar_events():
    started = parse_avatar_event('{"type": "avatar.speaking_started", "event_id": "x"}')
    ended = parse_avatar_event('{"type": "avatar.speaking_ended"}')
    other = parse_avatar_event('{"type": "session.state_updated", "state": "connected"}')

    assert isinstance(started, AvatarSpeakingStartedEvent)
    assert isinstance(ended, AvatarSpeakingEndedEvent)
    assert isinstance(other, UnknownAvatarEvent)
    assert other.payload == {"type": "session.state_updated", "state": "connected"}


def test_parse_avatar_event_malformed():
    with pytest.raises(UpstreamProtocolError) as exc_info:
        parse_avatar_event("{")
    assert exc_info.value.source == "avatar renderer"


def test_mistyped_avatar_event_still_decodes():
    started = parse_avatar_event('{"type": "avatar.speaking_started", "event_id": 7}')

    assert isinstance(started, AvatarSpeakingStartedEvent)
    assert started.payload == {"type": "avatar.speaking_started", "event_id": 7}
