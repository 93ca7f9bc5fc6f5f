"""
Models module for protocol schemas and conversation records of the avatar bridge.

Key components:
- openai_schemas: Pydantic models for the OpenAI Realtime API. Outgoing session.update and
  input_audio_buffer.append messages, and one model per incoming server event with an
  UnknownServerEvent fallback so unrecognised events are still forwarded.
- avatar_schemas: Pydantic models for the LiveAvatar lip-sync protocol (agent.speak,
  agent.speak_end, agent.interrupt and the avatar.speaking_* status events).
- conversation: Lesson session records (avatar address, system prompt, transcript).

Usage examples:
```python
from avatar_bridge.models.openai_schemas import parse_server_event, AudioDeltaEvent

event = parse_server_event('{"type": "response.audio.delta", "delta": "AAA="}')
assert isinstance(event, AudioDeltaEvent)
assert event.payload == {"type": "response.audio.delta", "delta": "AAA="}

from avatar_bridge.models.conversation import CreateSessionRequest, SessionContextStore

store = SessionContextStore()
context = store.create(CreateSessionRequest(user_name="Олена"))
store.append_transcript(context.session_id, "assistant", "Привіт!")
```
"""

from avatar_bridge.models.avatar_schemas import (
    AgentInterruptMessage,
    AgentSpeakEndMessage,
    AgentSpeakMessage,
    AvatarEvent,
    AvatarSpeakingEndedEvent,
    AvatarSpeakingStartedEvent,
    UnknownAvatarEvent,
    parse_avatar_event,
)
from avatar_bridge.models.conversation import (
    CreateSessionRequest,
    SessionContext,
    SessionContextStore,
    TranscriptEntry,
)
from avatar_bridge.models.openai_schemas import (
    AudioDeltaEvent,
    AudioDoneEvent,
    AudioTranscriptDoneEvent,
    ErrorEvent,
    InputAudioAppendMessage,
    InputTranscriptionCompletedEvent,
    MessageRole,
    RealtimeServerEvent,
    ResponseDoneEvent,
    SessionConfig,
    SessionCreatedEvent,
    SessionUpdatedEvent,
    SessionUpdateMessage,
    SpeechStartedEvent,
    SpeechStoppedEvent,
    UnknownServerEvent,
    parse_server_event,
)
