"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol event names and default model settings
so that the router, the upstream clients and the gateway agree on them.
"""

# Logger name used throughout the application
LOGGER_NAME = "avatar_bridge"

# OpenAI Realtime API endpoint and defaults
REALTIME_API_URL = "wss://api.openai.com/v1/realtime"
REALTIME_PROTOCOL_HEADER = "OpenAI-Beta"
REALTIME_PROTOCOL_VERSION = "realtime=v1"
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview-2024-12-17"
DEFAULT_VOICE = "shimmer"
DEFAULT_TRANSCRIBE_MODEL = "whisper-1"
DEFAULT_TRANSCRIBE_LANGUAGE = "uk"

# Server-side voice activity detection defaults
DEFAULT_VAD_THRESHOLD = 0.5
DEFAULT_VAD_PREFIX_PADDING_MS = 300
DEFAULT_VAD_SILENCE_DURATION_MS = 3000  # 3 seconds pause before responding
DEFAULT_VAD_CREATE_RESPONSE = True

# Audio format constants (16-bit linear PCM, 24 kHz mono on the wire)
AUDIO_FORMAT_PCM16 = "pcm16"

# Speech model -> router event types
EVENT_SESSION_CREATED = "session.created"
EVENT_SESSION_UPDATED = "session.updated"
EVENT_SPEECH_STARTED = "input_audio_buffer.speech_started"
EVENT_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
EVENT_AUDIO_DELTA = "response.audio.delta"
EVENT_AUDIO_DONE = "response.audio.done"
EVENT_INPUT_TRANSCRIPTION_COMPLETED = "conversation.item.input_audio_transcription.completed"
EVENT_AUDIO_TRANSCRIPT_DONE = "response.audio_transcript.done"
EVENT_RESPONSE_DONE = "response.done"
EVENT_ERROR = "error"

# Router -> speech model event types
EVENT_SESSION_UPDATE = "session.update"
EVENT_INPUT_AUDIO_APPEND = "input_audio_buffer.append"

# Browser frames held until the realtime session is configured
MAX_PENDING_CLIENT_FRAMES = 1000

# Avatar renderer event types
AVATAR_EVENT_SPEAKING_STARTED = "avatar.speaking_started"
AVATAR_EVENT_SPEAKING_ENDED = "avatar.speaking_ended"

# Lesson end detection
GOODBYE_PHRASE = "до побачення"
GOODBYE_MAX_LENGTH = 100
DEFAULT_LESSON_END_DELAY_SECONDS = 5.0

# Lesson records kept in memory for transcript reads
DEFAULT_MAX_STORED_SESSIONS = 1000

# Browser socket close codes
CLOSE_CODE_NORMAL = 1000
CLOSE_CODE_POLICY_VIOLATION = 1008
CLOSE_CODE_INTERNAL_ERROR = 1011
CLOSE_CODE_SESSION_CONFLICT = 4409
