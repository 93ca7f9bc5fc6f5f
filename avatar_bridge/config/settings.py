"""
Environment-based settings for the realtime avatar bridge.

Values are read from the process environment (optionally populated from a
``.env`` file by the gateway module) and validated with pydantic so that a
misconfigured deployment fails at startup rather than mid-conversation.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from avatar_bridge.config.constants import (
    DEFAULT_LESSON_END_DELAY_SECONDS,
    DEFAULT_MAX_STORED_SESSIONS,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_TRANSCRIBE_LANGUAGE,
    DEFAULT_TRANSCRIBE_MODEL,
    DEFAULT_VAD_CREATE_RESPONSE,
    DEFAULT_VAD_PREFIX_PADDING_MS,
    DEFAULT_VAD_SILENCE_DURATION_MS,
    DEFAULT_VAD_THRESHOLD,
    DEFAULT_VOICE,
)

# Environment variable name -> settings field
ENV_FIELDS = {
    "OPENAI_API_KEY": "openai_api_key",
    "OPENAI_REALTIME_MODEL": "realtime_model",
    "OPENAI_VOICE": "voice",
    "OPENAI_TRANSCRIBE_MODEL": "transcribe_model",
    "OPENAI_TRANSCRIBE_LANGUAGE": "transcribe_language",
    "OPENAI_VAD_THRESHOLD": "vad_threshold",
    "OPENAI_VAD_PREFIX_PADDING_MS": "vad_prefix_padding_ms",
    "OPENAI_VAD_SILENCE_DURATION_MS": "vad_silence_duration_ms",
    "OPENAI_VAD_CREATE_RESPONSE": "vad_create_response",
    "LESSON_AUTO_END": "lesson_auto_end",
    "LESSON_END_DELAY_SECONDS": "lesson_end_delay_seconds",
    "MAX_STORED_SESSIONS": "max_stored_sessions",
    "HOST": "host",
    "PORT": "port",
    "LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    """Runtime configuration for the gateway, router and upstream clients."""

    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    realtime_model: str = Field(DEFAULT_REALTIME_MODEL, min_length=1)
    voice: str = Field(DEFAULT_VOICE, min_length=1)
    transcribe_model: str = Field(DEFAULT_TRANSCRIBE_MODEL, min_length=1)
    transcribe_language: str = Field(DEFAULT_TRANSCRIBE_LANGUAGE, min_length=1)

    vad_threshold: float = Field(DEFAULT_VAD_THRESHOLD, ge=0.0, le=1.0)
    vad_prefix_padding_ms: int = Field(DEFAULT_VAD_PREFIX_PADDING_MS, ge=0)
    vad_silence_duration_ms: int = Field(DEFAULT_VAD_SILENCE_DURATION_MS, gt=0)
    vad_create_response: bool = DEFAULT_VAD_CREATE_RESPONSE

    lesson_auto_end: bool = True
    lesson_end_delay_seconds: float = Field(DEFAULT_LESSON_END_DELAY_SECONDS, ge=0.0)
    max_stored_sessions: int = Field(DEFAULT_MAX_STORED_SESSIONS, gt=0)

    host: str = "0.0.0.0"
    port: int = Field(8000, gt=0, lt=65536)
    log_level: str = "INFO"

    @field_validator("openai_api_key")
    def blank_key_is_missing(cls, v):
        """Treat an empty OPENAI_API_KEY the same as an unset one."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("vad_create_response", "lesson_auto_end", mode="before")
    def parse_env_bool(cls, v):
        """Accept the usual textual spellings of booleans from the environment."""
        if isinstance(v, str):
            return v.strip().lower() in ("1", "true", "yes", "on")
        return v

    @field_validator("log_level")
    def validate_log_level(cls, v):
        """Validate that the log level is one the logging module knows."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unsupported log level: {v}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from instead of ``os.environ``

        Returns:
            Settings: Validated settings

        Raises:
            ValueError: If any variable holds an invalid value
        """
        environ = os.environ if environ is None else environ
        values = {
            field: environ[name] for name, field in ENV_FIELDS.items() if name in environ
        }
        try:
            return cls(**values)
        except ValidationError as e:
            fields = {field: name for name, field in ENV_FIELDS.items()}
            problems = "\n".join(
                f"{fields.get(str(err['loc'][0]), err['loc'][0])}: {err['msg']}"
                for err in e.errors()
            )
            raise ValueError(f"Invalid environment:\n{problems}") from e

    @property
    def openai_api_key_configured(self) -> bool:
        return bool(self.openai_api_key)
