"""
Configuration module for the realtime avatar bridge.

This module provides centralized configuration management for the entire application,
including constants, logging setup, environment-based settings and lesson prompts.

Key components:
- constants: Protocol event names, audio formats and default model settings shared
  by the router, the upstream socket clients and the gateway.
- logging_config: Console and rotating-file logging for the application logger.
- settings: Pydantic model of the environment variables (API key, model, voice,
  voice-activity-detection parameters, lesson auto-end policy, host and port).
- prompts: The Марія system prompt and its per-lesson builder.

Usage examples:
```python
from avatar_bridge.config.settings import Settings
from avatar_bridge.config.logging_config import configure_logging

settings = Settings.from_env()
logger = configure_logging(settings.log_level)
logger.info(f"Using realtime model {settings.realtime_model}")
```
"""

# Config module initialization
