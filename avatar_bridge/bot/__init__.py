"""
Bot module for routing a lesson conversation between the browser, OpenAI and LiveAvatar.

Key components:
- RealtimeSpeechClient: Client for OpenAI's Realtime API over WebSockets. Sends the one
  session configuration, forwards browser frames and audio, and decodes server events.
- LiveAvatarClient: Client for the LiveAvatar lip-sync socket. Sends synthesized audio
  for rendering and signals end-of-utterance and barge-in interruptions.
- AudioRouter: Per-conversation state machine that multiplexes the three endpoints,
  buffers browser frames until the realtime session is configured and reports transcripts.

Usage examples:
```python
from avatar_bridge.bot import AudioRouter

async def run_conversation(websocket, settings):
    router = AudioRouter(
        session_id="demo-1",
        system_prompt="Ти Марія, віртуальна викладачка.",
        send_to_client=lambda message: websocket.send_json(message),
        avatar_ws_url=None,  # lip-sync disabled, audio goes to the browser only
        settings=settings,
        on_transcript=lambda role, text: print(role, text),
    )
    await router.connect()
    await router.handle_client_message('{"type": "input_audio_buffer.commit"}')
    await router.disconnect()
```
"""

from avatar_bridge.bot.audio_router import AudioRouter, RouterState
from avatar_bridge.bot.avatar_client import LiveAvatarClient
from avatar_bridge.bot.realtime_api import RealtimeSpeechClient

__all__ = ["AudioRouter", "RouterState", "LiveAvatarClient", "RealtimeSpeechClient"]
