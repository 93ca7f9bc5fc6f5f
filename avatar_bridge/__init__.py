"""
Realtime Avatar Bridge - Browser to OpenAI Realtime API and LiveAvatar Bridge

This application connects a language-lesson frontend to OpenAI's Realtime API for
speech-to-speech conversation with a virtual tutor, and streams the synthesized
speech to a LiveAvatar renderer so the tutor's face moves in sync with her voice.

The application acts as a three-way bridge: browser microphone audio and Realtime API
client events go to OpenAI, OpenAI server events come back to the browser, and the
speech audio is mirrored to the avatar as lip-sync commands.

Architecture Overview:
- FastAPI server exposing a REST API for lesson sessions and one WebSocket per session
- OpenAI Realtime API client owning the session configuration (voice, VAD, prompt)
- Optional LiveAvatar client for lip-sync, with graceful degradation when it is missing
- Per-session AudioRouter state machine that buffers browser frames until the realtime
  session is configured

Key Components:
- bot: Upstream socket clients and the AudioRouter
- config: Constants, environment settings, logging setup and lesson prompts
- handlers: Session REST handlers and the transcript sink with the lesson-end policy
- models: Protocol schemas and conversation records
- session_registry: Active routers by session id
- websocket_manager: Lifecycle of the browser's realtime socket

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key
   - PORT: Port to run the server on (default 8000)
   - HOST: Host to bind the server to (default 0.0.0.0)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Register a session and connect:
   - POST /api/realtime/sessions with the avatar socket address
   - Open ws://your-server:8000/api/realtime/{session_id}
"""
