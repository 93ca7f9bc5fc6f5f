"""
FastAPI server for the realtime avatar bridge.

This module initializes and configures the FastAPI application that the lesson
frontend talks to. The browser registers a lesson session over REST, then opens a
realtime WebSocket for that session; the server bridges it to the OpenAI Realtime API
and, when an avatar socket address was given, drives LiveAvatar lip-sync with the
synthesized speech.

The server keeps one AudioRouter per active session and the transcript of every
session it has seen.
"""

from contextlib import asynccontextmanager
from pathlib import Path

import dotenv
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse

from avatar_bridge.config.logging_config import configure_logging
from avatar_bridge.config.settings import Settings
from avatar_bridge.exceptions import SessionNotFound
from avatar_bridge.handlers.session_handlers import (
    SessionCreatedResponse,
    SessionStoppedResponse,
    TranscriptResponse,
    handle_create_session,
    handle_get_transcript,
    handle_stop_session,
)
from avatar_bridge.models.conversation import CreateSessionRequest, SessionContextStore
from avatar_bridge.session_registry import SessionRegistry
from avatar_bridge.websocket_manager import WebSocketManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

settings = Settings.from_env()

# Configure logging
logger = configure_logging(settings.log_level)

session_registry = SessionRegistry()
context_store = SessionContextStore(
    max_sessions=settings.max_stored_sessions, is_active=lambda session_id: session_id in session_registry
)
websocket_manager = WebSocketManager(session_registry, context_store, settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"OpenAI API key configured: {settings.openai_api_key_configured}")
    yield
    await session_registry.shutdown()
    logger.info("Server shut down")


# Create FastAPI application
app = FastAPI(
    title="Realtime Avatar Bridge",
    description="Bridge between a lesson browser client, the OpenAI Realtime API and LiveAvatar lip-sync",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(SessionNotFound)
async def session_not_found_handler(request: Request, exc: SessionNotFound):
    return JSONResponse(status_code=404, content={"detail": "session_not_found", "session_id": exc.session_id})


@app.websocket("/api/realtime/{session_id}")
async def realtime_endpoint(websocket: WebSocket, session_id: str):
    """WebSocket endpoint for one realtime lesson conversation.

    Text frames are OpenAI Realtime client events and are forwarded once the session is
    configured; binary frames are raw PCM16 microphone audio. The server sends back the
    Realtime API server events and the avatar speaking status events.

    Close codes: 1008 unknown session, 4409 session already active, 1011 OpenAI
    connection failed or lost.
    """
    await websocket_manager.handle_websocket(websocket, session_id)


@app.post("/api/realtime/sessions", status_code=201, response_model=SessionCreatedResponse)
async def create_session(request: CreateSessionRequest):
    """Register a lesson session before the realtime socket is opened."""
    return await handle_create_session(request, context_store)


@app.get("/api/realtime/sessions/{session_id}/transcript", response_model=TranscriptResponse)
async def get_transcript(session_id: str):
    """Return the transcript of a session; 404 if the session was never registered."""
    return await handle_get_transcript(session_id, context_store, session_registry)


@app.delete("/api/realtime/{session_id}", response_model=SessionStoppedResponse)
async def stop_session(session_id: str):
    """Stop an active conversation; 404 if there is none for the session."""
    return await handle_stop_session(session_id, session_registry)


@app.get("/api/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status information indicating the server is operational.

    This endpoint can be used by load balancers or monitoring tools
    to verify the service is running and responsive.
    """
    return {
        "status": "healthy",
        "openai_api_key_configured": settings.openai_api_key_configured,
        "active_sessions": len(session_registry),
    }


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API.

    Returns:
        dict: Basic information about the API and its purpose.
    """
    return {
        "name": "Realtime Avatar Bridge",
        "description": "Bridge between a lesson browser client, the OpenAI Realtime API and LiveAvatar lip-sync",
        "version": "1.0.0",
        "endpoints": {
            "/api/realtime/sessions": "Register a lesson session (POST)",
            "/api/realtime/sessions/{session_id}/transcript": "Session transcript (GET)",
            "/api/realtime/{session_id}": "Realtime WebSocket (WS) or stop the session (DELETE)",
            "/api/health": "Health check endpoint",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        websocket_ping_interval=5,
        websocket_max_size=16777216,  # 16MB - large enough for audio chunks
        websocket_ping_timeout=20,
        http="h11",
    )
