import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from avatar_bridge.main import app, context_store, session_registry, settings, websocket_manager

client = TestClient(app)


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/api/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert isinstance(response_json["openai_api_key_configured"], bool)
    assert response_json["active_sessions"] == len(session_registry)


def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "Realtime Avatar Bridge"
    assert response_json["version"] == "1.0.0"
    assert "/api/realtime/sessions" in response_json["endpoints"]
    assert "/api/health" in response_json["endpoints"]


def test_websocket_manager_initialization():
    """Test that websocket_manager shares the application's registry and store"""
    assert websocket_manager.registry is session_registry
    assert websocket_manager.context_store is context_store
    assert websocket_manager.settings is settings


def test_create_session():
    response = client.post(
        "/api/realtime/sessions",
        json={"session_id": "main-s1", "avatar_ws_url": "wss://avatar.example.com/ws", "user_name": "Олена"},
    )

    assert response.status_code == 201
    assert response.json() == {"session_id": "main-s1", "realtime_path": "/api/realtime/main-s1", "lip_sync": True}
    assert "Олена" in context_store.get("main-s1").system_prompt


def test_create_session_invalid_avatar_url():
    response = client.post("/api/realtime/sessions", json={"avatar_ws_url": "http://avatar.example.com"})
    assert response.status_code == 422


def test_get_transcript():
    client.post("/api/realtime/sessions", json={"session_id": "main-s2"})
    context_store.append_transcript("main-s2", "assistant", "Привіт!")

    response = client.get("/api/realtime/sessions/main-s2/transcript")

    assert response.status_code == 200
    body = response.json()
    assert body["active"] is False
    assert body["transcript"][0]["role"] == "assistant"
    assert body["transcript"][0]["text"] == "Привіт!"


def test_get_transcript_unknown_session():
    response = client.get("/api/realtime/sessions/missing/transcript")

    assert response.status_code == 404
    assert response.json()["detail"] == "session_not_found"


def test_stop_unknown_session():
    response = client.delete("/api/realtime/missing")

    assert response.status_code == 404
    assert response.json() == {"detail": "session_not_found", "session_id": "missing"}


def test_stop_active_session():
    router = MagicMock()
    router.disconnect = AsyncMock()
    asyncio.run(session_registry.register("main-s3", router))

    response = client.delete("/api/realtime/main-s3")

    assert response.status_code == 200
    assert response.json() == {"session_id": "main-s3", "stopped": True}
    router.disconnect.assert_awaited_once()
    assert "main-s3" not in session_registry


def test_websocket_unknown_session():
    with client.websocket_connect("/api/realtime/never-registered") as websocket:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_text()
    assert exc_info.value.code == 1008


def test_websocket_without_api_key(monkeypatch):
    """Without an API key the session cannot start and the socket closes with 1011."""
    monkeypatch.setattr(settings, "openai_api_key", None)
    client.post("/api/realtime/sessions", json={"session_id": "main-s4"})

    with client.websocket_connect("/api/realtime/main-s4") as websocket:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_text()

    assert exc_info.value.code == 1011
    assert "main-s4" not in session_registry


def test_context_store_keeps_active_sessions():
    router = MagicMock()
    router.disconnect = AsyncMock()
    asyncio.run(session_registry.register("main-s5", router))
    client.post("/api/realtime/sessions", json={"session_id": "main-s5"})

    assert context_store._is_active("main-s5") is True
    assert context_store._is_active("main-s1") is False
    assert context_store.max_sessions == settings.max_stored_sessions

    asyncio.run(session_registry.dispose("main-s5"))
