import pytest
from unittest.mock import AsyncMock, MagicMock

from avatar_bridge.exceptions import SessionNotFound
from avatar_bridge.handlers.session_handlers import (
    handle_create_session,
    handle_get_transcript,
    handle_stop_session,
)
from avatar_bridge.models.conversation import CreateSessionRequest, SessionContextStore
from avatar_bridge.session_registry import SessionRegistry


@pytest.fixture
def store():
    return SessionContextStore()


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.mark.asyncio
async def test_handle_create_session(store):
    request = CreateSessionRequest(session_id="s1", avatar_ws_url="wss://avatar.example.com/ws")

    response = await handle_create_session(request, store)

    assert response.session_id == "s1"
    assert response.realtime_path == "/api/realtime/s1"
    assert response.lip_sync is True
    assert store.get("s1") is not None


@pytest.mark.asyncio
async def test_handle_create_session_without_avatar(store):
    response = await handle_create_session(CreateSessionRequest(), store)

    assert response.lip_sync is False
    assert response.realtime_path == f"/api/realtime/{response.session_id}"


@pytest.mark.asyncio
async def test_handle_get_transcript(store, registry):
    store.create(CreateSessionRequest(session_id="s1"))
    store.append_transcript("s1", "assistant", "Привіт!")

    response = await handle_get_transcript("s1", store, registry)

    assert response.session_id == "s1"
    assert response.active is False
    assert response.lesson_ended is False
    assert [e.text for e in response.transcript] == ["Привіт!"]


@pytest.mark.asyncio
async def test_handle_get_transcript_unknown(store):
    with pytest.raises(SessionNotFound):
        await handle_get_transcript("missing", store)


@pytest.mark.asyncio
async def test_handle_stop_session(registry):
    router = MagicMock()
    router.disconnect = AsyncMock()
    await registry.register("s1", router)

    response = await handle_stop_session("s1", registry)

    assert response.stopped is True
    router.disconnect.assert_awaited_once()
    assert "s1" not in registry


@pytest.mark.asyncio
async def test_handle_stop_session_unknown(registry):
    with pytest.raises(SessionNotFound):
        await handle_stop_session("missing", registry)
