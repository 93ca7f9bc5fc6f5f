import pytest
from unittest.mock import AsyncMock, MagicMock

from avatar_bridge.exceptions import SessionConflict, SessionNotFound
from avatar_bridge.session_registry import SessionRegistry


def make_router():
    router = MagicMock()
    router.disconnect = AsyncMock()
    return router


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.mark.asyncio
async def test_register_and_lookup(registry):
    router = make_router()

    await registry.register("s1", router)

    assert registry.lookup("s1") is router
    assert "s1" in registry
    assert len(registry) == 1
    assert registry.active_session_ids == ["s1"]


@pytest.mark.asyncio
async def test_lookup_unknown(registry):
    assert registry.lookup("missing") is None


@pytest.mark.asyncio
async def test_duplicate_registration_rejected(registry):
    """A second router for an active id is rejected and the first is untouched."""
    first = make_router()
    second = make_router()
    await registry.register("s1", first)

    with pytest.raises(SessionConflict):
        await registry.register("s1", second)

    assert registry.lookup("s1") is first
    first.disconnect.assert_not_awaited()


@pytest.mark.asyncio
async def test_dispose(registry):
    router = make_router()
    await registry.register("s1", router)

    assert await registry.dispose("s1") is True

    router.disconnect.assert_awaited_once()
    assert registry.lookup("s1") is None
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_dispose_twice(registry):
    router = make_router()
    await registry.register("s1", router)

    await registry.dispose("s1")
    assert await registry.dispose("s1") is False

    router.disconnect.assert_awaited_once()


@pytest.mark.asyncio
async def test_dispose_missing_strict(registry):
    with pytest.raises(SessionNotFound) as exc_info:
        await registry.dispose("missing", missing_ok=False)
    assert exc_info.value.session_id == "missing"


@pytest.mark.asyncio
async def test_dispose_survives_disconnect_error(registry):
    router = make_router()
    router.disconnect.side_effect = OSError("socket gone")
    await registry.register("s1", router)

    assert await registry.dispose("s1") is True
    assert "s1" not in registry


@pytest.mark.asyncio
async def test_id_reusable_after_dispose(registry):
    await registry.register("s1", make_router())
    await registry.dispose("s1")

    replacement = make_router()
    await registry.register("s1", replacement)

    assert registry.lookup("s1") is replacement


@pytest.mark.asyncio
async def test_shutdown(registry):
    routers = [make_router() for _ in range(3)]
    for i, router in enumerate(routers):
        await registry.register(f"s{i}", router)

    await registry.shutdown()

    assert len(registry) == 0
    for router in routers:
        router.disconnect.assert_awaited_once()
