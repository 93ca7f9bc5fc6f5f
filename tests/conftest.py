import asyncio
import logging
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosedOK


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeUpstreamWebSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self):
        self.sent = []
        self.closed = False
        self.incoming = asyncio.Queue()

    def feed(self, message):
        """Queue a frame (or an exception to raise) for the next recv()."""
        self.incoming.put_nowait(message)

    async def recv(self):
        item = await self.incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def send(self, text):
        self.sent.append(text)

    async def close(self):
        self.closed = True
        self.incoming.put_nowait(ConnectionClosedOK(None, None))


@pytest.fixture
def upstream_ws():
    """Provide a fake upstream WebSocket connection."""
    return FakeUpstreamWebSocket()


@pytest.fixture
def mock_connect(upstream_ws):
    """Patch websockets.connect so it opens the fake upstream connection."""
    with patch("websockets.connect", new=AsyncMock(return_value=upstream_ws)) as mock:
        yield mock


async def drain_loop(rounds=10):
    """Let pending tasks (receive loops, callbacks) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def drain():
    """Provide a coroutine function that lets pending tasks run."""
    return drain_loop
