"""
Shared WebSocket plumbing for the upstream connections of a conversation.

Both the OpenAI Realtime client and the LiveAvatar client own exactly one outbound
socket. This module implements what they have in common: opening the socket with
low-latency settings, a single receive task that decodes frames and hands them to
the owner's callbacks in arrival order, explicit best-effort sends, and an
idempotent close.
"""

import asyncio
import json
import logging
import time
import traceback
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from avatar_bridge.config.constants import LOGGER_NAME
from avatar_bridge.exceptions import UpstreamConnectError, UpstreamProtocolError

logger = logging.getLogger(LOGGER_NAME)

CONNECTION_TIMEOUT = 30  # seconds
SEND_TIMEOUT = 5.0  # seconds

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_MAX_QUEUE = 32  # Small queue to prevent buffering
WS_PING_INTERVAL = 5  # 5 seconds between pings
WS_PING_TIMEOUT = 10

# Callback types used by the owners of an upstream socket
MessageCallback = Callable[[Any], Awaitable[None]]
ErrorCallback = Callable[[Exception], Awaitable[None]]
CloseCallback = Callable[[], Awaitable[None]]

Frame = Union[str, Dict[str, Any]]


class UpstreamSocket:
    """
    One outbound WebSocket with a receive loop and best-effort sends.

    Subclasses implement ``_decode`` to turn a text frame into a typed event.
    """

    name = "upstream"

    def __init__(self):
        self.ws = None
        self._recv_task: Optional[asyncio.Task] = None
        self._connection_active = False
        self._is_closing = False
        self._on_message: Optional[MessageCallback] = None
        self._on_error: Optional[ErrorCallback] = None
        self._on_close: Optional[CloseCallback] = None

    @property
    def is_open(self) -> bool:
        """Whether the socket is connected and not being closed."""
        return self.ws is not None and self._connection_active and not self._is_closing

    def _decode(self, message: Union[str, bytes]) -> Any:
        raise NotImplementedError

    async def _open(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        on_message: Optional[MessageCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_close: Optional[CloseCallback] = None,
    ) -> None:
        """
        Open the socket and start the receive loop.

        Raises:
            UpstreamConnectError: If the handshake does not complete
        """
        if self._is_closing:
            raise UpstreamConnectError(f"{self.name} client is closed")
        if self.ws is not None:
            raise UpstreamConnectError(f"{self.name} client is already connected")

        self._on_message = on_message
        self._on_error = on_error
        self._on_close = on_close

        kwargs = {
            "max_size": WS_MAX_SIZE,
            "max_queue": WS_MAX_QUEUE,
            "ping_interval": WS_PING_INTERVAL,
            "ping_timeout": WS_PING_TIMEOUT,
            "compression": None,  # Disable compression for lower latency
        }
        if headers:
            kwargs["additional_headers"] = headers

        try:
            connection_start = time.time()
            self.ws = await asyncio.wait_for(
                websockets.connect(url, **kwargs), timeout=CONNECTION_TIMEOUT
            )
            logger.debug(
                f"{self.name} WebSocket connection established in "
                f"{time.time() - connection_start:.2f} seconds"
            )
        except asyncio.TimeoutError:
            raise UpstreamConnectError(
                f"Timeout while connecting to {self.name} (after {CONNECTION_TIMEOUT}s)"
            )
        except Exception as e:
            logger.debug(f"{self.name} connection error details: {traceback.format_exc()}")
            raise UpstreamConnectError(f"Failed to connect to {self.name}: {e}") from e

        if self._is_closing:
            # close() was called while the handshake was in flight
            await self.ws.close()
            raise UpstreamConnectError(f"{self.name} client was closed during connect")

        self._connection_active = True
        self._recv_task = asyncio.create_task(self._recv_loop())

    async def _recv_loop(self) -> None:
        """
        Receive frames until the socket closes, delivering each decoded event
        to the message callback before reading the next one.
        """
        if not self.ws:
            logger.error(f"{self.name} WebSocket not initialized for receive loop")
            self._connection_active = False
            return

        try:
            while self._connection_active and not self._is_closing:
                try:
                    message = await self.ws.recv()
                except ConnectionClosedOK:
                    logger.info(f"{self.name} WebSocket connection closed normally")
                    break
                except ConnectionClosed as e:
                    logger.warning(f"{self.name} WebSocket connection closed unexpectedly: {e}")
                    await self._notify_error(e)
                    break

                try:
                    event = self._decode(message)
                except UpstreamProtocolError as e:
                    logger.warning(f"Dropping frame: {e}")
                    await self._notify_error(e)
                    continue

                if self._on_message:
                    try:
                        await self._on_message(event)
                    except Exception as e:
                        logger.error(
                            f"Error handling {self.name} event {getattr(event, 'type', '?')}: {e}",
                            exc_info=True,
                        )
        except asyncio.CancelledError:
            logger.debug(f"{self.name} receive loop cancelled")
            raise
        except Exception as e:
            logger.error(f"Error in {self.name} receive loop: {e}")
            logger.debug(f"Receive loop error details: {traceback.format_exc()}")
            await self._notify_error(e)

        self._connection_active = False
        logger.info(f"{self.name} receive loop exited, connection marked as inactive")

        if self._on_close and not self._is_closing:
            try:
                await self._on_close()
            except Exception as e:
                logger.error(f"Error in {self.name} close handler: {e}", exc_info=True)

    async def _notify_error(self, error: Exception) -> None:
        if not self._on_error:
            return
        try:
            await self._on_error(error)
        except Exception as e:
            logger.error(f"Error in {self.name} error handler: {e}", exc_info=True)

    async def _send(self, frame: Frame) -> None:
        """Send one frame; errors propagate to the caller."""
        if not self.is_open:
            raise ConnectionError(f"{self.name} socket is not open")
        text = frame if isinstance(frame, str) else json.dumps(frame, ensure_ascii=False)
        await asyncio.wait_for(self.ws.send(text), timeout=SEND_TIMEOUT)

    async def send_best_effort(self, frame: Frame) -> bool:
        """
        Send one frame without delivery guarantees.

        Audio and control frames are lossy: if the socket is not open or
        the send fails, the frame is dropped, a warning is logged and False is returned.

        Args:
            frame: A JSON text frame or a dict to serialize

        Returns:
            bool: True if the frame was handed to the socket
        """
        if not self.is_open:
            logger.warning(f"Dropping frame for {self.name}: connection not active")
            return False
        try:
            await self._send(frame)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Timeout while sending frame to {self.name}, frame dropped")
        except ConnectionClosed as e:
            logger.warning(f"{self.name} connection closed while sending: {e}")
            self._connection_active = False
        except Exception as e:
            logger.error(f"Error sending frame to {self.name}: {e}")
        return False

    async def close(self) -> None:
        """
        Close the WebSocket connection and cancel the receive task.

        Safe to call more than once and from within the receive loop's own callbacks.
        """
        if self._is_closing:
            return
        self._is_closing = True
        self._connection_active = False

        task = self._recv_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

        if self.ws:
            try:
                await self.ws.close()
            except Exception as e:
                logger.warning(f"Error closing {self.name} WebSocket: {e}")
        logger.info(f"{self.name} client closed")
