"""
Registry of the active conversations of this process.

The registry maps a session id to its AudioRouter. At most one router exists per
session id: a second registration is rejected with SessionConflict so that the
first conversation's upstream sockets are never orphaned.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from avatar_bridge.bot.audio_router import AudioRouter
from avatar_bridge.config.constants import LOGGER_NAME
from avatar_bridge.exceptions import SessionConflict, SessionNotFound

logger = logging.getLogger(LOGGER_NAME)


class SessionRegistry:
    """
    Tracks active routers by session id.

    Mutations are serialized with an asyncio lock; lookups are plain dict reads.
    """

    def __init__(self):
        self._routers: Dict[str, AudioRouter] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._routers)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._routers

    @property
    def active_session_ids(self) -> List[str]:
        return list(self._routers)

    async def register(self, session_id: str, router: AudioRouter) -> None:
        """
        Register a router for a session id.

        Raises:
            SessionConflict: If a router is already registered for the id
        """
        async with self._lock:
            if session_id in self._routers:
                logger.warning(f"Rejecting second connection for active session: {session_id}")
                raise SessionConflict(session_id)
            self._routers[session_id] = router
        logger.info(f"Session registered: {session_id} ({len(self._routers)} active)")

    def lookup(self, session_id: str) -> Optional[AudioRouter]:
        """Return the router for a session id, or None."""
        return self._routers.get(session_id)

    async def dispose(self, session_id: str, missing_ok: bool = True) -> bool:
        """
        Close the router for a session id and remove it.

        Args:
            session_id: The session to dispose
            missing_ok: When False, a missing session raises SessionNotFound

        Returns:
            bool: True if a router was found and disposed

        Raises:
            SessionNotFound: If the session is absent and missing_ok is False
        """
        async with self._lock:
            router = self._routers.pop(session_id, None)
        if router is None:
            if not missing_ok:
                raise SessionNotFound(session_id)
            return False

        try:
            await router.disconnect()
        except Exception as e:
            logger.error(f"Error disconnecting router for session {session_id}: {e}", exc_info=True)
        logger.info(f"Session disposed: {session_id} ({len(self._routers)} active)")
        return True

    async def shutdown(self) -> None:
        """Dispose every active session."""
        session_ids = self.active_session_ids
        if session_ids:
            logger.info(f"Shutting down {len(session_ids)} active sessions")
        for session_id in session_ids:
            await self.dispose(session_id)
