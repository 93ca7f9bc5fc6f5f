"""
Transcript sink for lesson conversations.

The AudioRouter reports each completed utterance as ``(role, text)``. The
TranscriptRecorder logs it, stores it on the session record and applies the
lesson-end policy: a short assistant goodbye ("Дякую! До побачення!") ends the
lesson, and the session is torn down once the avatar has had time to finish speaking.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from avatar_bridge.config.constants import (
    DEFAULT_LESSON_END_DELAY_SECONDS,
    GOODBYE_MAX_LENGTH,
    GOODBYE_PHRASE,
    LOGGER_NAME,
)
from avatar_bridge.models.conversation import SessionContextStore
from avatar_bridge.models.openai_schemas import MessageRole

logger = logging.getLogger(LOGGER_NAME)

LessonEndCallback = Callable[[], Awaitable[None]]


def is_final_goodbye(text: str) -> bool:
    """Return True if an assistant utterance is the short closing goodbye."""
    normalized = text.strip().lower()
    return GOODBYE_PHRASE in normalized and len(normalized) < GOODBYE_MAX_LENGTH


class TranscriptRecorder:
    """
    Callable transcript sink bound to one session.

    Args:
        session_id: The session the transcripts belong to
        store: Where transcripts are persisted
        on_lesson_end: Awaited once, ``lesson_end_delay`` seconds after the goodbye;
            None disables auto-end
        lesson_end_delay: Seconds to wait before calling ``on_lesson_end``
    """

    def __init__(
        self,
        session_id: str,
        store: SessionContextStore,
        on_lesson_end: Optional[LessonEndCallback] = None,
        lesson_end_delay: float = DEFAULT_LESSON_END_DELAY_SECONDS,
    ):
        self.session_id = session_id
        self.store = store
        self.on_lesson_end = on_lesson_end
        self.lesson_end_delay = lesson_end_delay
        self.lesson_ended = False
        self._end_task: Optional[asyncio.Task] = None
        self._ending = False

    def __call__(self, role: str, text: str) -> None:
        logger.info(f"Transcript ({role}) for session {self.session_id}: {text}")
        self.store.append_transcript(self.session_id, role, text)

        if role == MessageRole.ASSISTANT.value and not self.lesson_ended and is_final_goodbye(text):
            self.lesson_ended = True
            self.store.mark_lesson_ended(self.session_id)
            logger.info(f"Lesson finished for session: {self.session_id}")
            if self.on_lesson_end:
                self._end_task = asyncio.create_task(self._end_lesson_later())

    async def _end_lesson_later(self) -> None:
        await asyncio.sleep(self.lesson_end_delay)
        # Teardown is not cancellable once started.
        self._ending = True
        try:
            await self.on_lesson_end()
        except Exception as e:
            logger.error(f"Error ending lesson for session {self.session_id}: {e}", exc_info=True)

    def cancel(self) -> None:
        """Cancel a lesson-end teardown that is still waiting out its delay."""
        if self._end_task and not self._end_task.done() and not self._ending:
            self._end_task.cancel()
