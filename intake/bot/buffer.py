"""In-memory per-conversation buffer of pending items with an idle timeout."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from intake.config import settings

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from intake.models import BufferedItem

    ExpiryCallback = Callable[[str, int], Awaitable[None]]

logger = logging.getLogger(__name__)


@dataclass
class ConversationState:
    """Pending items for one conversation plus its idle timer."""

    pending: list[BufferedItem] = field(default_factory=list)
    timer: asyncio.Task | None = None


class ConversationBuffer:
    """Accumulates items per conversation until a trigger drains them.

    Singleton accessed via ``ConversationBuffer.get()``.  State is created on
    the first append and destroyed on drain or idle expiry.  Every append
    re-arms a single-shot timer; when it fires the buffer is drained and
    ``on_expire(conversation_id, count)`` is awaited.

    Mutations never yield to the event loop, so append/drain on the same
    conversation are atomic with respect to each other.
    """

    _instance: ConversationBuffer | None = None

    def __init__(
        self,
        idle_timeout: float | None = None,
        on_expire: ExpiryCallback | None = None,
    ) -> None:
        self.idle_timeout = idle_timeout if idle_timeout is not None else settings.media_timeout_seconds
        self._on_expire = on_expire
        self._states: dict[str, ConversationState] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def get(cls) -> ConversationBuffer:
        """Return the shared buffer instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    def set_expiry_callback(self, on_expire: ExpiryCallback | None) -> None:
        self._on_expire = on_expire

    # -- Operations ------------------------------------------------------------

    def append(self, conversation_id: str, item: BufferedItem) -> None:
        """Add an item and restart the idle window. Requires a running loop."""
        state = self._states.get(conversation_id)
        if state is None:
            state = ConversationState()
            self._states[conversation_id] = state
        state.pending.append(item)

        if state.timer is not None:
            state.timer.cancel()
        state.timer = asyncio.get_running_loop().create_task(
            self._expire_after_idle(conversation_id, state)
        )
        logger.debug(
            "Buffered %s for %s (%d pending)", item.kind, conversation_id, len(state.pending)
        )

    def drain(self, conversation_id: str) -> list[BufferedItem]:
        """Remove and return every pending item, cancelling the idle timer."""
        state = self._states.pop(conversation_id, None)
        if state is None:
            return []
        if state.timer is not None:
            state.timer.cancel()
            state.timer = None
        return state.pending

    def lock(self, conversation_id: str) -> asyncio.Lock:
        """Lock serializing handlers that must see this conversation in arrival order."""
        return self._locks.setdefault(conversation_id, asyncio.Lock())

    def pending_count(self, conversation_id: str) -> int:
        state = self._states.get(conversation_id)
        return len(state.pending) if state else 0

    def close(self) -> None:
        """Cancel all timers and drop every buffer (shutdown)."""
        for state in self._states.values():
            if state.timer is not None:
                state.timer.cancel()
        self._states.clear()
        self._locks.clear()

    # -- Idle expiry -------------------------------------------------------------

    async def _expire_after_idle(self, conversation_id: str, state: ConversationState) -> None:
        await asyncio.sleep(self.idle_timeout)

        # A drain (or a newer append) already replaced this state.
        if self._states.get(conversation_id) is not state:
            return
        if state.timer is not asyncio.current_task():
            return

        # Detach the timer first so drain() does not cancel the running task.
        state.timer = None
        items = self.drain(conversation_id)
        logger.info("Idle timeout for %s: discarded %d items", conversation_id, len(items))

        if items and self._on_expire is not None:
            try:
                await self._on_expire(conversation_id, len(items))
            except Exception:
                logger.exception("Expiry notification failed for %s", conversation_id)
