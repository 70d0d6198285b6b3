"""
Conversation Store Module.

Holds the ordered turn history of every live conversation and serializes
work per conversation id. Distinct conversations never share a lock, so
they proceed fully in parallel.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Tuple

from .models import Turn
from .prompts import SYSTEM_PROMPT
from .state_types import Role

logger = logging.getLogger(__name__)


class ConversationHistory:
    """
    Append-only turn history for one conversation.

    Always starts with exactly one system turn.
    """

    def __init__(self, conversation_id: str, system_prompt: str):
        self.conversation_id = conversation_id
        self._turns: List[Turn] = [Turn(role=Role.SYSTEM, content=system_prompt)]
        self.last_activity = time.monotonic()

    @property
    def turns(self) -> Tuple[Turn, ...]:
        """Snapshot of the stored turns in insertion order."""
        return tuple(self._turns)

    def append(self, turn: Turn):
        if turn.role == Role.SYSTEM:
            raise ValueError("History already has its system turn")
        self._turns.append(turn)
        self.touch()

    def extend(self, turns: Iterable[Turn]):
        for turn in turns:
            self.append(turn)

    def find_last(self, predicate: Callable[[Turn], bool]) -> Optional[Turn]:
        """Scan backward for the most recent turn satisfying ``predicate``."""
        for turn in reversed(self._turns):
            if predicate(turn):
                return turn
        return None

    def touch(self):
        self.last_activity = time.monotonic()

    def __len__(self) -> int:
        return len(self._turns)


class ConversationStore:
    """
    Process-wide store of conversation histories keyed by conversation id.

    Constructed once at startup and handed to request handlers. Callers that
    read-then-write a history (reconciliation, generation) must do so inside
    ``session()`` so that overlapping events for the same id are serialized.
    """

    def __init__(self, system_prompt: str = SYSTEM_PROMPT):
        self.system_prompt = system_prompt
        self._histories: Dict[str, ConversationHistory] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending: Dict[str, int] = {}

    def get_or_create(self, conversation_id: str) -> ConversationHistory:
        """Return the history for ``conversation_id``, seeding it if absent."""
        history = self._histories.get(conversation_id)
        if history is None:
            history = ConversationHistory(conversation_id, self.system_prompt)
            self._histories[conversation_id] = history
            logger.info("Created conversation %s", conversation_id)
        return history

    def get(self, conversation_id: str) -> Optional[ConversationHistory]:
        return self._histories.get(conversation_id)

    def append(self, conversation_id: str, turn: Turn):
        self.get_or_create(conversation_id).append(turn)

    def extend(self, conversation_id: str, turns: Iterable[Turn]):
        self.get_or_create(conversation_id).extend(turns)

    def find_last_matching(
        self,
        conversation_id: str,
        predicate: Callable[[Turn], bool]
    ) -> Optional[Turn]:
        """
        Find the most recent turn of a conversation matching ``predicate``.

        Args:
            conversation_id: Conversation to scan
            predicate: Test applied to each turn, newest first

        Returns:
            The matching turn, or None if the conversation is unknown or
            nothing matches
        """
        history = self._histories.get(conversation_id)
        if history is None:
            return None
        return history.find_last(predicate)

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    def reserve(self, conversation_id: str):
        """Mark work as queued for a conversation before its session starts."""
        self._pending[conversation_id] = self._pending.get(conversation_id, 0) + 1

    def release(self, conversation_id: str):
        remaining = self._pending.get(conversation_id, 0) - 1
        if remaining > 0:
            self._pending[conversation_id] = remaining
        else:
            self._pending.pop(conversation_id, None)

    def is_busy(self, conversation_id: str) -> bool:
        if self._pending.get(conversation_id):
            return True
        lock = self._locks.get(conversation_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def session(self, conversation_id: str) -> AsyncIterator[ConversationHistory]:
        """
        Hold the critical section for one conversation.

        The lock stays held across every await inside the block, including
        model calls and tool executions.
        """
        lock = self._lock_for(conversation_id)
        async with lock:
            history = self.get_or_create(conversation_id)
            history.touch()
            try:
                yield history
            finally:
                history.touch()

    def evict_idle(self, max_idle_seconds: float) -> List[str]:
        """
        Drop conversations that have been idle longer than ``max_idle_seconds``.

        Conversations inside a session or with reserved work are never
        evicted.

        Returns:
            Ids of the evicted conversations
        """
        now = time.monotonic()
        evicted = []
        for conversation_id, history in list(self._histories.items()):
            if self.is_busy(conversation_id):
                continue
            if now - history.last_activity >= max_idle_seconds:
                del self._histories[conversation_id]
                self._locks.pop(conversation_id, None)
                evicted.append(conversation_id)

        if evicted:
            logger.info("Evicted %d idle conversation(s)", len(evicted))
        return evicted

    def conversation_ids(self) -> List[str]:
        return list(self._histories)

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._histories

    def __len__(self) -> int:
        return len(self._histories)
