import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Dict, Optional

from app.core.config import settings
from app.core.errors import SessionNotFound
from app.models.conversation import Conversation

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    conversation: Conversation
    last_access: float
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionStore:
    """
    Owns every live Conversation, keyed by session id. Construct one per
    process and pass it around. Turns for one session are serialized through
    that session's lock; different sessions never share a lock.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = settings.SESSION_TTL_MINUTES * 60 if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._store: Dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._store

    def create(self, conversation: Conversation) -> Conversation:
        self.evict_expired()
        self._store[conversation.session_id] = _Entry(conversation=conversation, last_access=self._clock())
        return conversation

    def get(self, session_id: str) -> Conversation:
        entry = self._store.get(session_id)
        if entry is None:
            raise SessionNotFound(session_id)
        return entry.conversation

    def end(self, session_id: str) -> bool:
        return self._store.pop(session_id, None) is not None

    def evict_expired(self) -> int:
        if self.ttl_seconds <= 0:
            return 0
        cutoff = self._clock() - self.ttl_seconds
        expired = [
            sid for sid, entry in self._store.items()
            if entry.last_access < cutoff and not entry.lock.locked()
        ]
        for sid in expired:
            del self._store[sid]
        if expired:
            logger.info("evicted %d idle session(s)", len(expired))
        return len(expired)

    @asynccontextmanager
    async def checkout(self, session_id: str) -> AsyncIterator[Conversation]:
        """Exclusive access to one conversation for the duration of a turn."""
        self.evict_expired()
        entry = self._store.get(session_id)
        if entry is None:
            raise SessionNotFound(session_id)
        async with entry.lock:
            # ended while we were queued behind another turn
            if self._store.get(session_id) is not entry:
                raise SessionNotFound(session_id)
            entry.last_access = self._clock()
            try:
                yield entry.conversation
            finally:
                entry.last_access = self._clock()
