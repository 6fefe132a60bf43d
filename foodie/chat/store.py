from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from .config import DEFAULT_CHAT_CONFIG
from .models import ConversationState
from .summary import welcome_message

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    state: ConversationState
    last_access: float
    lock: threading.Lock = field(default_factory=threading.Lock)


class ConversationStore:
    """In-memory conversation states keyed by conversation id.

    Bounded like ``TTLCache``: conversations idle for longer than ``idle_ttl``
    seconds expire, and the least recently used ones are evicted once
    ``max_conversations`` is reached. ``lock(conversation_id)`` serialises
    turns for one conversation; different conversations proceed independently.
    """

    def __init__(
        self,
        max_conversations: int = DEFAULT_CHAT_CONFIG.max_conversations,
        idle_ttl: float = DEFAULT_CHAT_CONFIG.conversation_ttl,
        clock=time.time,
    ) -> None:
        self.max_conversations = max_conversations
        self.idle_ttl = idle_ttl
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._guard = threading.Lock()

    def _evict(self, now: float) -> None:
        expired = [cid for cid, e in self._entries.items() if now - e.last_access > self.idle_ttl]
        for cid in expired:
            del self._entries[cid]
        while len(self._entries) >= self.max_conversations:
            cid, _ = self._entries.popitem(last=False)
            expired.append(cid)
        if expired:
            logger.info("Evicted %d conversations", len(expired))

    def create(self) -> ConversationState:
        state = ConversationState(messages=[welcome_message()])
        now = self._clock()
        with self._guard:
            self._evict(now)
            self._entries[state.conversation_id] = _Entry(state=state, last_access=now)
        return state

    def get(self, conversation_id: str | None) -> ConversationState | None:
        if not conversation_id:
            return None
        now = self._clock()
        with self._guard:
            entry = self._entries.get(conversation_id)
            if entry is None:
                return None
            if now - entry.last_access > self.idle_ttl:
                del self._entries[conversation_id]
                return None
            entry.last_access = now
            self._entries.move_to_end(conversation_id)
            return entry.state

    def get_or_create(self, conversation_id: str | None) -> ConversationState:
        return self.get(conversation_id) or self.create()

    def reset(self, conversation_id: str | None) -> ConversationState:
        if conversation_id:
            with self._guard:
                self._entries.pop(conversation_id, None)
        return self.create()

    @contextmanager
    def lock(self, conversation_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(conversation_id)
            lock = entry.lock if entry else threading.Lock()
        with lock:
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
