"""In-memory relay session store with TTL expiry."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable

from .errors import SessionExpired, SessionNotFound
from .tokens import now_ms

log = logging.getLogger(__name__)


@dataclass
class Message:
    id: str
    created_at: int
    payload: Any

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "createdAt": self.created_at, "payload": self.payload}


@dataclass
class Session:
    session_id: str
    read_token: str
    write_token: str
    expires_at_ms: int
    max_messages: int
    queue: deque[Message] = field(init=False)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        # maxlen makes append() drop from the left once the bound is reached.
        self.queue = deque(maxlen=self.max_messages)

    def __len__(self) -> int:
        return len(self.queue)

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at_ms

    def append(self, message: Message) -> int:
        """Queue a message, evicting the oldest ones past the bound. Returns the new length."""
        with self.lock:
            self.queue.append(message)
            return len(self.queue)

    def drain(self, limit: int) -> list[Message]:
        """Remove and return up to ``limit`` messages, oldest first."""
        with self.lock:
            take = min(limit, len(self.queue))
            return [self.queue.popleft() for _ in range(take)]


class SessionStore:
    """Session id -> Session map shared by request handlers and the sweeper.

    Single dict operations are atomic, so the map has no lock of its own;
    queue mutation goes through the per-session lock.
    """

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._sessions: dict[str, Session] = {}
        self.clock = clock

    def __len__(self) -> int:
        return len(self._sessions)

    def put(self, session: Session) -> None:
        self._sessions[session.session_id] = session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def resolve(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound("Session not found.")
        if session.is_expired(self.clock()):
            self.delete(session_id)
            log.info("Session %s expired on access.", session_id)
            raise SessionExpired("Session expired.")
        return session

    def active_count(self) -> int:
        now = self.clock()
        return sum(1 for s in self._sessions.copy().values() if not s.is_expired(now))

    def evict_expired(self) -> int:
        now = self.clock()
        expired = [sid for sid, s in self._sessions.copy().items() if s.is_expired(now)]
        for sid in expired:
            self.delete(sid)
        return len(expired)


async def session_sweeper(store: SessionStore, interval_s: float) -> None:
    """Background coroutine: evict expired sessions every ``interval_s`` seconds."""
    while True:
        await asyncio.sleep(interval_s)
        try:
            evicted = await asyncio.to_thread(store.evict_expired)
        except Exception:
            log.exception("Session sweep failed")
            continue
        if evicted:
            log.info("Evicted %d expired session(s).", evicted)
