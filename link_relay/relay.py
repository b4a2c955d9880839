"""Relay operations: create a session, send a message, receive messages."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .config import MAX_RECEIVE_LIMIT, MIN_SESSION_TTL_SECONDS, Settings
from .errors import BadRequest, PayloadTooLarge, Unauthorized
from .session import Message, Session, SessionStore
from .tokens import MESSAGE_ID_BYTES, SESSION_ID_BYTES, TOKEN_BYTES, random_token, tokens_match

log = logging.getLogger(__name__)


def format_expiry(expires_at_ms: int) -> str:
    """RFC 3339 UTC timestamp with millisecond precision, e.g. ``2024-01-01T00:03:00.000Z``."""
    dt = datetime.fromtimestamp(expires_at_ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


@dataclass
class CreatedSession:
    session_id: str
    read_token: str
    write_token: str
    expires_at_ms: int
    ttl_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "readToken": self.read_token,
            "writeToken": self.write_token,
            "expiresAt": format_expiry(self.expires_at_ms),
            "ttlSeconds": self.ttl_seconds,
        }


class RelayService:
    def __init__(self, store: SessionStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings

    # ------------------------------------------------------------------
    # Input normalisation (malformed values fall back to defaults)
    # ------------------------------------------------------------------

    def clamp_ttl(self, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return self.settings.default_session_ttl_seconds
        if isinstance(value, float) and not math.isfinite(value):
            return self.settings.default_session_ttl_seconds
        ttl = max(int(value), MIN_SESSION_TTL_SECONDS)
        return min(ttl, self.settings.max_session_ttl_seconds)

    @staticmethod
    def clamp_limit(value: Any) -> int:
        if value is None or isinstance(value, bool):
            return MAX_RECEIVE_LIMIT
        try:
            limit = int(value)
        except (TypeError, ValueError):
            return MAX_RECEIVE_LIMIT
        return min(max(limit, 1), MAX_RECEIVE_LIMIT)

    def _encoded_size(self, payload: Any) -> int:
        try:
            encoded = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError, RecursionError) as exc:
            raise PayloadTooLarge(self.settings.max_payload_bytes) from exc
        return len(encoded.encode("utf-8"))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_session(self, ttl_seconds: Any = None) -> CreatedSession:
        ttl = self.clamp_ttl(ttl_seconds)
        expires_at_ms = self.store.clock() + ttl * 1000
        session = Session(
            session_id=random_token(SESSION_ID_BYTES),
            read_token=random_token(TOKEN_BYTES),
            write_token=random_token(TOKEN_BYTES),
            expires_at_ms=expires_at_ms,
            max_messages=self.settings.max_queue_messages,
        )
        self.store.put(session)
        log.info("Created session %s (ttl=%ds).", session.session_id, ttl)
        return CreatedSession(
            session_id=session.session_id,
            read_token=session.read_token,
            write_token=session.write_token,
            expires_at_ms=expires_at_ms,
            ttl_seconds=ttl,
        )

    def send(self, session_id: Any, write_token: Any, payload: Any) -> int:
        """Queue ``payload`` on the session and return the queue length afterwards."""
        session_id = _as_text(session_id)
        write_token = _as_text(write_token)
        if not session_id or not write_token:
            raise BadRequest("sessionId and writeToken are required.")

        session = self.store.resolve(session_id)
        if not tokens_match(write_token, session.write_token):
            raise Unauthorized("Invalid write token.")

        if self._encoded_size(payload) > self.settings.max_payload_bytes:
            raise PayloadTooLarge(self.settings.max_payload_bytes)

        message = Message(
            id=random_token(MESSAGE_ID_BYTES),
            created_at=self.store.clock(),
            payload=payload,
        )
        return session.append(message)

    def receive(self, session_id: Any, read_token: Any, limit: Any = None) -> list[Message]:
        """Destructively read up to ``limit`` queued messages, oldest first."""
        session_id = _as_text(session_id)
        read_token = _as_text(read_token)
        if not session_id or not read_token:
            raise BadRequest("sid and rt are required.")

        session = self.store.resolve(session_id)
        if not tokens_match(read_token, session.read_token):
            raise Unauthorized("Invalid read token.")

        return session.drain(self.clamp_limit(limit))
