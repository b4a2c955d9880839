"""Opaque random identifiers for sessions, credentials and messages."""

from __future__ import annotations

import hmac
import logging
import secrets
import time

log = logging.getLogger(__name__)

SESSION_ID_BYTES = 12
TOKEN_BYTES = 24
MESSAGE_ID_BYTES = 9


def random_token(nbytes: int) -> str:
    """Return ``nbytes`` of CSPRNG output as unpadded URL-safe base64.

    If the OS randomness source fails the error is logged and an empty
    string is returned instead of failing the request. Callers reject empty
    credentials on input, so an empty stored token can never be matched.
    """
    try:
        return secrets.token_urlsafe(nbytes)
    except Exception:
        log.exception("Error generating random token")
        return ""


def tokens_match(supplied: str, expected: str) -> bool:
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def now_ms() -> int:
    return time.time_ns() // 1_000_000
