"""Relay error kinds, each mapped to a fixed HTTP status."""

from __future__ import annotations


class RelayError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(RelayError):
    status_code = 400


class Unauthorized(RelayError):
    status_code = 401


class OriginNotAllowed(RelayError):
    status_code = 403


class SessionNotFound(RelayError):
    status_code = 404


class SessionExpired(RelayError):
    status_code = 410


class PayloadTooLarge(RelayError):
    status_code = 413

    def __init__(self, max_bytes: int) -> None:
        super().__init__(f"Payload too large (max {max_bytes} bytes).")
        self.max_bytes = max_bytes
