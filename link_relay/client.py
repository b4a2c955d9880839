"""Async HTTP client for the relay API.

The car-side screen creates a session and polls ``receive`` with the read
token; the phone side gets the write token out of band (usually a QR code)
and calls ``send``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx


class RelayClientError(RuntimeError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message

    @property
    def session_gone(self) -> bool:
        """True when the session is unknown or expired and a new one is needed."""
        return self.status_code in (404, 410)


@dataclass
class RelayCredentials:
    session_id: str
    read_token: str
    write_token: str
    expires_at: str
    ttl_seconds: int | None = None

    def expires_at_s(self) -> float | None:
        try:
            return datetime.fromisoformat(self.expires_at.replace("Z", "+00:00")).timestamp()
        except ValueError:
            return None

    def is_usable(self, now: float | None = None, margin_s: float = 15.0) -> bool:
        """False once the session is within ``margin_s`` of expiring.

        An unparsable expiry is treated as usable; the server will answer 410
        when it really is gone.
        """
        if not (self.session_id and self.read_token and self.write_token):
            return False
        expires = self.expires_at_s()
        if expires is None:
            return True
        now = time.time() if now is None else now
        return now < expires - margin_s


class RelayClient:
    def __init__(
        self,
        *,
        base_url: str,
        api_prefix: str = "/api/relay/session",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_prefix = "/" + api_prefix.strip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout_s, transport=transport)

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def _url(self, action: str) -> str:
        return f"{self.api_prefix}/{action}"

    @staticmethod
    def _check(resp: httpx.Response) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {}
        if resp.status_code >= 400:
            raise RelayClientError(resp.status_code, str(data.get("error") or resp.text[:300]))
        return data

    async def create_session(self, ttl_seconds: float | None = 180) -> RelayCredentials:
        body = {} if ttl_seconds is None else {"ttlSeconds": ttl_seconds}
        data = self._check(await self._client.post(self._url("create"), json=body))

        creds = RelayCredentials(
            session_id=str(data.get("sessionId") or "").strip(),
            read_token=str(data.get("readToken") or "").strip(),
            write_token=str(data.get("writeToken") or "").strip(),
            expires_at=str(data.get("expiresAt") or "").strip(),
            ttl_seconds=data.get("ttlSeconds"),
        )
        if not (creds.session_id and creds.read_token and creds.write_token):
            raise RelayClientError(500, "Relay session response is missing required fields.")
        return creds

    async def send(self, creds: RelayCredentials, payload: Any) -> int:
        body = {"sessionId": creds.session_id, "writeToken": creds.write_token, "payload": payload}
        data = self._check(await self._client.post(self._url("send"), json=body))
        return int(data.get("queued", 0))

    async def receive(self, creds: RelayCredentials, limit: int | None = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"sid": creds.session_id, "rt": creds.read_token}
        if limit is not None:
            params["limit"] = limit
        data = self._check(
            await self._client.get(self._url("receive"), params=params, headers={"Cache-Control": "no-store"})
        )
        messages = data.get("messages")
        return messages if isinstance(messages, list) else []
