"""Origin allow-list enforcement for the relay API."""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from .config import Settings
from .errors import OriginNotAllowed

_CORS_HEADERS = {
    "Vary": "Origin",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class CorsPolicy:
    def __init__(self, origins: list[str]) -> None:
        self.origins = list(origins)
        self.allow_any = "*" in self.origins

    @classmethod
    def from_settings(cls, settings: Settings) -> "CorsPolicy":
        return cls(settings.origin_list)

    def allowed_origin_for(self, origin: str) -> str | None:
        """Value for Access-Control-Allow-Origin, or None when the origin is refused."""
        if self.allow_any:
            return origin or "*"
        if origin and origin in self.origins:
            return origin
        return None

    def rejects(self, origin: str) -> bool:
        return bool(origin) and self.allowed_origin_for(origin) is None


def cors_middleware(policy: CorsPolicy, path_prefix: str):
    """Build an HTTP middleware applying ``policy`` to requests under ``path_prefix``."""

    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        path = request.url.path
        if path != path_prefix and not path.startswith(path_prefix.rstrip("/") + "/"):
            return await call_next(request)

        origin = request.headers.get("origin", "")
        allowed = policy.allowed_origin_for(origin)
        headers = dict(_CORS_HEADERS)
        if allowed is not None:
            headers["Access-Control-Allow-Origin"] = allowed

        if request.method == "OPTIONS":
            return Response(status_code=204, headers=headers)

        if policy.rejects(origin):
            err = OriginNotAllowed("Origin not allowed.")
            return JSONResponse({"error": err.message}, status_code=err.status_code, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response

    return middleware
