"""FastAPI application entrypoint for link-relay."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import CREATE_BODY_LIMIT, Settings, settings
from .cors import CorsPolicy, cors_middleware
from .errors import PayloadTooLarge, RelayError
from .relay import RelayService
from .session import SessionStore, session_sweeper
from .static import resolve_static_root, static_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg: Settings = app.state.settings
    log.info("Starting link-relay on %s:%d…", cfg.host, cfg.port)
    log.info("Allowed origins: %s", ", ".join(cfg.origin_list))
    log.info("Static root: %s", cfg.static_root or "(disabled)")
    sweeper = asyncio.create_task(session_sweeper(app.state.store, cfg.sweep_interval_seconds))
    log.info("link-relay ready.")
    yield
    log.info("Shutting down…")
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    log.info("Shutdown complete.")


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------

def get_relay(request: Request) -> RelayService:
    return request.app.state.relay


async def read_body_limited(request: Request, limit: int, reported_max: int) -> bytes:
    """Read the request body, raising PayloadTooLarge as soon as it exceeds ``limit`` bytes."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge(reported_max)
    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise PayloadTooLarge(reported_max)
        chunks.append(chunk)
    return b"".join(chunks)


def parse_json_object(body: bytes) -> dict[str, Any]:
    """Decode a JSON object body; anything malformed reads as an empty object."""
    if not body:
        return {}
    try:
        data = json.loads(body)
    except (ValueError, RecursionError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

router = APIRouter()


@router.post("/create", status_code=201)
async def create_session(request: Request, relay: RelayService = Depends(get_relay)):
    try:
        body = parse_json_object(await read_body_limited(request, CREATE_BODY_LIMIT, CREATE_BODY_LIMIT))
    except PayloadTooLarge:
        body = {}
    created = relay.create_session(body.get("ttlSeconds"))
    return created.to_dict()


@router.post("/send", status_code=202)
async def send_message(request: Request, relay: RelayService = Depends(get_relay)):
    cfg = relay.settings
    body = parse_json_object(await read_body_limited(request, cfg.send_body_limit, cfg.max_payload_bytes))
    queued = relay.send(body.get("sessionId"), body.get("writeToken"), body.get("payload"))
    return {"ok": True, "queued": queued}


@router.get("/receive")
async def receive_messages(
    sid: str = "",
    rt: str = "",
    limit: str | None = None,
    relay: RelayService = Depends(get_relay),
):
    messages = relay.receive(sid, rt, limit)
    return {"messages": [m.to_dict() for m in messages]}


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

def create_app(cfg: Settings | None = None) -> FastAPI:
    cfg = cfg or settings
    app = FastAPI(title="link-relay", version="0.1.0", lifespan=lifespan)

    store = SessionStore()
    app.state.settings = cfg
    app.state.store = store
    app.state.relay = RelayService(store, cfg)

    app.middleware("http")(cors_middleware(CorsPolicy.from_settings(cfg), cfg.api_prefix))

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.get("/health")
    async def health():
        return {"status": "ok", "active_sessions": store.active_count()}

    app.include_router(router, prefix=cfg.api_prefix)

    if cfg.static_root:
        app.include_router(static_router(resolve_static_root(cfg.static_root)))

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entrypoint
# ---------------------------------------------------------------------------

def run() -> None:
    parser = argparse.ArgumentParser(description="Ephemeral token-gated message relay.")
    parser.add_argument("--static", default=settings.static_root, help="Path to static files")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    args = parser.parse_args()

    cfg = settings.model_copy(update={"static_root": args.static, "host": args.host, "port": args.port})
    uvicorn.run(
        create_app(cfg),
        host=cfg.host,
        port=cfg.port,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    run()
