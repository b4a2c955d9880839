"""Optional static asset serving with an index.html root."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse, JSONResponse, Response

log = logging.getLogger(__name__)


def resolve_static_root(raw: str) -> Path:
    root = Path(raw).expanduser().resolve()
    if not root.is_dir():
        raise RuntimeError(f"Static root {raw!r} is not a directory")
    return root


def static_router(root: Path) -> APIRouter:
    """Serve files under ``root``; ``/`` maps to index.html, everything else missing is a JSON 404."""
    router = APIRouter()

    def _not_found() -> JSONResponse:
        return JSONResponse({"error": "Not found."}, status_code=404)

    @router.get("/", include_in_schema=False)
    async def index() -> Response:
        index_file = root / "index.html"
        if not index_file.is_file():
            return _not_found()
        return FileResponse(index_file)

    @router.get("/{path:path}", include_in_schema=False)
    async def asset(path: str) -> Response:
        target = (root / path).resolve()
        if not target.is_relative_to(root) or not target.is_file():
            return _not_found()
        return FileResponse(target)

    log.info("Serving static files from %s", root)
    return router
