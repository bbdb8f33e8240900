"""FastAPI application for one run of the file server."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import Scope

from pi.share.bandwidth import BandwidthMeter
from pi.share.server.middleware import ByteCountingMiddleware, RequestLogMiddleware
from pi.share.server.pages import API_PLACEHOLDER, PLACEHOLDER_INDEX_HTML
from pi.share.server.upload import create_upload_router

logger = logging.getLogger(__name__)

# Statuses a cascading handler treats as "not mine, try the next one".
FALLTHROUGH_STATUSES = (404, 405)


class SharedFolderFiles(StaticFiles):
    """Static handler that never serves the folder's own 404.html."""

    async def get_response(self, path: str, scope: Scope) -> Response:
        response = await super().get_response(path, scope)
        if response.status_code == 404:
            raise StarletteHTTPException(status_code=404)
        return response


@dataclass
class ServeSettings:
    """What a single server run serves."""

    root_dir: str | None = None
    not_found_html: str | None = None


def _default_log(message: str) -> None:
    logger.info(message)


def create_share_app(
    settings: ServeSettings,
    meter: BandwidthMeter | None = None,
    log: Callable[[str], Any] | None = None,
    on_upload: Callable[[Path], Any] | None = None,
) -> FastAPI:
    """Build the request pipeline: log -> count bytes -> routes -> static -> 404."""
    log = log or _default_log
    meter = meter or BandwidthMeter()
    root_dir = str(Path(settings.root_dir)) if settings.root_dir else None

    app = FastAPI(title="pi-share", docs_url=None, redoc_url=None, openapi_url=None)

    # Starlette wraps in reverse order, so the request logger ends up outermost.
    app.add_middleware(ByteCountingMiddleware, meter=meter)
    app.add_middleware(RequestLogMiddleware, log=log)

    @app.exception_handler(StarletteHTTPException)
    async def not_found_fallback(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code not in FALLTHROUGH_STATUSES:
            return await http_exception_handler(request, exc)
        log(f"Not found: {request.url.path}")
        if settings.not_found_html is not None:
            return HTMLResponse(settings.not_found_html, status_code=404)
        return PlainTextResponse("Not Found", status_code=404)

    app.include_router(create_upload_router(root_dir, log, on_upload))

    if root_dir is None:

        @app.get("/", response_class=HTMLResponse)
        async def placeholder_index() -> HTMLResponse:
            return HTMLResponse(PLACEHOLDER_INDEX_HTML)

        @app.get("/api")
        async def placeholder_api() -> JSONResponse:
            return JSONResponse(API_PLACEHOLDER)

    else:
        # Must be last: the mount matches every remaining path.
        app.mount("/", SharedFolderFiles(directory=root_dir, html=True), name="static")

    return app
