"""Upload form and multipart upload endpoint."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path, PureWindowsPath
from typing import Any

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import HTMLResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from pi.share.server.pages import UPLOAD_FORM_HTML

UPLOAD_FIELD = "fileToUpload"
CHUNK_SIZE = 1024 * 1024


def safe_filename(filename: str | None) -> str:
    """Strip any directory part a client put into the upload's filename."""
    if not filename:
        return ""
    name = PureWindowsPath(filename).name
    if name in (".", ".."):
        return ""
    return name


async def save_upload(file: UploadFile, target: Path) -> None:
    """Stream an upload to disk off the event loop.

    A partially written target is removed when reading or writing fails.
    """
    out = await run_in_threadpool(target.open, "wb")
    try:
        try:
            while chunk := await file.read(CHUNK_SIZE):
                await run_in_threadpool(out.write, chunk)
        finally:
            await run_in_threadpool(out.close)
    except OSError:
        await run_in_threadpool(target.unlink, missing_ok=True)
        raise


def create_upload_router(
    root_dir: str | None,
    log: Callable[[str], Any],
    on_upload: Callable[[Path], Any] | None = None,
) -> APIRouter:
    router = APIRouter(tags=["upload"])

    @router.get("/upload.html", response_class=HTMLResponse)
    async def upload_form() -> HTMLResponse:
        log("Serving upload form for GET /upload.html")
        return HTMLResponse(UPLOAD_FORM_HTML)

    if root_dir is None:

        @router.get("/upload", response_class=HTMLResponse)
        async def upload_form_fallback() -> HTMLResponse:
            log("Serving upload form (no folder selected) for GET /upload")
            return HTMLResponse(UPLOAD_FORM_HTML)

    @router.post("/upload")
    async def upload_file(
        file: UploadFile | None = File(None, alias=UPLOAD_FIELD),
    ) -> PlainTextResponse:
        if root_dir is None:
            log("UPLOAD: No directory selected for upload.")
            return PlainTextResponse(
                "Error: No directory selected for file uploads.", status_code=400
            )

        name = safe_filename(file.filename if file is not None else None)
        if file is None or not name:
            log(f'UPLOAD: No file found with name "{UPLOAD_FIELD}" in multipart request.')
            return PlainTextResponse(
                f'No file found in the request (expected field "{UPLOAD_FIELD}").',
                status_code=400,
            )

        target = Path(root_dir) / name
        try:
            await save_upload(file, target)
        except OSError as e:
            log(f"UPLOAD: Error processing upload: {e}")
            return PlainTextResponse(f"Failed to upload file: {e}", status_code=500)
        finally:
            await file.close()

        log(f"UPLOAD: Successfully uploaded file: {target}")
        if on_upload is not None:
            on_upload(target)
        return PlainTextResponse(f"File uploaded successfully! File saved to: {name}")

    return router
