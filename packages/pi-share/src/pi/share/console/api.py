"""REST endpoints of the console: server control, preferences and file explorer."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from pi.share.console.ws import serialize_entries
from pi.share.controller import ShareController
from pi.share.explorer import DirectoryNotEmptyError, OutsideRootError


class PreferencesUpdate(BaseModel):
    hostname: str | None = None
    port: str | int | None = None
    selected_directory: str | None = None
    not_found_page: str | None = None
    dark_mode: bool | None = None


def _http_error(exc: Exception) -> HTTPException:
    match exc:
        case OutsideRootError():
            return HTTPException(403, str(exc))
        case DirectoryNotEmptyError():
            return HTTPException(409, str(exc))
        case FileNotFoundError() | NotADirectoryError() | IsADirectoryError():
            return HTTPException(404, str(exc))
        case ValueError() | UnicodeDecodeError():
            return HTTPException(400, str(exc))
        case RuntimeError():
            return HTTPException(409, str(exc))
        case _:
            return HTTPException(500, str(exc))


def create_console_router(controller: ShareController) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["console"])

    @router.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @router.get("/status")
    async def status() -> dict[str, Any]:
        return controller.snapshot()

    @router.post("/server/start")
    async def start_server() -> dict[str, Any]:
        await controller.start()
        return controller.snapshot()

    @router.post("/server/stop")
    async def stop_server() -> dict[str, Any]:
        await controller.stop()
        return controller.snapshot()

    @router.get("/preferences")
    async def get_preferences() -> dict[str, Any]:
        return controller.prefs.to_dict()

    @router.put("/preferences")
    async def update_preferences(update: PreferencesUpdate) -> dict[str, Any]:
        fields = update.model_fields_set
        try:
            if "hostname" in fields or "port" in fields:
                await controller.set_endpoint(update.hostname, update.port)
            if "selected_directory" in fields:
                await controller.select_directory(update.selected_directory)
            if "not_found_page" in fields:
                await controller.select_not_found_page(update.not_found_page)
            if "dark_mode" in fields and update.dark_mode is not None:
                await controller.set_dark_mode(update.dark_mode)
        except (OSError, ValueError) as e:
            raise _http_error(e) from None
        return controller.prefs.to_dict()

    @router.get("/files")
    async def list_files(path: str = "") -> list[dict[str, Any]]:
        try:
            entries = controller.list_files(path)
        except (OSError, ValueError) as e:
            raise _http_error(e) from None
        return serialize_entries(controller, entries)

    @router.get("/files/view")
    async def view_file(path: str) -> dict[str, str]:
        try:
            content = controller.view(path)
        except (OSError, ValueError) as e:
            raise _http_error(e) from None
        return {"path": path, "content": content}

    @router.get("/files/download-url")
    async def file_download_url(path: str) -> dict[str, str]:
        try:
            url = controller.download_url(path)
        except (OSError, ValueError, RuntimeError) as e:
            raise _http_error(e) from None
        return {"path": path, "url": url}

    @router.delete("/files")
    async def delete_file(path: str) -> dict[str, str]:
        try:
            controller.delete(path)
        except (OSError, ValueError) as e:
            raise _http_error(e) from None
        return {"status": "deleted", "path": path}

    @router.get("/logs")
    async def logs() -> list[str]:
        return controller.logs.entries()

    return router
