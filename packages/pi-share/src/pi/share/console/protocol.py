"""WebSocket message protocol for the console."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# --- Client -> Server messages ---


@dataclass
class StartServerMessage:
    type: str = "start_server"


@dataclass
class StopServerMessage:
    type: str = "stop_server"


@dataclass
class RefreshFilesMessage:
    type: str = "refresh_files"
    path: str = ""


def parse_client_message(data: dict[str, Any]) -> Any:
    """Parse a raw dict into a typed client message."""
    msg_type = data.get("type", "")
    match msg_type:
        case "start_server":
            return StartServerMessage()
        case "stop_server":
            return StopServerMessage()
        case "refresh_files":
            return RefreshFilesMessage(path=data.get("path", "") or "")
        case _:
            return None


# --- Server -> Client message builders ---


def snapshot_message(state: dict[str, Any], logs: list[str], files: list[dict[str, Any]]) -> dict[str, Any]:
    return {"type": "snapshot", **state, "logs": logs, "files": files}


def status_message(state: dict[str, Any]) -> dict[str, Any]:
    return {"type": "status", **state}


def log_message(line: str) -> dict[str, Any]:
    return {"type": "log", "line": line}


def files_message(path: str, files: list[dict[str, Any]]) -> dict[str, Any]:
    return {"type": "files", "path": path, "files": files}


def error_message(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}
