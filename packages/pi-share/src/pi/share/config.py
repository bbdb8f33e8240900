"""Configuration for the share console and endpoint validation."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

MIN_PORT = 1
MAX_PORT = 65535


class InvalidEndpointError(ValueError):
    """Raised when a hostname/port pair cannot be used to start a server."""


def _default_db_path() -> str:
    return os.environ.get("PI_SHARE_DB", str(Path.home() / ".pi" / "share.db"))


@dataclass
class Config:
    """Console configuration."""

    host: str = "127.0.0.1"
    port: int = 8765
    db_path: str = field(default_factory=_default_db_path)
    static_dir: str = field(default_factory=lambda: str(Path(__file__).parent / "static"))
    log_capacity: int = 200


def parse_port(value: Any) -> int | None:
    """Return the port number if *value* is a valid TCP port, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        port = value
    elif isinstance(value, str):
        try:
            port = int(value.strip())
        except ValueError:
            return None
    else:
        return None
    if port < MIN_PORT or port > MAX_PORT:
        return None
    return port


def validate_endpoint(host: str | None, port: Any) -> tuple[str, int]:
    hostname = (host or "").strip()
    parsed = parse_port(port)
    if not hostname or parsed is None:
        raise InvalidEndpointError(f"Invalid hostname or port: {host!r}:{port!r}")
    return hostname, parsed
