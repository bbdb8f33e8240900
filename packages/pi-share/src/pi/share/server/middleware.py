"""ASGI middleware: request logging and byte counting."""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from typing import Any

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pi.share.bandwidth import BandwidthMeter


class RequestLogMiddleware:
    """Logs ``elapsed METHOD [status] /path`` once per HTTP request."""

    def __init__(self, app: ASGIApp, log: Callable[[str], Any]) -> None:
        self.app = app
        self.log = log

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.monotonic()
        status = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        path = scope.get("path", "/")
        if scope.get("query_string"):
            path = f"{path}?{scope['query_string'].decode('latin-1')}"
        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            self.log(f"{scope['method']} {path} failed: {e}")
            raise
        elapsed = time.monotonic() - started
        self.log(f"{elapsed:.3f}s {scope['method']} [{status}] {path}")


class ByteCountingMiddleware:
    """Feeds request and response body sizes into a BandwidthMeter."""

    def __init__(self, app: ASGIApp, meter: BandwidthMeter) -> None:
        self.app = app
        self.meter = meter

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                self.meter.add(len(message.get("body", b"")))
            return message

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.body":
                self.meter.add(len(message.get("body", b"")))
            elif message["type"] == "http.response.pathsend":
                try:
                    self.meter.add(os.path.getsize(message["path"]))
                except OSError:
                    pass
            await send(message)

        await self.app(scope, receive_wrapper, send_wrapper)
