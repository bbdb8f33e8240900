"""WebSocket endpoint: live log lines, status/bandwidth ticks and server commands."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

from starlette.websockets import WebSocket, WebSocketDisconnect

from pi.share.console.protocol import (
    RefreshFilesMessage,
    StartServerMessage,
    StopServerMessage,
    error_message,
    files_message,
    log_message,
    parse_client_message,
    snapshot_message,
    status_message,
)
from pi.share.controller import ShareController

logger = logging.getLogger(__name__)

STATUS_INTERVAL = 1.0
OUTBOX_SIZE = 256


def serialize_entries(controller: ShareController, entries: list[Any]) -> list[dict[str, Any]]:
    root = controller.prefs.selected_directory
    return [entry.to_dict(root) for entry in entries]


def enqueue(outbox: asyncio.Queue[dict[str, Any]], message: dict[str, Any]) -> bool:
    """Queue a message for a client without blocking the producer.

    A status tick is skipped while the outbox is full; anything else evicts
    the oldest queued message. Returns whether the message was queued.
    """
    if message.get("type") == "status" and outbox.full():
        return False
    while True:
        try:
            outbox.put_nowait(message)
            return True
        except asyncio.QueueFull:
            outbox.get_nowait()


async def websocket_handler(websocket: WebSocket, controller: ShareController) -> None:
    """One handler per connected console client."""
    await websocket.accept()

    outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=OUTBOX_SIZE)
    unsubscribe = controller.logs.subscribe(lambda line: enqueue(outbox, log_message(line)))

    async def pump() -> None:
        while True:
            await websocket.send_json(await outbox.get())

    async def tick() -> None:
        while True:
            await asyncio.sleep(STATUS_INTERVAL)
            enqueue(outbox, status_message(controller.snapshot()))

    await websocket.send_json(
        snapshot_message(
            controller.snapshot(),
            controller.logs.entries(),
            serialize_entries(controller, controller.entries),
        )
    )
    tasks = [asyncio.create_task(pump()), asyncio.create_task(tick())]

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                enqueue(outbox, error_message("Invalid JSON"))
                continue

            msg = parse_client_message(data) if isinstance(data, dict) else None
            if msg is None:
                kind = data.get("type") if isinstance(data, dict) else None
                enqueue(outbox, error_message(f"Unknown message type: {kind}"))
                continue

            match msg:
                case StartServerMessage():
                    await controller.start()
                    enqueue(outbox, status_message(controller.snapshot()))

                case StopServerMessage():
                    await controller.stop()
                    enqueue(outbox, status_message(controller.snapshot()))

                case RefreshFilesMessage():
                    try:
                        entries = controller.list_files(msg.path)
                    except (OSError, ValueError) as e:
                        enqueue(outbox, error_message(str(e)))
                    else:
                        enqueue(
                            outbox,
                            files_message(msg.path, serialize_entries(controller, entries))
                        )

    except WebSocketDisconnect:
        logger.info("Console WebSocket disconnected")
    except Exception:
        logger.exception("Console WebSocket error")
    finally:
        unsubscribe()
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task
