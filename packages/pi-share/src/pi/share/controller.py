"""State holder: preferences, server lifecycle, explorer, log and bandwidth."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import uvicorn

from pi.share.bandwidth import BandwidthMeter
from pi.share.config import InvalidEndpointError, validate_endpoint
from pi.share.explorer import (
    DirectoryNotEmptyError,
    Entry,
    delete_entry,
    download_url,
    list_directory,
    read_text,
    resolve_inside,
)
from pi.share.logbuffer import DEFAULT_CAPACITY, LogBuffer
from pi.share.server.app import ServeSettings, create_share_app
from pi.share.server.pages import load_not_found_page
from pi.share.storage.preferences import Preferences, PreferenceStore

logger = logging.getLogger(__name__)

RED = "red"
ORANGE = "orange"
GREEN = "green"

STOPPED = "Server is stopped."
NOT_FOUND_PAGE_SUFFIXES = (".html", ".htm")
STARTUP_POLL_INTERVAL = 0.01


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signal handling to its host."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        pass


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind a listening TCP socket. Raises OSError when the address is unusable."""
    infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE)
    family, socktype, proto, _, sockaddr = infos[0]
    sock = socket.socket(family, socktype, proto)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(sockaddr)
    except OSError:
        sock.close()
        raise
    return sock


def _url_host(address: str) -> str:
    return f"[{address}]" if ":" in address else address


class ShareController:
    """Owns everything the console shows and acts on."""

    def __init__(
        self,
        store: PreferenceStore | None = None,
        log_capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        self._store = store
        self.prefs = Preferences()
        self.logs = LogBuffer(log_capacity)
        self.meter = BandwidthMeter()
        self.entries: list[Entry] = []
        self.status = STOPPED
        self.status_color = RED
        self.server_address: str | None = None
        self.server_port: int | None = None
        self._server: _EmbeddedServer | None = None
        self._serve_task: asyncio.Task[Any] | None = None
        self._ticker_task: asyncio.Task[Any] | None = None

    # --- Log and status ---

    def log(self, message: str) -> None:
        self.logs.add(message)
        logger.info(message)

    def _set_status(self, message: str, color: str) -> None:
        self.status = message
        self.status_color = color

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def server_url(self) -> str | None:
        if self.server_address is None or self.server_port is None:
            return None
        return f"http://{_url_host(self.server_address)}:{self.server_port}/"

    def snapshot(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "statusColor": self.status_color,
            "running": self.running,
            "serverUrl": self.server_url,
            "bandwidth": self.meter.current,
            "active": self.meter.active,
            "preferences": self.prefs.to_dict(),
        }

    # --- Preferences ---

    async def load_preferences(self) -> Preferences:
        if self._store is None:
            return self.prefs
        self.log("Loading saved preferences...")
        self.prefs = await self._store.load()
        if self.prefs.selected_directory:
            self.log(f"Loaded saved folder: {self.prefs.selected_directory}")
            self.refresh_listing()
        if self.prefs.not_found_page:
            self.log(f"Loaded saved 404 page: {self.prefs.not_found_page}")
        return self.prefs

    async def _save(self) -> None:
        if self._store is not None:
            await self._store.save(self.prefs)

    async def set_endpoint(self, hostname: str | None = None, port: Any = None) -> None:
        if hostname is not None:
            self.prefs.hostname = hostname.strip()
            self.log(f"Saved preference: hostname = {self.prefs.hostname}")
        if port is not None:
            self.prefs.port = str(port).strip()
            self.log(f"Saved preference: port = {self.prefs.port}")
        await self._save()

    async def select_directory(self, path: str | None) -> None:
        if not path:
            self.prefs.selected_directory = None
            self.log("Cleared selected folder.")
        else:
            directory = Path(path).expanduser()
            if not directory.is_dir():
                self.log(f"Error: Selected directory does not exist: {directory}")
                raise FileNotFoundError(f"Directory not found: {directory}")
            self.prefs.selected_directory = str(directory.resolve())
            self.log(f"Selected folder: {self.prefs.selected_directory}")
        await self._save()
        self.refresh_listing()

    async def select_not_found_page(self, path: str | None) -> None:
        if not path:
            self.prefs.not_found_page = None
            self.log("Cleared custom 404 page.")
            await self._save()
            return
        page = Path(path).expanduser()
        if page.suffix.lower() not in NOT_FOUND_PAGE_SUFFIXES:
            raise ValueError(f"Custom 404 page must be an HTML file: {page.name}")
        if load_not_found_page(str(page)) is None:
            self.log(f"Custom 404 HTML file could not be read: {page}")
            raise FileNotFoundError(f"Cannot read 404 page: {page}")
        self.prefs.not_found_page = str(page.resolve())
        self.log(f"Selected custom 404 file: {self.prefs.not_found_page}")
        await self._save()

    async def set_dark_mode(self, enabled: bool) -> None:
        self.prefs.dark_mode = bool(enabled)
        self.log(f"Theme toggled to {'Dark' if enabled else 'Light'} Mode.")
        await self._save()

    # --- Server lifecycle ---

    async def start(self) -> bool:
        """Start serving with the current preferences. Returns True on success."""
        await self.stop()
        self.logs.clear()
        self.log("Attempting to start server...")

        try:
            host, port = validate_endpoint(self.prefs.hostname, self.prefs.port)
        except InvalidEndpointError:
            self.log("Invalid hostname or port provided.")
            self._set_status("Invalid hostname or port.", ORANGE)
            return False

        not_found_html = None
        if self.prefs.not_found_page:
            not_found_html = load_not_found_page(self.prefs.not_found_page)
            if not_found_html is None:
                self.log(f"Custom 404 HTML file could not be read: {self.prefs.not_found_page}")
            else:
                self.log("Successfully read custom 404 HTML content.")

        root = self.prefs.selected_directory or None
        if root is not None and not Path(root).is_dir():
            self.log(f"Error: Selected directory does not exist: {root}")
            self._set_status("Error: Selected directory does not exist.", RED)
            return False

        try:
            sock = bind_socket(host, port)
        except OSError as e:
            reason = e.strerror or str(e)
            self.log(f"Socket Error: {reason} (Is the address already in use?)")
            self._set_status(f"Error: {reason} (Is the address already in use?)", RED)
            return False

        app = create_share_app(
            ServeSettings(root_dir=root, not_found_html=not_found_html),
            meter=self.meter,
            log=self.log,
            on_upload=lambda _path: self.refresh_listing(),
        )
        config = uvicorn.Config(
            app, log_config=None, access_log=False, lifespan="off", timeout_graceful_shutdown=1
        )
        server = _EmbeddedServer(config)
        task = asyncio.create_task(server.serve(sockets=[sock]))
        while not server.started and not task.done():
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        if not server.started:
            sock.close()
            error = task.exception() if not task.cancelled() else None
            self.log(f"Failed to start server: {error}")
            self._set_status(f"Failed to start server: {error}", RED)
            return False

        self._server = server
        self._serve_task = task
        self.server_address, self.server_port = sock.getsockname()[:2]
        self.meter.reset()
        self._ticker_task = asyncio.create_task(self.meter.run())

        if root is not None:
            self._set_status(f"Server running on {self.server_url} serving files from: {root}", GREEN)
        else:
            self._set_status(f"Server running on {self.server_url} (No custom folder selected)", GREEN)
        self.log(f"Server successfully started on {self.server_url}")
        self.refresh_listing()
        self.log(f"Upload form available at {self.server_url}upload.html")
        return True

    async def stop(self) -> None:
        if self._server is None:
            return
        self.log("Attempting to stop server...")
        server, task = self._server, self._serve_task
        self._server = None
        self._serve_task = None
        if self._ticker_task is not None:
            self._ticker_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._ticker_task
            self._ticker_task = None
        self.meter.reset()
        self.server_address = None
        self.server_port = None
        self.entries = []

        server.should_exit = True
        server.force_exit = True
        try:
            if task is not None:
                await task
        except Exception as e:
            self.log(f"Error stopping server: {e}")
            self._set_status(f"Error stopping server: {e}", RED)
            return
        self._set_status("Server stopped.", RED)
        self.log("Server successfully stopped.")

    # --- Explorer ---

    def _root(self) -> str:
        if not self.prefs.selected_directory:
            raise FileNotFoundError("No folder selected.")
        return self.prefs.selected_directory

    def refresh_listing(self) -> list[Entry]:
        root = self.prefs.selected_directory
        if not root:
            self.entries = []
            self.log("No folder selected for file explorer. Clear file explorer.")
            return self.entries
        self.log(f"Scanning directory for file explorer: {root}")
        try:
            self.entries = list_directory(root)
        except OSError as e:
            self.log(f"Error listing directory contents for file explorer: {e}")
            self.entries = []
            return self.entries
        self.log(f"Found {len(self.entries)} items in {root}")
        return self.entries

    def list_files(self, relative: str = "") -> list[Entry]:
        if not relative:
            return self.refresh_listing()
        directory = resolve_inside(self._root(), relative)
        try:
            return list_directory(directory)
        except OSError as e:
            self.log(f"Error listing {directory}: {e}")
            raise

    def delete(self, relative: str) -> None:
        root = self._root()
        target = resolve_inside(root, relative)
        if target == Path(root).resolve():
            raise ValueError("Refusing to delete the shared folder itself.")
        self.log(f"Attempting to delete: {target}")
        try:
            was_dir = delete_entry(target)
        except DirectoryNotEmptyError:
            self.log("Deletion failed: Directory is not empty. Cannot delete non-empty directories.")
            raise
        except OSError as e:
            self.log(f"Error deleting {target}: {e}")
            raise
        kind = "empty directory" if was_dir else "file"
        self.log(f"Successfully deleted {kind}: {target}")
        self.refresh_listing()

    def view(self, relative: str) -> str:
        target = resolve_inside(self._root(), relative)
        self.log(f"Attempting to view file: {target}")
        try:
            content = read_text(target)
        except (OSError, ValueError) as e:
            self.log(f"Error reading file for viewing: {e}")
            raise
        self.log(f"Successfully read content of {target.name}")
        return content

    def download_url(self, relative: str) -> str:
        url = self.server_url
        if url is None or not self.prefs.selected_directory:
            self.log("Download failed: Server not running or no directory selected.")
            raise RuntimeError("Server not active or directory not selected.")
        root = Path(self.prefs.selected_directory).resolve()
        target = resolve_inside(root, relative)
        if not target.is_file():
            raise FileNotFoundError(f"File not found: {relative}")
        link = download_url(url, root, target)
        self.log(f"Download link: {link}")
        return link
