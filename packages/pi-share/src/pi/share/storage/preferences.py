"""Key-value preference storage."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any

from pi.share.storage.database import Database

HOSTNAME = "hostname"
PORT = "port"
SELECTED_DIRECTORY = "selected_directory"
NOT_FOUND_PAGE = "not_found_page"
DARK_MODE = "dark_mode"

DEFAULT_HOSTNAME = "0.0.0.0"
DEFAULT_PORT = "8080"


@dataclass
class Preferences:
    """Everything the console remembers between runs."""

    hostname: str = DEFAULT_HOSTNAME
    port: str = DEFAULT_PORT
    selected_directory: str | None = None
    not_found_page: str | None = None
    dark_mode: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PreferenceStore:
    """String and boolean preferences kept in SQLite."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def _get(self, key: str) -> Any:
        cursor = await self._db.conn.execute(
            "SELECT value_json FROM preferences WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return json.loads(row["value_json"])

    async def _put(self, key: str, value: Any) -> None:
        await self._db.conn.execute(
            """INSERT INTO preferences (key, value_json) VALUES (?, ?)
               ON CONFLICT(key) DO UPDATE SET value_json=excluded.value_json""",
            (key, json.dumps(value)),
        )
        await self._db.conn.commit()

    async def remove(self, key: str) -> None:
        await self._db.conn.execute("DELETE FROM preferences WHERE key = ?", (key,))
        await self._db.conn.commit()

    async def get_string(self, key: str) -> str | None:
        value = await self._get(key)
        return value if isinstance(value, str) else None

    async def set_string(self, key: str, value: str | None) -> None:
        """Store a string. None or an empty string removes the key."""
        if not value:
            await self.remove(key)
        else:
            await self._put(key, value)

    async def get_bool(self, key: str, default: bool = False) -> bool:
        value = await self._get(key)
        return value if isinstance(value, bool) else default

    async def set_bool(self, key: str, value: bool) -> None:
        await self._put(key, bool(value))

    async def clear_all(self) -> None:
        await self._db.conn.execute("DELETE FROM preferences")
        await self._db.conn.commit()

    async def load(self) -> Preferences:
        return Preferences(
            hostname=await self.get_string(HOSTNAME) or DEFAULT_HOSTNAME,
            port=await self.get_string(PORT) or DEFAULT_PORT,
            selected_directory=await self.get_string(SELECTED_DIRECTORY),
            not_found_page=await self.get_string(NOT_FOUND_PAGE),
            dark_mode=await self.get_bool(DARK_MODE),
        )

    async def save(self, prefs: Preferences) -> None:
        await self.set_string(HOSTNAME, prefs.hostname)
        await self.set_string(PORT, prefs.port)
        await self.set_string(SELECTED_DIRECTORY, prefs.selected_directory)
        await self.set_string(NOT_FOUND_PAGE, prefs.not_found_page)
        await self.set_bool(DARK_MODE, prefs.dark_mode)
