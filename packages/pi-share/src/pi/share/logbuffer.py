"""Rolling, timestamped log shown in the console's log pane."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from datetime import datetime

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 200

LogListener = Callable[[str], None]


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


class LogBuffer:
    """Keeps the most recent ``capacity`` lines, dropping the oldest first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._lines: deque[str] = deque(maxlen=capacity)
        self._listeners: list[LogListener] = []

    @property
    def capacity(self) -> int:
        return self._lines.maxlen or 0

    def __len__(self) -> int:
        return len(self._lines)

    def add(self, message: str) -> str:
        line = f"{_timestamp()} - {message}"
        self._lines.append(line)
        for listener in list(self._listeners):
            try:
                listener(line)
            except Exception:
                logger.exception("Log listener failed")
        return line

    def entries(self) -> list[str]:
        return list(self._lines)

    def clear(self) -> None:
        self._lines.clear()

    def subscribe(self, listener: LogListener) -> Callable[[], None]:
        """Register *listener* for new lines. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
