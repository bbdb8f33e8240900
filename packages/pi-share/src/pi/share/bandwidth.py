"""Per-second byte counter for the live bandwidth display."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

IDLE = "0 KB/s"
ACTIVITY_TIMEOUT = 0.5
TICK_INTERVAL = 1.0


def format_bandwidth(bytes_per_second: float) -> str:
    """Format a byte count as KB/s, switching to MB/s at 1024 KB/s."""
    if bytes_per_second <= 0:
        return IDLE
    kb = bytes_per_second / 1024
    if kb >= 1024:
        return f"{kb / 1024:.2f} MB/s"
    return f"{kb:.2f} KB/s"


class BandwidthMeter:
    """Accumulates transferred bytes; ``tick()`` turns them into a rate and resets."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._bytes = 0
        self._last_activity: float | None = None
        self.current = IDLE

    @property
    def pending(self) -> int:
        return self._bytes

    @property
    def active(self) -> bool:
        """True while bytes were seen in the last half second."""
        if self._last_activity is None:
            return False
        return self._clock() - self._last_activity < ACTIVITY_TIMEOUT

    def add(self, count: int) -> None:
        if count <= 0:
            return
        self._bytes += count
        self._last_activity = self._clock()

    def tick(self) -> str:
        self.current = format_bandwidth(self._bytes)
        self._bytes = 0
        return self.current

    def reset(self) -> None:
        self._bytes = 0
        self._last_activity = None
        self.current = IDLE

    async def run(
        self,
        interval: float = TICK_INTERVAL,
        on_tick: Callable[[str], None] | None = None,
    ) -> None:
        """Tick every *interval* seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            value = self.tick()
            if on_tick is not None:
                on_tick(value)
