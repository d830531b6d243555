"""
Client-side cooldown for AI features.

The gate is either available or cooling. start_cooldown() persists a
deadline (epoch milliseconds) and the gate becomes available again once the
wall clock passes it, noticed both by a periodic tick and lazily by every
query. A deadline already in the past when the gate loads is cleared.
"""

import asyncio
import logging
import math
import time
from typing import Callable, Optional

from interview_catalog.services.key_value import PersistentKeyValue

logger = logging.getLogger(__name__)

COOLDOWN_KEY = "aiFeatureCooldownEndTime"
DEFAULT_COOLDOWN_SECONDS = 5 * 60


def format_remaining(seconds: float) -> str:
    """'Ready', '45s' or '4m 05s'."""
    if seconds <= 0:
        return "Ready"
    total = math.ceil(seconds)
    minutes, secs = divmod(total, 60)
    if minutes > 0:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


class CooldownGate:
    """Persisted deadline guarding expensive external calls."""

    def __init__(
        self,
        storage: PersistentKeyValue,
        duration: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.time,
        tick_interval: float = 1.0,
        on_tick: Optional[Callable[[float], None]] = None,
    ):
        self.storage = storage
        self.duration = duration
        self.tick_interval = tick_interval
        self.on_tick = on_tick
        self._clock = clock
        self._deadline_ms: Optional[int] = None
        self._ticker: Optional[asyncio.Task] = None
        self._load()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _load(self) -> None:
        try:
            raw = self.storage.get(COOLDOWN_KEY)
        except OSError as e:
            logger.warning("Failed to read cooldown state: %s", e)
            return
        if raw is None:
            return
        try:
            deadline = int(raw)
        except ValueError:
            deadline = None
        if deadline is not None and deadline > self._now_ms():
            self._deadline_ms = deadline
        else:
            self._clear()

    def _clear(self) -> None:
        self._deadline_ms = None
        try:
            self.storage.remove(COOLDOWN_KEY)
        except OSError as e:
            logger.warning("Failed to clear cooldown state: %s", e)

    def _refresh(self) -> None:
        if self._deadline_ms is not None and self._now_ms() >= self._deadline_ms:
            logger.debug("Cooldown expired")
            self._clear()

    @property
    def deadline_ms(self) -> Optional[int]:
        self._refresh()
        return self._deadline_ms

    def can_use(self) -> bool:
        self._refresh()
        return self._deadline_ms is None

    def remaining_time(self) -> float:
        """Seconds until the gate is available again (0 when available)."""
        self._refresh()
        if self._deadline_ms is None:
            return 0.0
        return max(0.0, (self._deadline_ms - self._now_ms()) / 1000)

    def formatted_remaining(self) -> str:
        return format_remaining(self.remaining_time())

    def start_cooldown(self) -> None:
        """Enter the cooling state for the configured duration."""
        self._deadline_ms = self._now_ms() + int(self.duration * 1000)
        try:
            self.storage.set(COOLDOWN_KEY, str(self._deadline_ms))
        except OSError as e:
            logger.warning("Failed to persist cooldown state: %s", e)
        self._start_ticker()

    def _start_ticker(self) -> None:
        if self._ticker is not None and not self._ticker.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: lazy checks in can_use() still apply
            return
        self._ticker = loop.create_task(self._tick())

    async def _tick(self) -> None:
        while not self.can_use():
            if self.on_tick is not None:
                self.on_tick(self.remaining_time())
            await asyncio.sleep(self.tick_interval)
        if self.on_tick is not None:
            self.on_tick(0.0)

    async def wait_until_available(self) -> None:
        """Sleep until the cooldown has passed."""
        while not self.can_use():
            await asyncio.sleep(min(self.tick_interval, self.remaining_time()))

    async def close(self) -> None:
        """Cancel the periodic tick."""
        if self._ticker is not None:
            self._ticker.cancel()
            try:
                await self._ticker
            except asyncio.CancelledError:
                pass
            self._ticker = None
