"""Clock and timer utilities for the game."""

import asyncio
import datetime
import time
from typing import Callable, Optional, Protocol
from zoneinfo import ZoneInfo

from .config import TIMEZONE


class Clock(Protocol):
    def now(self) -> int:
        """Current time as epoch milliseconds."""


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class TimerBackend(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds."""


class SystemClock:
    """Wall-clock time."""

    def now(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: int = 0):
        self.current = start

    def now(self) -> int:
        return self.current

    def set(self, timestamp: int):
        self.current = timestamp

    def advance(self, ms: int):
        self.current += ms


class AsyncioTimerBackend:
    """Schedules one-shot callbacks on the running asyncio loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


def get_timezone(name: str = TIMEZONE):
    """Get the timezone object used for display."""
    return ZoneInfo(name)


def format_timestamp(timestamp_ms: int, tz: str = TIMEZONE) -> str:
    """Human readable form of an epoch-ms timestamp."""
    try:
        moment = datetime.datetime.fromtimestamp(timestamp_ms / 1000, get_timezone(tz))
    except (OverflowError, OSError, ValueError):
        # Out of the platform's range; show the raw value
        return f"{timestamp_ms} ms"
    return moment.strftime("%Y-%m-%d %H:%M:%S %Z")


def format_duration(ms: int) -> str:
    """Format a millisecond span as 1h 2m 3s."""
    seconds = max(0, int(ms // 1000))
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds or not parts:
        parts.append(f"{seconds}s")
    return " ".join(parts)


def seconds_until(timestamp_ms: int, now_ms: int) -> float:
    """Seconds from now until the given timestamp, never negative."""
    return max(0.0, (timestamp_ms - now_ms) / 1000)
