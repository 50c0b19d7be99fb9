"""One-shot wake timer for operation state transitions."""

import heapq
import logging
from typing import Callable, List, Mapping, Optional, Tuple

from .models import OperationProgress
from .timeutils import Clock, TimerBackend, TimerHandle

logger = logging.getLogger(__name__)


def transition_queue(progress: Mapping[str, OperationProgress], now: int) -> List[Tuple[int, str]]:
    """Heap of (wake time, operation id) for every transition still ahead of now."""
    queue: List[Tuple[int, str]] = []
    for operation_id, entry in progress.items():
        if entry.claimable_at > now:
            queue.append((entry.claimable_at, operation_id))
        if entry.cooldown_till > now:
            queue.append((entry.cooldown_till, operation_id))
    heapq.heapify(queue)
    return queue


def next_wake_delay(
    progress: Mapping[str, OperationProgress],
    now: int,
    round_interval: int,
) -> Optional[int]:
    """Milliseconds until the next wake, or None when nothing is pending."""
    queue = transition_queue(progress, now)
    has_active_cooldowns = any(
        entry.cooldown_till > now and entry.claimable_at == 0
        for entry in progress.values()
    )

    if queue:
        delay = max(0, queue[0][0] - now)
    elif has_active_cooldowns:
        delay = round_interval
    else:
        return None

    # Cooldown views should not go stale for longer than a round
    if has_active_cooldowns and delay > round_interval:
        delay = round_interval
    return delay


class WakeScheduler:
    """Keeps a single outstanding timer set to the earliest pending transition.

    The timer is re-derived from scratch after every mutation, so there is
    never more than one handle alive and no timer at all when every
    operation is idle.
    """

    def __init__(
        self,
        clock: Clock,
        timers: TimerBackend,
        round_interval: int,
        progress_provider: Callable[[], Mapping[str, OperationProgress]],
    ):
        self.clock = clock
        self.timers = timers
        self.round_interval = round_interval
        self.progress_provider = progress_provider
        # Bumped on every wake so derived phase views know to recompute
        self.tick = 0
        self.wake_at: Optional[int] = None
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.wake_at = None

    def reschedule(self):
        """Cancel any pending timer and set a new one if anything is in flight."""
        self.cancel()

        now = self.clock.now()
        delay = next_wake_delay(self.progress_provider(), now, self.round_interval)
        if delay is None:
            logger.debug("No operation transitions pending, timer left unset")
            return

        self.wake_at = now + delay
        self._handle = self.timers.call_later(delay / 1000, self._wake)
        logger.debug(f"Next operation wake in {delay} ms")

    def _wake(self):
        self._handle = None
        self.tick += 1
        self.reschedule()

    def reset(self):
        self.cancel()
        self.tick = 0
