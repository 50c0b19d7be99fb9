"""Shared context handed to every sub-store."""

from contextlib import contextmanager
from typing import TYPE_CHECKING, List, Optional

from .config import GameConfig
from .content import GameContent
from .multipliers import compose_flat_gain, compose_multiplier
from .notifications import NotificationManager
from .timeutils import AsyncioTimerBackend, Clock, SystemClock, TimerBackend

if TYPE_CHECKING:
    from .achievements import AchievementsStore
    from .codex import CodexStore
    from .level import LevelStore
    from .operations import OperationsStore
    from .prestige import PrestigeStore
    from .resources import ResourceLedger
    from .sync import SyncCoordinator
    from .upgrades import UpgradesStore
    from .workers import WorkersStore


class GameContext:
    """Explicit wiring between sub-stores.

    Stores reach their siblings only through this object, so the whole
    dependency graph is visible in ``GameEngine.__init__``.
    """

    def __init__(
        self,
        config: GameConfig,
        content: GameContent,
        clock: Optional[Clock] = None,
        timers: Optional[TimerBackend] = None,
        notifications: Optional[NotificationManager] = None,
    ):
        self.config = config
        self.content = content
        self.clock = clock or SystemClock()
        self.timers = timers or AsyncioTimerBackend()
        self.notifications = notifications or NotificationManager()
        # Operation bonuses expire; steady-state calculations switch them off
        self.timed_bonuses = True

        self.sync: "SyncCoordinator" = None
        self.resources: "ResourceLedger" = None
        self.workers: "WorkersStore" = None
        self.operations: "OperationsStore" = None
        self.codex: "CodexStore" = None
        self.level: "LevelStore" = None
        self.upgrades: "UpgradesStore" = None
        self.achievements: "AchievementsStore" = None
        self.prestige: "PrestigeStore" = None

    def now(self) -> int:
        return self.clock.now()

    def mark_dirty(self, store: str):
        self.sync.mark_dirty(store)

    def multiplier_sources(self) -> List[object]:
        sources = [self.achievements, self.upgrades, self.prestige]
        if self.timed_bonuses:
            sources.append(self.operations)
        return sources

    @contextmanager
    def without_timed_bonuses(self):
        """Leave operation bonuses out of every multiplier inside the block."""
        self.timed_bonuses = False
        try:
            yield
        finally:
            self.timed_bonuses = True

    def get_multiplier(self, key: str) -> float:
        """Effective factor for an effect key across every modifier source."""
        return compose_multiplier(self.multiplier_sources(), key)

    def get_flat_gain(self, key: str) -> float:
        return compose_flat_gain(self.multiplier_sources(), key)
