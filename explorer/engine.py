"""The game engine: wires the sub-stores together and drives the round loop."""

import logging
import math
from typing import Optional

from discord.ext import tasks

from .achievements import AchievementsStore
from .codex import CodexStore
from .config import GameConfig, load_config
from .content import GameContent
from .context import GameContext
from .error_handler import ErrorHandler
from .errors import GameError, SyncStateError
from .level import LevelStore
from .models import ActionResult, OfflineReport
from .notifications import NotificationManager
from .offline import apply_offline_progress
from .operations import OperationsStore
from .prestige import PrestigeStore
from .resources import ResourceLedger
from .storage import SaveStorage
from .sync import SAVING, SyncCoordinator
from .timeutils import Clock, TimerBackend
from .upgrades import UpgradesStore
from .workers import WorkersStore

logger = logging.getLogger(__name__)


class GameEngine:
    """Owns the game context and the periodic round loop."""

    def __init__(
        self,
        content: GameContent,
        config: Optional[GameConfig] = None,
        storage: Optional[SaveStorage] = None,
        clock: Optional[Clock] = None,
        timers: Optional[TimerBackend] = None,
        notifications: Optional[NotificationManager] = None,
    ):
        config = config or load_config()
        self.ctx = ctx = GameContext(config, content, clock, timers, notifications)

        ctx.sync = SyncCoordinator(ctx, storage or SaveStorage(config.database_path))
        ctx.resources = ResourceLedger(ctx)
        ctx.workers = WorkersStore(ctx)
        ctx.operations = OperationsStore(ctx)
        ctx.codex = CodexStore(ctx)
        ctx.level = LevelStore(ctx)
        ctx.upgrades = UpgradesStore(ctx)
        ctx.achievements = AchievementsStore(ctx)
        ctx.prestige = PrestigeStore(ctx)

        self.error_handler = ErrorHandler()
        self.running = False
        self.game_loop.change_interval(seconds=config.round_seconds)

    async def initialize(self):
        """Prepare durable storage."""
        await self.ctx.sync.storage.initialize()

    @tasks.loop(seconds=1)
    async def game_loop(self):
        """One round per interval, plus a save once the save interval passes."""
        if not self.running:
            return
        try:
            self.tick()
        except Exception as e:
            self.error_handler.handle(e, "Game round")

        sync = self.ctx.sync
        if self.ctx.now() - sync.last_save >= self.ctx.config.save_interval:
            try:
                await sync.save()
            except SyncStateError as e:
                logger.debug(f"Skipped periodic save: {e}")
            except Exception as e:
                self.error_handler.handle(e, "Periodic save")

    def tick(self):
        """Run one round of every periodic store."""
        self.ctx.resources.round()
        self.ctx.level.round()
        self.ctx.prestige.round()
        self.ctx.achievements.round()

    async def load(self) -> Optional[OfflineReport]:
        """Load the save and credit offline production for the time away."""
        timestamp = await self.ctx.sync.load()
        if timestamp is None:
            return None
        return apply_offline_progress(self.ctx, timestamp)

    def start(self):
        if self.running:
            return
        self.running = True
        self.game_loop.start()
        logger.info("Game loop started")

    async def stop(self):
        """Stop future rounds and write a final save.

        Operation timers keep running; they are independent of the loop.
        """
        self.running = False
        if self.game_loop.is_running():
            if self.ctx.sync.state == SAVING:
                # Let the periodic save finish its write; the loop exits after this iteration
                self.game_loop.stop()
                await self.game_loop.get_task()
            else:
                self.game_loop.cancel()
        try:
            await self.ctx.sync.save(force=True)
        except SyncStateError as e:
            logger.warning(f"Final save skipped: {e}")
        logger.info("Game loop stopped")

    async def reset(self):
        await self.stop()
        await self.ctx.sync.reset()

    @property
    def energy_cost(self) -> int:
        return math.ceil(self.ctx.config.base_energy_cost * self.ctx.level.energy_cost_multiplier)

    @property
    def output_gain(self) -> int:
        return math.floor(
            self.ctx.config.base_output_gain
            * self.ctx.level.output_gain
            * self.ctx.upgrades.multipliers()["outputGain"]
            * self.ctx.achievements.multipliers()["outputGain"]
            * self.ctx.prestige.multipliers()["outputGain"]
        )

    def click(self) -> bool:
        """Spend energy for output; returns whether the click went through."""
        if self.ctx.resources.spend_resource("energy", self.energy_cost):
            self.ctx.resources.add_resource("output", self.output_gain)
            return True
        return False

    def act_on_operation(self, operation_id: str) -> ActionResult:
        """Claim or conduct an operation, reporting the outcome."""
        try:
            operation = self.ctx.content.operation(operation_id)
            duration = self.ctx.operations.act_on_operation(operation)
        except GameError as e:
            return ActionResult(False, str(e))
        if duration:
            return ActionResult(True, f"{operation.name} started.", duration=duration)
        return ActionResult(True, f"{operation.name} completed.", duration=0)

    def hire_worker(self, worker_id: str) -> ActionResult:
        try:
            worker = self.ctx.workers.get_worker(worker_id)
            self.ctx.workers.hire_worker(worker)
        except GameError as e:
            return ActionResult(False, str(e))
        return ActionResult(True, f"Hired {worker.name}.")

    def purchase_upgrade(self, upgrade_id: str) -> ActionResult:
        try:
            upgrade = self.ctx.upgrades.get_upgrade(upgrade_id)
            self.ctx.upgrades.purchase_upgrade(upgrade)
        except GameError as e:
            return ActionResult(False, str(e))
        return ActionResult(True, f"Purchased {upgrade.name}.")

    def purchase_prestige_upgrade(self, upgrade_id: str) -> ActionResult:
        try:
            self.ctx.prestige.purchase_upgrade(upgrade_id)
        except GameError as e:
            return ActionResult(False, str(e))
        return ActionResult(True, f"Purchased prestige upgrade {upgrade_id}.")

    def prestige(self) -> ActionResult:
        try:
            self.ctx.prestige.execute_prestige()
        except GameError as e:
            return ActionResult(False, str(e))
        return ActionResult(True, f"Prestige complete. You now have {self.ctx.prestige.points} points.")
