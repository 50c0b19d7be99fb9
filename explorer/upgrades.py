"""Purchasable upgrades: one of the multiplier sources."""

import logging
import math
from typing import Dict, List, Mapping

from .context import GameContext
from .errors import ContentError, InsufficientResourcesError
from .models import Upgrade
from .multipliers import MultipliersMap, create_multipliers_map, stack_multiplier
from .schemas import UpgradesSnapshot

logger = logging.getLogger(__name__)


class UpgradesStore:
    def __init__(self, ctx: GameContext):
        self.ctx = ctx
        self.upgrades: List[Upgrade] = list(ctx.content.upgrades)
        self.mapped_upgrades: Dict[str, Upgrade] = {u.id: u for u in self.upgrades}
        # upgrade id -> purchased level
        self.unlocked_upgrades: Dict[str, int] = {}

    def get_upgrade(self, upgrade_id: str) -> Upgrade:
        upgrade = self.mapped_upgrades.get(upgrade_id)
        if upgrade is None:
            raise ContentError(f"Unknown upgrade: {upgrade_id}")
        return upgrade

    def meets_unlock_condition(self, upgrade: Upgrade) -> bool:
        condition = upgrade.unlock_condition
        if condition is None:
            return True
        if condition.type == "level":
            return condition.level <= self.ctx.level.max_level_reached
        if condition.type == "operationsCompleted":
            return self.ctx.operations.total_operations_completed >= condition.count
        if condition.type == "operation":
            return self.ctx.operations.operations_finished.get(condition.operation_id, 0) >= condition.level
        if condition.type == "worker":
            return self.ctx.workers.hired_workers.get(condition.worker_id, 0) >= condition.count
        if condition.type == "upgrade":
            return self.unlocked_upgrades.get(condition.upgrade_id, 0) >= condition.level
        return False

    def level_cost_multiplier(self, upgrade: Upgrade) -> float:
        return math.pow(upgrade.cost_multiplier, self.unlocked_upgrades.get(upgrade.id, 0))

    def can_purchase_upgrade(self, upgrade: Upgrade) -> bool:
        if self.unlocked_upgrades.get(upgrade.id, 0) >= upgrade.max_level:
            return False
        if not self.meets_unlock_condition(upgrade):
            return False
        multiplier = self.level_cost_multiplier(upgrade)
        for resource, base_cost in upgrade.cost.items():
            if self.ctx.resources.get(resource) < base_cost * multiplier:
                return False
        return True

    @property
    def visible_upgrades(self) -> List[Upgrade]:
        return [
            u for u in self.upgrades
            if self.unlocked_upgrades.get(u.id, 0) > 0 or self.can_purchase_upgrade(u)
        ]

    def purchase_upgrade(self, upgrade: Upgrade):
        if not self.can_purchase_upgrade(upgrade):
            raise InsufficientResourcesError(
                f"Cannot purchase upgrade {upgrade.id}: requirements not met or max level reached"
            )
        if not self.ctx.resources.spend_resources_by_cost(upgrade.cost, self.level_cost_multiplier(upgrade)):
            raise InsufficientResourcesError(f"Insufficient resources for upgrade: {upgrade.name}")
        self.unlocked_upgrades[upgrade.id] = self.unlocked_upgrades.get(upgrade.id, 0) + 1
        self.ctx.mark_dirty("upgrades")
        logger.info(f"Purchased upgrade {upgrade.id} level {self.unlocked_upgrades[upgrade.id]}")

    def multipliers(self) -> MultipliersMap:
        result = create_multipliers_map(1.0)
        for upgrade_id, levels in self.unlocked_upgrades.items():
            upgrade = self.mapped_upgrades.get(upgrade_id)
            if upgrade is None:
                continue
            for effect in upgrade.effects:
                result[effect.type] = stack_multiplier(result[effect.type], effect.value, levels)
        return result

    def get_snapshot(self) -> Dict[str, Dict[str, int]]:
        return {"unlockedUpgrades": dict(self.unlocked_upgrades)}

    def parse_snapshot(self, snapshot: Mapping) -> UpgradesSnapshot:
        return UpgradesSnapshot.model_validate(snapshot.get("upgrades"))

    def apply_snapshot(self, parsed: UpgradesSnapshot):
        self.unlocked_upgrades = dict(parsed.unlocked_upgrades)

    def load_snapshot(self, snapshot: Mapping):
        self.apply_snapshot(self.parse_snapshot(snapshot))

    def reset(self):
        self.unlocked_upgrades = {}
