"""Prestige: meta-progression that survives a run reset."""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from .context import GameContext
from .errors import ContentError, InsufficientResourcesError
from .models import PrestigeUpgrade
from .multipliers import FlatGainsMap, MultipliersMap, create_flat_gains_map, create_multipliers_map, stack_multiplier
from .schemas import PrestigeSnapshot, non_negative_int

logger = logging.getLogger(__name__)

# Level threshold reductions never remove more than this share
MAX_LEVEL_THRESHOLD_REDUCTION = 0.95


def default_stats() -> Dict[str, Optional[int]]:
    return {
        "firstPrestigeAt": None,
        "fastestRunSeconds": None,
        "highestOperationsBeforePrestige": 0,
    }


class PrestigeStore:
    def __init__(self, ctx: GameContext):
        self.ctx = ctx
        self.upgrades: List[PrestigeUpgrade] = list(ctx.content.prestige_upgrades)
        self.mapped_upgrades: Dict[str, PrestigeUpgrade] = {u.id: u for u in self.upgrades}
        self.points = 0
        self.lifetime_points = 0
        self.prestige_count = 0
        # Playtime is tracked in ms so sub-second round intervals still add up
        self.current_run_ms = 0
        self.total_playtime_ms = 0
        self.purchased_upgrades: Dict[str, int] = {}
        self.stats = default_stats()

    @property
    def current_run_seconds(self) -> int:
        return self.current_run_ms // 1000

    @property
    def total_playtime_seconds(self) -> int:
        return self.total_playtime_ms // 1000

    def calculate_potential_points(self) -> int:
        config = self.ctx.config
        scaling = 1 + max(0, self.prestige_count - config.prestige_soft_cap_threshold) * config.prestige_soft_cap_multiplier
        effective_base = config.prestige_base_operations * scaling
        total_ops = self.ctx.operations.total_operations_completed
        return math.floor(math.sqrt(total_ops / effective_base))

    def can_prestige(self) -> bool:
        return self.calculate_potential_points() >= 1

    def execute_prestige(self):
        """Bank points and restart the run with starting bonuses applied."""
        if not self.can_prestige():
            raise InsufficientResourcesError("Cannot prestige: requirements not met")

        earned = self.calculate_potential_points()
        total_ops = self.ctx.operations.total_operations_completed

        self.stats["highestOperationsBeforePrestige"] = max(self.stats["highestOperationsBeforePrestige"], total_ops)
        if self.stats["firstPrestigeAt"] is None:
            self.stats["firstPrestigeAt"] = self.ctx.now()
        if self.stats["fastestRunSeconds"] is None or self.current_run_seconds < self.stats["fastestRunSeconds"]:
            self.stats["fastestRunSeconds"] = self.current_run_seconds

        self.add_points(earned)
        self.increment_prestige_count()
        self.current_run_ms = 0

        # Achievements, codex and upgrades carry over
        self.ctx.resources.reset()
        self.ctx.workers.reset()
        self.ctx.operations.reset_for_prestige()
        self.ctx.level.reset()
        for store in ("resources", "workers", "level"):
            self.ctx.mark_dirty(store)

        self.apply_starting_bonuses()
        self.ctx.mark_dirty("prestige")
        logger.info(f"Prestige #{self.prestige_count}: earned {earned} points after {total_ops} operations")

    def apply_starting_bonuses(self):
        for resource, amount in self.get_starting_resources().items():
            self.ctx.resources.add_resource(resource, math.ceil(amount))
        for worker_id, count in self.get_starting_workers().items():
            self.ctx.workers.add_workers(worker_id, math.ceil(count))
        starting_ops = self.get_starting_operations_completed()
        if starting_ops > 0:
            self.ctx.operations.add_starting_operations(starting_ops)

    def get_upgrade(self, upgrade_id: str) -> PrestigeUpgrade:
        upgrade = self.mapped_upgrades.get(upgrade_id)
        if upgrade is None:
            raise ContentError(f"Prestige upgrade {upgrade_id} not found")
        return upgrade

    def get_upgrade_level(self, upgrade_id: str) -> int:
        return self.purchased_upgrades.get(upgrade_id, 0)

    def get_upgrade_cost(self, upgrade_id: str) -> float:
        upgrade = self.mapped_upgrades.get(upgrade_id)
        if upgrade is None:
            return math.inf
        level = self.get_upgrade_level(upgrade_id)
        max_level = upgrade.max_level or 1
        if level >= max_level:
            return math.inf
        if upgrade.cost_multiplier and max_level > 1:
            return math.ceil(upgrade.base_cost * math.pow(upgrade.cost_multiplier, level))
        return upgrade.base_cost

    def purchase_upgrade(self, upgrade_id: str):
        upgrade = self.get_upgrade(upgrade_id)
        level = self.get_upgrade_level(upgrade_id)
        if level >= (upgrade.max_level or 1):
            raise InsufficientResourcesError(f"Maximum level reached for: {upgrade.name}")
        cost = self.get_upgrade_cost(upgrade_id)
        if not self.spend_points(cost):
            raise InsufficientResourcesError(
                f"Insufficient prestige points for upgrade: {upgrade.name}. Need {cost}, have {self.points}"
            )
        self.purchased_upgrades[upgrade_id] = level + 1
        self.ctx.mark_dirty("prestige")

    def _active_effects(self):
        """Yield (effect, level) for every purchased upgrade."""
        for upgrade_id, level in self.purchased_upgrades.items():
            if level <= 0:
                continue
            upgrade = self.mapped_upgrades.get(upgrade_id)
            if upgrade is None:
                continue
            for effect in upgrade.effects:
                yield effect, level

    def get_level_threshold_modifier(self, level_index: int) -> float:
        total = sum(
            effect.reduction
            for effect, _ in self._active_effects()
            if effect.type == "levelThreshold" and effect.level_index == level_index
        )
        return min(total, MAX_LEVEL_THRESHOLD_REDUCTION)

    def get_starting_resources(self) -> Dict[str, int]:
        resources: Dict[str, int] = {}
        for effect, level in self._active_effects():
            if effect.type == "startingResource":
                resources[effect.resource] = resources.get(effect.resource, 0) + effect.amount * level
        return resources

    def get_starting_workers(self) -> Dict[str, int]:
        workers: Dict[str, int] = {}
        for effect, level in self._active_effects():
            if effect.type == "startingWorkers":
                workers[effect.worker_id] = workers.get(effect.worker_id, 0) + effect.count * level
        return workers

    def get_starting_operations_completed(self) -> int:
        return sum(
            effect.count * level
            for effect, level in self._active_effects()
            if effect.type == "startingOperations"
        )

    def add_points(self, points: int):
        points = non_negative_int(points, "points")
        self.points += points
        self.lifetime_points += points
        self.ctx.mark_dirty("prestige")

    def spend_points(self, points: int) -> bool:
        if self.points < points:
            return False
        self.points -= non_negative_int(points, "points")
        self.ctx.mark_dirty("prestige")
        return True

    def increment_prestige_count(self):
        self.prestige_count += 1
        self.ctx.mark_dirty("prestige")

    def multipliers(self) -> MultipliersMap:
        result = create_multipliers_map(1.0)
        for effect, level in self._active_effects():
            if effect.type == "multiplier":
                result[effect.target] = stack_multiplier(result[effect.target], effect.value, level)
        return result

    def flat_gains(self) -> FlatGainsMap:
        # No prestige effect grants flat gains yet
        return create_flat_gains_map(0)

    def round(self):
        self.current_run_ms += self.ctx.config.round_interval
        self.total_playtime_ms += self.ctx.config.round_interval
        self.ctx.mark_dirty("prestige")

    def get_snapshot(self) -> Dict[str, Any]:
        return {
            "points": self.points,
            "lifetimePoints": self.lifetime_points,
            "prestigeCount": self.prestige_count,
            "currentRunSeconds": self.current_run_seconds,
            "totalPlaytimeSeconds": self.total_playtime_seconds,
            "purchasedUpgrades": dict(self.purchased_upgrades),
            "stats": dict(self.stats),
        }

    def parse_snapshot(self, snapshot: Mapping) -> PrestigeSnapshot:
        return PrestigeSnapshot.model_validate(snapshot.get("prestige"))

    def apply_snapshot(self, parsed: PrestigeSnapshot):
        self.points = parsed.points
        self.lifetime_points = parsed.lifetime_points
        self.prestige_count = parsed.prestige_count
        self.current_run_ms = parsed.current_run_seconds * 1000
        self.total_playtime_ms = parsed.total_playtime_seconds * 1000
        self.purchased_upgrades = dict(parsed.purchased_upgrades)
        self.stats = parsed.stats.to_dict()

    def load_snapshot(self, snapshot: Mapping):
        self.apply_snapshot(self.parse_snapshot(snapshot))

    def reset(self):
        self.points = 0
        self.lifetime_points = 0
        self.prestige_count = 0
        self.current_run_ms = 0
        self.total_playtime_ms = 0
        self.purchased_upgrades = {}
        self.stats = default_stats()
