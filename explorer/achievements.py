"""Achievement tracking; also a multiplier and flat-gain source."""

import logging
from typing import Any, Dict, List, Mapping, Set

from .context import GameContext
from .models import RESOURCES, Achievement, Condition
from .multipliers import FlatGainsMap, MultipliersMap, create_flat_gains_map, create_multipliers_map
from .notifications import ACHIEVEMENT_UNLOCKED
from .schemas import AchievementsSnapshot, non_negative_int, resource_key

logger = logging.getLogger(__name__)


class AchievementsStore:
    def __init__(self, ctx: GameContext):
        self.ctx = ctx
        self.achievements: List[Achievement] = list(ctx.content.achievements)
        self.mapped_achievements: Dict[str, Achievement] = {a.id: a for a in self.achievements}
        self.total_resources: Dict[str, int] = {r: 0 for r in RESOURCES}
        self.total_workers = 0
        self.total_articles_opened = 0
        self.max_level_reached = 0
        self.operations_completed = 0
        self.unlocked_achievements: Set[str] = set()

    def add_resource_totals(self, resource: str, amount: int):
        self.total_resources[resource_key(resource)] += non_negative_int(amount, "amount")
        self.ctx.mark_dirty("achievements")

    def add_workers(self, count: int):
        self.total_workers += non_negative_int(count, "count")
        self.ctx.mark_dirty("achievements")

    def add_articles_opened(self):
        self.total_articles_opened += 1
        self.ctx.mark_dirty("achievements")

    def level_reached(self, level: int):
        if level > self.max_level_reached:
            self.max_level_reached = level
            self.ctx.mark_dirty("achievements")

    def complete_operation(self):
        self.operations_completed += 1
        self.ctx.mark_dirty("achievements")

    def unlock_achievement(self, achievement: Achievement):
        if achievement.id in self.unlocked_achievements:
            return
        self.unlocked_achievements.add(achievement.id)
        self.ctx.mark_dirty("achievements")
        self.ctx.notifications.notify(
            ACHIEVEMENT_UNLOCKED, achievement.name, achievement.description, achievement.id
        )

    def _rewards(self):
        for achievement_id in self.unlocked_achievements:
            achievement = self.mapped_achievements.get(achievement_id)
            if achievement is not None and achievement.reward is not None:
                yield achievement.reward

    def multipliers(self) -> MultipliersMap:
        result = create_multipliers_map(1.0)
        for reward in self._rewards():
            if reward.type == "multiplier":
                result[reward.target] *= reward.value
        return result

    def flat_gains(self) -> FlatGainsMap:
        result = create_flat_gains_map(0)
        for reward in self._rewards():
            if reward.type == "flat":
                result[reward.target] += reward.value
        return result

    def check_condition(self, condition: Condition) -> bool:
        if condition.type == "resourceTotal":
            return condition.amount <= self.total_resources[condition.resource]
        if condition.type == "levelUnlocked":
            return condition.level <= self.max_level_reached
        if condition.type == "operationsCompleted":
            return condition.count <= self.operations_completed
        if condition.type == "operationLevel":
            return condition.level <= self.ctx.operations.operations_finished.get(condition.operation_id, 0)
        if condition.type == "workerCount":
            return condition.count <= self.total_workers
        if condition.type == "resourceRate":
            if condition.resource == "energy":
                rate = self.ctx.resources.energy_per_round
            elif condition.resource == "money":
                rate = self.ctx.resources.money_per_round
            else:
                rate = 0
            return condition.rate <= rate
        if condition.type == "prestigeCount":
            return condition.count <= self.ctx.prestige.prestige_count
        if condition.type == "playTime":
            return condition.seconds <= self.ctx.prestige.total_playtime_seconds
        logger.warning(f"Unknown achievement condition type: {condition.type}")
        return False

    def round(self):
        for achievement in self.achievements:
            if achievement.id in self.unlocked_achievements:
                continue
            if self.check_condition(achievement.condition):
                self.unlock_achievement(achievement)

    def get_snapshot(self) -> Dict[str, Any]:
        return {
            "totalResources": dict(self.total_resources),
            "totalWorkers": self.total_workers,
            "totalArticlesOpened": self.total_articles_opened,
            "maxLevelReached": self.max_level_reached,
            "operationsCompleted": self.operations_completed,
            "unlockedAchievements": sorted(self.unlocked_achievements),
        }

    def parse_snapshot(self, snapshot: Mapping) -> AchievementsSnapshot:
        return AchievementsSnapshot.model_validate(snapshot.get("achievements"))

    def apply_snapshot(self, parsed: AchievementsSnapshot):
        self.total_resources = {r: parsed.total_resources.get(r, 0) for r in RESOURCES}
        self.total_workers = parsed.total_workers
        self.total_articles_opened = parsed.total_articles_opened
        self.max_level_reached = parsed.max_level_reached
        self.operations_completed = parsed.operations_completed
        self.unlocked_achievements = set(parsed.unlocked_achievements)

    def load_snapshot(self, snapshot: Mapping):
        self.apply_snapshot(self.parse_snapshot(snapshot))

    def reset(self):
        self.total_resources = {r: 0 for r in RESOURCES}
        self.total_workers = 0
        self.total_articles_opened = 0
        self.max_level_reached = 0
        self.operations_completed = 0
        self.unlocked_achievements = set()
