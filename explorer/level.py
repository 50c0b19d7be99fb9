"""Level progression."""

import logging
import math
from typing import Dict, List, Mapping, Optional

from .context import GameContext
from .errors import ContentError
from .models import Level
from .notifications import LEVEL_UNLOCKED
from .schemas import LevelSnapshot

logger = logging.getLogger(__name__)


class LevelStore:
    def __init__(self, ctx: GameContext):
        self.ctx = ctx
        self.levels: List[Level] = sorted(ctx.content.levels, key=lambda level: level.progress_start)
        self.max_level_reached = 0
        self.current_level = 0

    @property
    def unlocked_levels(self) -> List[Level]:
        completed = self.ctx.operations.total_operations_completed
        unlocked_articles = self.ctx.codex.unlocked_articles
        unlocked = []
        for index, level in enumerate(self.levels):
            modifier = 1 - self.ctx.prestige.get_level_threshold_modifier(index)
            required = math.ceil(level.operations_required * modifier)
            if required <= completed and all(a in unlocked_articles for a in level.articles_required):
                unlocked.append(level)
        return unlocked

    def select_level(self, selected: int):
        if selected < 0 or selected >= len(self.levels):
            raise ContentError(f"Level index out of bounds: {selected}")
        if self.levels[selected] not in self.unlocked_levels:
            raise ContentError(f"Level not unlocked: {selected}")
        self.current_level = selected
        self.ctx.mark_dirty("level")

    @property
    def current_level_config(self) -> Optional[Level]:
        if 0 <= self.current_level < len(self.levels):
            return self.levels[self.current_level]
        return None

    @property
    def energy_cost_multiplier(self) -> float:
        level = self.current_level_config
        return level.energy_cost_multiplier if level else 1

    @property
    def output_gain(self) -> float:
        level = self.current_level_config
        return level.output_gain_multiplier if level else 1

    def round(self):
        """Record a newly reached level and announce it."""
        next_level = len(self.unlocked_levels) - 1
        if next_level <= self.max_level_reached:
            return
        new_level = self.levels[next_level]

        # Recorded first so the announcement fires once
        self.max_level_reached = next_level
        self.ctx.mark_dirty("level")
        self.ctx.achievements.level_reached(next_level)
        self.ctx.notifications.notify(
            LEVEL_UNLOCKED, f"{new_level.name} Unlocked!", new_level.description, new_level.id
        )
        logger.info(f"Level {next_level} ({new_level.id}) unlocked")

    def get_snapshot(self) -> Dict[str, int]:
        return {"currentLevel": self.current_level, "maxLevelReached": self.max_level_reached}

    def parse_snapshot(self, snapshot: Mapping) -> LevelSnapshot:
        return LevelSnapshot.model_validate(snapshot.get("level"))

    def apply_snapshot(self, parsed: LevelSnapshot):
        self.current_level = parsed.current_level
        self.max_level_reached = parsed.max_level_reached

    def load_snapshot(self, snapshot: Mapping):
        self.apply_snapshot(self.parse_snapshot(snapshot))

    def reset(self):
        self.current_level = 0
        self.max_level_reached = 0
