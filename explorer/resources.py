"""Resource ledger: four non-negative counters and per-round production."""

import logging
import math
from typing import Dict, Mapping

from .context import GameContext
from .models import RESOURCES
from .schemas import ResourcesSnapshot, non_negative_int, resource_key

logger = logging.getLogger(__name__)


class ResourceLedger:
    """Holds energy, output, reputation and money.

    No call leaves a counter negative: every spend is checked before any
    counter is touched.
    """

    def __init__(self, ctx: GameContext):
        self.ctx = ctx
        # Produced automatically each round, consumed by clicks and operations
        self.energy = 0
        # Produced by clicking or automatically by workers
        self.output = 0
        # Produced by finished operations
        self.reputation = 0
        # Produced by reputation over time
        self.money = 0

    def get(self, resource: str) -> int:
        return getattr(self, resource_key(resource))

    def add_resource(self, resource: str, amount: int):
        """Increase a counter; amount must be a non-negative integer."""
        resource = resource_key(resource)
        amount = non_negative_int(amount, f"{resource} amount")
        setattr(self, resource, getattr(self, resource) + amount)
        self.ctx.mark_dirty("resources")
        self.ctx.achievements.add_resource_totals(resource, amount)

    def spend_resource(self, resource: str, amount: int) -> bool:
        """Deduct amount if the balance covers it; returns whether it did."""
        resource = resource_key(resource)
        amount = non_negative_int(amount, f"{resource} amount")
        if getattr(self, resource) < amount:
            return False
        setattr(self, resource, getattr(self, resource) - amount)
        self.ctx.mark_dirty("resources")
        return True

    def required_for_cost(self, cost: Mapping[str, int], multiplier: float) -> Dict[str, int]:
        return {resource_key(k): math.ceil(v * multiplier) for k, v in cost.items()}

    def spend_resources_by_cost(self, cost: Mapping[str, int], multiplier: float) -> bool:
        """All-or-nothing spend of ``ceil(base * multiplier)`` for each resource."""
        required = self.required_for_cost(cost, multiplier)

        for resource, amount in required.items():
            if getattr(self, resource) < amount:
                return False

        for resource, amount in required.items():
            setattr(self, resource, getattr(self, resource) - non_negative_int(amount, resource))

        self.ctx.mark_dirty("resources")
        return True

    def get_multipliers(self, key: str) -> float:
        return self.ctx.get_multiplier(key)

    @property
    def energy_per_round(self) -> int:
        rate = (
            self.ctx.config.base_energy_production
            * self.ctx.workers.total_energy_production
            * self.get_multipliers("workersEfficiency")
            * self.get_multipliers("energyGain")
        )
        return max(0, math.ceil(rate))

    @property
    def output_per_round(self) -> int:
        rate = (
            self.ctx.config.base_output_production
            * self.ctx.workers.total_output_production
            * self.get_multipliers("workersEfficiency")
            * self.get_multipliers("outputGain")
        )
        return max(0, math.ceil(rate))

    @property
    def money_per_round(self) -> int:
        rate = (
            self.ctx.config.money_per_reputation
            * self.reputation
            * self.get_multipliers("moneyGain")
        )
        return max(0, math.ceil(rate))

    def rates(self) -> Dict[str, int]:
        return {
            "energy": self.energy_per_round,
            "output": self.output_per_round,
            "money": self.money_per_round,
        }

    def round(self):
        """Apply one round of passive production."""
        # Expired bonuses must not count toward this round's rates
        self.ctx.operations.expire_bonuses()

        for resource, rate in self.rates().items():
            if rate >= 1:
                self.add_resource(resource, rate)

    def get_snapshot(self) -> Dict[str, int]:
        return {resource: getattr(self, resource) for resource in RESOURCES}

    def parse_snapshot(self, snapshot: Mapping) -> ResourcesSnapshot:
        return ResourcesSnapshot.model_validate(snapshot.get("resources"))

    def apply_snapshot(self, parsed: ResourcesSnapshot):
        for resource in RESOURCES:
            setattr(self, resource, getattr(parsed, resource))

    def load_snapshot(self, snapshot: Mapping):
        self.apply_snapshot(self.parse_snapshot(snapshot))

    def reset(self):
        for resource in RESOURCES:
            setattr(self, resource, 0)
