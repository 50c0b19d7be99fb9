"""Hired workers and their passive production."""

import logging
import math
from typing import Dict, List, Mapping, Optional

from .context import GameContext
from .errors import ContentError, InsufficientResourcesError
from .models import Worker
from .schemas import WorkersSnapshot, non_negative_int

logger = logging.getLogger(__name__)


class WorkersStore:
    def __init__(self, ctx: GameContext):
        self.ctx = ctx
        self.workers: List[Worker] = list(ctx.content.workers)
        self.hired_workers: Dict[str, int] = {}

    def get_worker(self, worker_id: str) -> Worker:
        for worker in self.workers:
            if worker.id == worker_id:
                return worker
        raise ContentError(f"Unknown worker: {worker_id}")

    @property
    def total_workers(self) -> int:
        return sum(self.hired_workers.values())

    @property
    def total_energy_production(self) -> int:
        total = self.ctx.config.base_worker_energy
        for worker in self.workers:
            total += worker.energy_production * self.hired_workers.get(worker.id, 0)
        return total

    @property
    def total_output_production(self) -> int:
        total = 0
        for worker in self.workers:
            total += worker.output_production * self.hired_workers.get(worker.id, 0)
        return total

    def _meets_condition(self, condition) -> bool:
        if condition.type == "default":
            return True
        if condition.type == "totalWorkers":
            return self.total_workers >= condition.count
        if condition.type == "hiredWorkers":
            return self.hired_workers.get(condition.worker_id, 0) >= condition.count
        if condition.type == "level":
            return condition.level <= len(self.ctx.level.unlocked_levels) - 1
        return False

    @property
    def unlocked_workers(self) -> List[Worker]:
        return [w for w in self.workers if all(self._meets_condition(c) for c in w.unlock_conditions)]

    def calculate_worker_cost(self, worker: Worker, current_count: Optional[int] = None) -> int:
        if current_count is None:
            current_count = self.hired_workers.get(worker.id, 0)
        base_cost = math.ceil(worker.cost * worker.cost_multiplier ** current_count)
        reduction = self.ctx.get_multiplier("workerCostReduction")
        # A reduction of 1.2 means paying 80% of the base cost
        cost_multiplier = max(0.1, 2 - reduction)
        return math.ceil(base_cost * cost_multiplier)

    def hire_worker(self, worker: Worker):
        current = self.hired_workers.get(worker.id, 0)
        cost = self.calculate_worker_cost(worker, current)
        if not self.ctx.resources.spend_resource("money", cost):
            raise InsufficientResourcesError("Not enough money to hire this worker")

        self.hired_workers[worker.id] = current + 1
        self.ctx.mark_dirty("workers")
        self.ctx.achievements.add_workers(1)
        logger.info(f"Hired worker {worker.id} for {cost} money")

    def add_workers(self, worker_id: str, count: int):
        count = non_negative_int(count, "worker count")
        self.hired_workers[worker_id] = self.hired_workers.get(worker_id, 0) + count
        self.ctx.mark_dirty("workers")
        self.ctx.achievements.add_workers(count)

    def get_snapshot(self) -> Dict[str, Dict[str, int]]:
        return {"hiredWorkers": dict(self.hired_workers)}

    def parse_snapshot(self, snapshot: Mapping) -> WorkersSnapshot:
        return WorkersSnapshot.model_validate(snapshot.get("workers"))

    def apply_snapshot(self, parsed: WorkersSnapshot):
        self.hired_workers = dict(parsed.hired_workers)

    def load_snapshot(self, snapshot: Mapping):
        self.apply_snapshot(self.parse_snapshot(snapshot))

    def reset(self):
        self.hired_workers = {}
