"""Operation lifecycle: conduct, wait, claim, cool down."""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Set

from .context import GameContext
from .errors import InsufficientResourcesError, OperationPhaseError
from .models import ActiveBonus, Operation, OperationProgress
from .multipliers import MultipliersMap, cost_multiplier_from_reduction, create_multipliers_map
from .scheduler import WakeScheduler
from .schemas import OperationsSnapshot, non_negative_int
from .timeutils import seconds_until

logger = logging.getLogger(__name__)

IDLE = "idle"
IN_PROGRESS = "inProgress"
CLAIMABLE = "claimable"
COOLDOWN = "cooldown"

# Key older saves used to smuggle prestige starting operations into operationsFinished
LEGACY_STARTING_OPERATIONS_KEY = "_prestige_start"


def operation_phase(progress: Optional[OperationProgress], now: int) -> str:
    """Derive the phase from the stored timestamps; nothing else is consulted."""
    if progress is None:
        return IDLE
    if progress.claimable_at > 0:
        return IN_PROGRESS if progress.claimable_at > now else CLAIMABLE
    return COOLDOWN if progress.cooldown_till > now else IDLE


class OperationsStore:
    """Per-operation progress, completion counts and temporary bonuses."""

    def __init__(self, ctx: GameContext):
        self.ctx = ctx
        self.operations: List[Operation] = list(ctx.content.operations)
        self.operations_finished: Dict[str, int] = {}
        # Completions granted by prestige; they count toward the total only
        self.starting_operations = 0
        self.operations_progress: Dict[str, OperationProgress] = {}
        self.active_bonuses: List[ActiveBonus] = []
        self.scheduler = WakeScheduler(
            ctx.clock,
            ctx.timers,
            ctx.config.round_interval,
            lambda: self.operations_progress,
        )

    @property
    def tick(self) -> int:
        return self.scheduler.tick

    @property
    def total_operations_completed(self) -> int:
        return sum(self.operations_finished.values()) + self.starting_operations

    @property
    def available_operations(self) -> List[Operation]:
        """Operations whose requirements are met at the current level."""
        available = []
        for operation in self.operations:
            if all(self._meets_requirement(r) for r in operation.requirements):
                available.append(operation)
        return available

    def _meets_requirement(self, requirement) -> bool:
        if requirement.type == "level":
            return requirement.level == self.ctx.level.current_level
        if requirement.type == "operationCompleted":
            required = requirement.count if requirement.count is not None else 1
            return self.operations_finished.get(requirement.operation_id, 0) >= required
        if requirement.type == "operationsCount":
            return self.total_operations_completed >= requirement.count
        return False

    def multipliers(self) -> MultipliersMap:
        result = create_multipliers_map(1.0)
        for active in self.active_bonuses:
            if active.bonus.type == "multiplier":
                result[active.bonus.target] *= active.bonus.value
        return result

    def expire_bonuses(self):
        now = self.ctx.now()
        before = len(self.active_bonuses)
        self.active_bonuses = [ab for ab in self.active_bonuses if ab.expires_at > now]
        if len(self.active_bonuses) != before:
            logger.debug(f"Expired {before - len(self.active_bonuses)} operation bonus(es)")
            self.ctx.mark_dirty("operations")

    def phase(self, operation_id: str, now: Optional[int] = None) -> str:
        if now is None:
            now = self.ctx.now()
        return operation_phase(self.operations_progress.get(operation_id), now)

    def operations_in_phase(self, phase: str) -> Set[str]:
        now = self.ctx.now()
        return {
            operation_id
            for operation_id, progress in self.operations_progress.items()
            if operation_phase(progress, now) == phase
        }

    @property
    def operations_in_progress(self) -> Set[str]:
        return self.operations_in_phase(IN_PROGRESS)

    @property
    def operations_claimable(self) -> Set[str]:
        return self.operations_in_phase(CLAIMABLE)

    @property
    def operations_in_cooldown(self) -> Set[str]:
        return self.operations_in_phase(COOLDOWN)

    @property
    def cooldown_times(self) -> Dict[str, float]:
        """Remaining cooldown in seconds for every operation cooling down."""
        return {
            operation_id: self.get_cooldown_remaining_time(operation_id)
            for operation_id in self.operations_in_cooldown
        }

    def get_cooldown_remaining_time(self, operation_id: str) -> float:
        now = self.ctx.now()
        progress = self.operations_progress.get(operation_id)
        if operation_phase(progress, now) != COOLDOWN:
            return 0
        return seconds_until(progress.cooldown_till, now)

    def get_operation_remaining_time(self, operation_id: str) -> float:
        """Seconds until claimable; used to resume progress animations."""
        now = self.ctx.now()
        progress = self.operations_progress.get(operation_id)
        if operation_phase(progress, now) != IN_PROGRESS:
            return 0
        return seconds_until(progress.claimable_at, now)

    def can_afford_operation(self, operation: Operation) -> bool:
        scale = self.ctx.config.operation_scale_factor[operation.rarity]
        for resource, base in operation.cost.items():
            if self.ctx.resources.get(resource) < base * scale:
                return False
        return True

    @property
    def affordable_operations(self) -> Dict[str, bool]:
        return {op.id: self.can_afford_operation(op) for op in self.available_operations}

    def cost_multiplier(self, operation: Operation) -> float:
        """Rarity scaling combined with the inverted cost reduction."""
        reduction = self.ctx.get_multiplier("operationCostReduction")
        return self.ctx.config.operation_scale_factor[operation.rarity] * cost_multiplier_from_reduction(reduction)

    def duration_for(self, operation: Operation) -> float:
        reduction = self.ctx.get_multiplier("operationDurationReduction")
        return operation.duration * cost_multiplier_from_reduction(reduction)

    def conduct_operation(self, operation: Operation) -> float:
        """Pay for and start an operation; returns its duration in seconds."""
        now = self.ctx.now()
        progress = self.operations_progress.get(operation.id)
        phase = operation_phase(progress, now)
        if phase == COOLDOWN:
            remaining = math.ceil((progress.cooldown_till - now) / 1000)
            raise OperationPhaseError(
                f"{operation.name} is on cooldown for {remaining} more seconds",
                COOLDOWN,
                remaining,
            )
        if phase == IN_PROGRESS:
            raise OperationPhaseError(f"Operation {operation.id} is already in progress", IN_PROGRESS)
        if phase == CLAIMABLE:
            raise OperationPhaseError(f"Operation {operation.id} is waiting to be claimed", CLAIMABLE)

        if not self.ctx.resources.spend_resources_by_cost(operation.cost, self.cost_multiplier(operation)):
            raise InsufficientResourcesError(f"Insufficient resources to conduct operation {operation.id}")

        duration = self.duration_for(operation)
        self.operations_progress[operation.id] = OperationProgress(
            claimable_at=now + math.ceil(duration * 1000),
            cooldown_till=now + math.ceil((duration + operation.cooldown) * 1000),
        )
        self.ctx.mark_dirty("operations")
        logger.info(f"Conducting operation {operation.id} for {duration:.1f}s")

        if not duration:
            self._complete(operation, now)
            return 0

        self.scheduler.reschedule()
        return duration

    def claim_operation(self, operation: Operation):
        """Collect the rewards of a finished operation."""
        now = self.ctx.now()
        phase = operation_phase(self.operations_progress.get(operation.id), now)
        if phase == IN_PROGRESS:
            raise OperationPhaseError(f"Operation {operation.id} is not yet claimable", IN_PROGRESS)
        if phase != CLAIMABLE:
            raise OperationPhaseError(f"Operation {operation.id} has already been claimed", phase)
        self._complete(operation, now)

    def _complete(self, operation: Operation, now: int):
        finished_count = self.operations_finished.get(operation.id, 0) + 1
        self.operations_finished[operation.id] = finished_count

        resources = self.ctx.resources
        rewards = operation.rewards

        resources.add_resource(
            "reputation",
            math.ceil(rewards.reputation * self.ctx.get_multiplier("reputationGain")),
        )
        if rewards.output:
            resources.add_resource("output", math.ceil(rewards.output * self.ctx.get_multiplier("outputGain")))
        if rewards.money:
            resources.add_resource("money", math.ceil(rewards.money * self.ctx.get_multiplier("moneyGain")))

        bonus = rewards.bonus
        if bonus is not None and bonus.type == "multiplier" and bonus.duration:
            self.active_bonuses.append(ActiveBonus(bonus=bonus, expires_at=now + bonus.duration * 1000))

        for unlock in operation.articles_unlocks:
            if unlock.level <= finished_count:
                self.ctx.codex.unlock_article(unlock.id)

        progress = self.operations_progress[operation.id]
        self.operations_progress[operation.id] = OperationProgress(
            claimable_at=0,
            cooldown_till=progress.cooldown_till,
        )
        self.ctx.mark_dirty("operations")
        logger.info(f"Claimed operation {operation.id} (completed {finished_count} times)")

        self.ctx.achievements.complete_operation()
        self.scheduler.reschedule()

    def act_on_operation(self, operation: Operation) -> float:
        """Claim when claimable, conduct when idle."""
        phase = self.phase(operation.id)
        if phase == IN_PROGRESS:
            raise OperationPhaseError(f"Operation {operation.id} is already in progress", IN_PROGRESS)
        if phase == COOLDOWN:
            progress = self.operations_progress[operation.id]
            remaining = math.ceil((progress.cooldown_till - self.ctx.now()) / 1000)
            raise OperationPhaseError(f"Operation {operation.id} is in cooldown", COOLDOWN, remaining)
        if phase == CLAIMABLE:
            self.claim_operation(operation)
            return 0
        return self.conduct_operation(operation)

    def add_starting_operations(self, count: int):
        """Prestige bootstrap: raises the total without touching any operation."""
        self.starting_operations += non_negative_int(count, "starting operations")
        self.ctx.mark_dirty("operations")

    def get_snapshot(self) -> Dict[str, Any]:
        return {
            "operationsFinished": dict(self.operations_finished),
            "operationsProgress": {k: v.to_dict() for k, v in self.operations_progress.items()},
            "activeBonuses": [ab.to_dict() for ab in self.active_bonuses],
            "startingOperations": self.starting_operations,
        }

    def parse_snapshot(self, snapshot: Mapping) -> OperationsSnapshot:
        return OperationsSnapshot.model_validate(snapshot.get("operations"))

    def apply_snapshot(self, parsed: OperationsSnapshot):
        finished = dict(parsed.operations_finished)
        self.starting_operations = parsed.starting_operations + finished.pop(LEGACY_STARTING_OPERATIONS_KEY, 0)
        self.operations_finished = finished
        self.operations_progress = {k: v.build() for k, v in parsed.operations_progress.items()}
        self.active_bonuses = [b.build() for b in parsed.active_bonuses]
        # Resume the wake timer for anything still in flight
        self.scheduler.reschedule()

    def load_snapshot(self, snapshot: Mapping):
        self.apply_snapshot(self.parse_snapshot(snapshot))

    def reset(self):
        self.scheduler.reset()
        self.operations_finished = {}
        self.starting_operations = 0
        self.operations_progress = {}
        self.active_bonuses = []

    def reset_for_prestige(self):
        self.scheduler.cancel()
        self.operations_finished = {}
        self.starting_operations = 0
        self.operations_progress = {}
        self.active_bonuses = []
        self.ctx.mark_dirty("operations")
