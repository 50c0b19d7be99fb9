"""Plain-text formatting of game state for logs and the console runner."""

from typing import List

from .context import GameContext
from .models import RESOURCES, OfflineReport
from .operations import CLAIMABLE, COOLDOWN, IN_PROGRESS
from .timeutils import format_duration


class GameView:
    """Handles formatting of game displays."""

    def __init__(self, ctx: GameContext):
        self.ctx = ctx

    def format_resources(self) -> str:
        resources = self.ctx.resources
        rates = resources.rates()
        parts = []
        for resource in RESOURCES:
            line = f"{resource}: {resources.get(resource)}"
            if rates.get(resource):
                line += f" (+{rates[resource]}/round)"
            parts.append(line)
        return " | ".join(parts)

    def format_operations(self) -> List[str]:
        """One line per available operation with its current phase."""
        operations = self.ctx.operations
        lines = []
        for operation in operations.available_operations:
            phase = operations.phase(operation.id)
            if phase == IN_PROGRESS:
                remaining = operations.get_operation_remaining_time(operation.id)
                status = f"in progress, {format_duration(int(remaining * 1000))} left"
            elif phase == CLAIMABLE:
                status = "ready to claim"
            elif phase == COOLDOWN:
                remaining = operations.get_cooldown_remaining_time(operation.id)
                status = f"cooling down, {format_duration(int(remaining * 1000))} left"
            elif operations.can_afford_operation(operation):
                status = "available"
            else:
                status = "cannot afford"
            done = operations.operations_finished.get(operation.id, 0)
            lines.append(f"{operation.name} [{operation.rarity}] - {status} (done {done}x)")
        return lines

    def format_status(self) -> str:
        lines = [self.format_resources()]
        level = self.ctx.level.current_level_config
        if level is not None:
            lines.append(f"Level: {level.name}")
        lines.append(
            f"Workers: {self.ctx.workers.total_workers} | "
            f"Operations completed: {self.ctx.operations.total_operations_completed} | "
            f"Prestige points: {self.ctx.prestige.points}"
        )
        lines.extend(self.format_operations())
        return "\n".join(lines)

    @staticmethod
    def format_offline_report(report: OfflineReport) -> str:
        if not report.gained:
            return f"Away for {format_duration(report.elapsed_ms)}, nothing was produced."
        gained = ", ".join(f"{amount} {resource}" for resource, amount in report.gained.items())
        capped = " (capped)" if report.capped else ""
        return (
            f"Away for {format_duration(report.elapsed_ms)}{capped} at "
            f"{report.efficiency:.0%} efficiency: gained {gained}"
        )
