"""Offline reconciliation: steady production for the time spent away."""

import logging
import math
from typing import Optional

from .context import GameContext
from .models import OfflineReport
from .notifications import OFFLINE_PROGRESS
from .timeutils import format_duration

logger = logging.getLogger(__name__)


def offline_efficiency(ctx: GameContext) -> float:
    return ctx.config.offline_multiplier * ctx.get_multiplier("offlineEfficiency")


def compute_offline_progress(ctx: GameContext, saved_timestamp: int, now: Optional[int] = None) -> OfflineReport:
    """Work out what the player earned while away, without applying it.

    Only steady per-round production counts, so operation bonuses are left
    out of the rates. Operations, cooldowns and the bonus list stay exactly
    as saved.
    """
    if now is None:
        now = ctx.now()
    away = max(0, now - saved_timestamp)
    elapsed = min(away, ctx.config.max_offline_time)
    rounds = elapsed // ctx.config.round_interval
    with ctx.without_timed_bonuses():
        efficiency = offline_efficiency(ctx)
        rates = ctx.resources.rates()

    gained = {}
    for resource, rate in rates.items():
        amount = math.floor(rate * rounds * efficiency)
        if amount >= 1:
            gained[resource] = amount

    return OfflineReport(
        elapsed_ms=elapsed,
        rounds=rounds,
        efficiency=efficiency,
        capped=away > ctx.config.max_offline_time,
        gained=gained,
    )


def apply_offline_progress(ctx: GameContext, saved_timestamp: int, now: Optional[int] = None) -> OfflineReport:
    """Credit offline production to the ledger and announce it."""
    report = compute_offline_progress(ctx, saved_timestamp, now)
    for resource, amount in report.gained.items():
        ctx.resources.add_resource(resource, amount)

    if report.gained:
        summary = ", ".join(f"{amount} {resource}" for resource, amount in report.gained.items())
        away = format_duration(report.elapsed_ms)
        if report.capped:
            away += " (capped)"
        ctx.notifications.notify(OFFLINE_PROGRESS, "Welcome back!", f"While away for {away} you gained {summary}")
        logger.info(f"Offline progress over {report.rounds} rounds: {summary}")
    return report
