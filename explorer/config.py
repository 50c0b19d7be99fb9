"""Game configuration constants and settings."""

import os
from dataclasses import dataclass, field, replace
from typing import Dict

from dotenv import load_dotenv

GAME_VERSION = "0.0.0"

ROUND_INTERVAL_MS = 1000  # one resource round per second
SAVE_INTERVAL_MS = 5000

MAX_OFFLINE_MS = 8 * 60 * 60 * 1000  # 8 hours max
OFFLINE_MULTIPLIER = 0.5  # 50% efficiency while away

BASE_ENERGY_PRODUCTION = 1
BASE_OUTPUT_PRODUCTION = 1
BASE_WORKER_ENERGY = 10
MONEY_PER_REPUTATION = 0.3

# Click cost and gain
BASE_ENERGY_COST = 5
BASE_OUTPUT_GAIN = 10

OPERATION_SCALE_FACTOR = {
    "common": 1.2,
    "uncommon": 1.4,
    "rare": 1.6,
    "epic": 1.8,
    "legendary": 2.0,
}

PRESTIGE_BASE_OPERATIONS = 100
PRESTIGE_SOFT_CAP_THRESHOLD = 5
PRESTIGE_SOFT_CAP_MULTIPLIER = 0.1

DATABASE_PATH = "explorer.db"
SAVE_KEY = "ocean_explorer_save"
TIMEZONE = "UTC"

ENV_PREFIX = "EXPLORER_"


@dataclass(frozen=True)
class GameConfig:
    """Configuration surface consumed by the simulation core."""
    game_version: str = GAME_VERSION
    round_interval: int = ROUND_INTERVAL_MS
    save_interval: int = SAVE_INTERVAL_MS
    max_offline_time: int = MAX_OFFLINE_MS
    offline_multiplier: float = OFFLINE_MULTIPLIER
    base_energy_production: float = BASE_ENERGY_PRODUCTION
    base_output_production: float = BASE_OUTPUT_PRODUCTION
    base_worker_energy: int = BASE_WORKER_ENERGY
    money_per_reputation: float = MONEY_PER_REPUTATION
    base_energy_cost: int = BASE_ENERGY_COST
    base_output_gain: int = BASE_OUTPUT_GAIN
    operation_scale_factor: Dict[str, float] = field(default_factory=lambda: dict(OPERATION_SCALE_FACTOR))
    prestige_base_operations: int = PRESTIGE_BASE_OPERATIONS
    prestige_soft_cap_threshold: int = PRESTIGE_SOFT_CAP_THRESHOLD
    prestige_soft_cap_multiplier: float = PRESTIGE_SOFT_CAP_MULTIPLIER
    database_path: str = DATABASE_PATH
    save_key: str = SAVE_KEY
    timezone: str = TIMEZONE

    @property
    def round_seconds(self) -> float:
        return self.round_interval / 1000


_INT_FIELDS = (
    "round_interval",
    "save_interval",
    "max_offline_time",
    "base_worker_energy",
    "base_energy_cost",
    "base_output_gain",
    "prestige_base_operations",
    "prestige_soft_cap_threshold",
)
_FLOAT_FIELDS = (
    "offline_multiplier",
    "base_energy_production",
    "base_output_production",
    "money_per_reputation",
    "prestige_soft_cap_multiplier",
)
_STR_FIELDS = ("game_version", "database_path", "save_key", "timezone")


def load_config(**overrides) -> GameConfig:
    """Build the config from defaults, EXPLORER_* environment variables and overrides."""
    load_dotenv()

    values = {}
    for name in _INT_FIELDS + _FLOAT_FIELDS + _STR_FIELDS:
        raw = os.getenv(ENV_PREFIX + name.upper())
        if raw is None:
            continue
        if name in _INT_FIELDS:
            values[name] = int(raw)
        elif name in _FLOAT_FIELDS:
            values[name] = float(raw)
        else:
            values[name] = raw

    values.update(overrides)
    return replace(GameConfig(), **values)
