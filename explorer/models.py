"""Data models for the Ocean Explorer simulation core."""

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple, get_args

Resource = Literal["energy", "output", "reputation", "money"]

Rarity = Literal["common", "uncommon", "rare", "epic", "legendary"]

GainMultiplier = Literal[
    "energyGain",
    "outputGain",
    "operationCostReduction",  # 1.2 means a 20% reduction
    "reputationGain",
    "moneyGain",
    "workersEfficiency",
    "operationDurationReduction",  # 1.2 means a 20% reduction
    "offlineEfficiency",
    "workerCostReduction",
]

FlatGain = Literal["prestigeBonus"]

RESOURCES: Tuple[str, ...] = get_args(Resource)
RARITIES: Tuple[str, ...] = get_args(Rarity)
GAIN_MULTIPLIERS: Tuple[str, ...] = get_args(GainMultiplier)
FLAT_GAINS: Tuple[str, ...] = get_args(FlatGain)

# Sub-stores written into every snapshot, in load order
STORES_TO_SYNC = (
    "resources",
    "workers",
    "operations",
    "codex",
    "level",
    "achievements",
    "upgrades",
    "prestige",
)


@dataclass(frozen=True)
class Bonus:
    """A multiplier or flat gain granted by a reward."""
    type: str  # 'multiplier' or 'flat'
    target: str
    value: float
    id: Optional[str] = None
    duration: Optional[int] = None  # seconds

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type, "target": self.target, "value": self.value}
        if self.id is not None:
            data["id"] = self.id
        if self.duration is not None:
            data["duration"] = self.duration
        return data


@dataclass(frozen=True)
class Condition:
    """An unlock requirement or achievement condition.

    Only the fields that matter for ``type`` are set.
    """
    type: str
    count: Optional[int] = None
    level: Optional[int] = None
    operation_id: Optional[str] = None
    worker_id: Optional[str] = None
    upgrade_id: Optional[str] = None
    resource: Optional[str] = None
    amount: Optional[int] = None
    rate: Optional[float] = None
    seconds: Optional[int] = None


@dataclass(frozen=True)
class Reward:
    reputation: int
    output: Optional[int] = None
    money: Optional[int] = None
    bonus: Optional[Bonus] = None


@dataclass(frozen=True)
class ArticleUnlock:
    """Completing an operation ``level`` times opens article ``id``."""
    level: int
    id: str


@dataclass(frozen=True)
class Operation:
    """An immutable operation definition."""
    id: str
    name: str
    rarity: str
    duration: int  # seconds
    cooldown: int  # seconds, on top of duration
    cost: Dict[str, int]
    rewards: Reward
    description: str = ""
    requirements: Tuple[Condition, ...] = ()
    articles_unlocks: Tuple[ArticleUnlock, ...] = ()


@dataclass(frozen=True)
class OperationProgress:
    """The entire lifecycle state of one operation; 0 means not set."""
    claimable_at: int = 0
    cooldown_till: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"claimableAt": self.claimable_at, "cooldownTill": self.cooldown_till}


@dataclass(frozen=True)
class ActiveBonus:
    bonus: Bonus
    expires_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {"bonus": self.bonus.to_dict(), "expiresAt": self.expires_at}


@dataclass(frozen=True)
class Worker:
    id: str
    name: str
    cost: int
    energy_production: int
    cost_multiplier: float
    output_production: int = 0
    description: str = ""
    unlock_conditions: Tuple[Condition, ...] = ()


@dataclass(frozen=True)
class UpgradeEffect:
    type: str  # one of GAIN_MULTIPLIERS
    value: float


@dataclass(frozen=True)
class Upgrade:
    id: str
    name: str
    category: str
    cost: Dict[str, int]
    cost_multiplier: float
    effects: Tuple[UpgradeEffect, ...]
    max_level: int
    unlock_condition: Optional[Condition] = None
    description: str = ""


@dataclass(frozen=True)
class Level:
    id: str
    name: str
    progress_start: int
    progress_end: int
    operations_required: int
    articles_required: Tuple[str, ...]
    energy_cost_multiplier: float
    output_gain_multiplier: float
    description: str = ""
    operations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Article:
    id: str
    title: str
    content: str = ""


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    category: str
    condition: Condition
    reward: Optional[Bonus] = None
    description: str = ""
    icon: str = ""
    hidden: bool = False


@dataclass(frozen=True)
class PrestigeEffect:
    """One effect of a prestige upgrade; fields depend on ``type``."""
    type: str  # multiplier, startingResource, startingWorkers, levelThreshold, startingOperations
    target: Optional[str] = None
    value: Optional[float] = None
    resource: Optional[str] = None
    amount: Optional[int] = None
    worker_id: Optional[str] = None
    count: Optional[int] = None
    level_index: Optional[int] = None
    reduction: Optional[float] = None


@dataclass(frozen=True)
class PrestigeUpgrade:
    id: str
    name: str
    category: str
    base_cost: int
    effects: Tuple[PrestigeEffect, ...]
    cost_multiplier: Optional[float] = None  # stackable upgrades only
    max_level: Optional[int] = None  # None means one-time
    description: str = ""


@dataclass
class ActionResult:
    """Result of performing a game action."""
    success: bool
    message: str
    duration: Optional[float] = None


@dataclass
class OfflineReport:
    """What offline reconciliation granted on load."""
    elapsed_ms: int
    rounds: int
    efficiency: float
    capped: bool = False
    gained: Dict[str, int] = field(default_factory=dict)
