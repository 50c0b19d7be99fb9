"""Pydantic schemas for save snapshots and content files.

Fields use the camelCase keys written to JSON as aliases. Counters are
strict: floats, booleans and numeric strings are rejected rather than
coerced, so a tampered save fails validation instead of loading.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, Strict, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import (
    Achievement,
    ActiveBonus,
    Article,
    ArticleUnlock,
    Bonus,
    Condition,
    FlatGain,
    GainMultiplier,
    Level,
    Operation,
    OperationProgress,
    PrestigeEffect,
    PrestigeUpgrade,
    Rarity,
    Resource,
    Reward,
    Upgrade,
    UpgradeEffect,
    Worker,
)

Count = Annotated[NonNegativeInt, Strict()]
# Epoch milliseconds; 0 means not set
Timestamp = Count
Factor = Annotated[float, Strict(), Field(ge=0, allow_inf_nan=False)]

_count = TypeAdapter(Count)
_resource = TypeAdapter(Resource)


def non_negative_int(value: Any, name: str = "value") -> int:
    """Check a runtime amount against the same rule saved counters follow."""
    try:
        return _count.validate_python(value)
    except PydanticValidationError as e:
        raise ValidationError(f"{name} must be a non-negative integer, got {value!r}") from e


def resource_key(value: Any) -> str:
    try:
        return _resource.validate_python(value)
    except PydanticValidationError as e:
        raise ValidationError(f"Unknown resource: {value!r}") from e


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)


# Bonuses


class MultiplierBonusRecord(Record):
    type: Literal["multiplier"]
    target: GainMultiplier
    value: Factor
    id: Optional[str] = None
    duration: Optional[Count] = None

    def build(self) -> Bonus:
        return Bonus(type=self.type, target=self.target, value=self.value, id=self.id, duration=self.duration)


class FlatBonusRecord(Record):
    type: Literal["flat"]
    target: FlatGain
    value: Count
    id: Optional[str] = None
    duration: Optional[Count] = None

    def build(self) -> Bonus:
        return Bonus(type=self.type, target=self.target, value=self.value, id=self.id, duration=self.duration)


BonusRecord = Annotated[Union[MultiplierBonusRecord, FlatBonusRecord], Field(discriminator="type")]


# Snapshot sections


class ResourcesSnapshot(Record):
    energy: Count
    output: Count
    reputation: Count
    money: Count


class WorkersSnapshot(Record):
    hired_workers: Dict[str, Count] = Field(alias="hiredWorkers")


class OperationProgressRecord(Record):
    claimable_at: Timestamp = Field(alias="claimableAt")
    cooldown_till: Timestamp = Field(alias="cooldownTill")

    def build(self) -> OperationProgress:
        return OperationProgress(claimable_at=self.claimable_at, cooldown_till=self.cooldown_till)


class ActiveBonusRecord(Record):
    bonus: BonusRecord
    expires_at: Timestamp = Field(alias="expiresAt")

    def build(self) -> ActiveBonus:
        return ActiveBonus(bonus=self.bonus.build(), expires_at=self.expires_at)


class OperationsSnapshot(Record):
    operations_finished: Dict[str, Count] = Field(alias="operationsFinished")
    # Saves written before the counter existed omit it
    starting_operations: Count = Field(0, alias="startingOperations")
    operations_progress: Dict[str, OperationProgressRecord] = Field(alias="operationsProgress")
    active_bonuses: List[ActiveBonusRecord] = Field(alias="activeBonuses")


class CodexSnapshot(Record):
    unlocked_articles: List[str] = Field(alias="unlockedArticles")


class LevelSnapshot(Record):
    current_level: Count = Field(alias="currentLevel")
    max_level_reached: Count = Field(alias="maxLevelReached")


class UpgradesSnapshot(Record):
    unlocked_upgrades: Dict[str, Count] = Field(alias="unlockedUpgrades")


class AchievementsSnapshot(Record):
    total_resources: Dict[Resource, Count] = Field(alias="totalResources")
    total_workers: Count = Field(alias="totalWorkers")
    total_articles_opened: Count = Field(alias="totalArticlesOpened")
    max_level_reached: Count = Field(alias="maxLevelReached")
    operations_completed: Count = Field(alias="operationsCompleted")
    unlocked_achievements: List[str] = Field(alias="unlockedAchievements")


class PrestigeStats(Record):
    first_prestige_at: Optional[Timestamp] = Field(None, alias="firstPrestigeAt")
    fastest_run_seconds: Optional[Count] = Field(None, alias="fastestRunSeconds")
    highest_operations_before_prestige: Count = Field(alias="highestOperationsBeforePrestige")

    def to_dict(self) -> Dict[str, Optional[int]]:
        return self.model_dump(by_alias=True)


class PrestigeSnapshot(Record):
    points: Count
    lifetime_points: Count = Field(alias="lifetimePoints")
    prestige_count: Count = Field(alias="prestigeCount")
    current_run_seconds: Count = Field(alias="currentRunSeconds")
    total_playtime_seconds: Count = Field(alias="totalPlaytimeSeconds")
    purchased_upgrades: Dict[str, Count] = Field(alias="purchasedUpgrades")
    stats: PrestigeStats


class GameSave(Record):
    """A whole save document; every section is checked before any is applied."""
    version: str
    timestamp: Timestamp
    resources: ResourcesSnapshot
    workers: WorkersSnapshot
    operations: OperationsSnapshot
    codex: CodexSnapshot
    level: LevelSnapshot
    achievements: AchievementsSnapshot
    upgrades: UpgradesSnapshot
    prestige: PrestigeSnapshot


# Content records


class ConditionRecord(Record):
    type: str
    count: Optional[Count] = None
    level: Optional[Count] = None
    operation_id: Optional[str] = Field(None, alias="operationId")
    worker_id: Optional[str] = Field(None, alias="workerId")
    upgrade_id: Optional[str] = Field(None, alias="upgradeId")
    resource: Optional[Resource] = None
    amount: Optional[Count] = None
    rate: Optional[Factor] = None
    seconds: Optional[Count] = None

    def build(self) -> Condition:
        return Condition(
            type=self.type,
            count=self.count,
            level=self.level,
            operation_id=self.operation_id,
            worker_id=self.worker_id,
            upgrade_id=self.upgrade_id,
            resource=self.resource,
            amount=self.amount,
            rate=self.rate,
            seconds=self.seconds,
        )


def _build_all(records) -> tuple:
    return tuple(record.build() for record in records)


class RewardRecord(Record):
    reputation: Count
    output: Optional[Count] = None
    money: Optional[Count] = None
    bonus: Optional[BonusRecord] = None


class ArticleUnlockRecord(Record):
    level: Count
    id: str


class OperationRecord(Record):
    id: str
    name: str
    description: str = ""
    rarity: Rarity
    duration: Count
    cooldown: Count
    cost: Dict[Resource, Count]
    rewards: RewardRecord
    requirements: List[ConditionRecord] = Field(default_factory=list)
    articles_unlocks: List[ArticleUnlockRecord] = Field(default_factory=list, alias="articlesUnlocks")

    @field_validator("cost")
    @classmethod
    def check_cost(cls, cost: Dict[str, int]) -> Dict[str, int]:
        if not any(cost.get(k) for k in ("energy", "money", "output")):
            raise ValueError("At least one of energy, money or output must be specified")
        return cost

    def build(self) -> Operation:
        rewards = self.rewards
        return Operation(
            id=self.id,
            name=self.name,
            description=self.description,
            rarity=self.rarity,
            duration=self.duration,
            cooldown=self.cooldown,
            cost=dict(self.cost),
            rewards=Reward(
                reputation=rewards.reputation,
                output=rewards.output,
                money=rewards.money,
                bonus=rewards.bonus.build() if rewards.bonus else None,
            ),
            requirements=_build_all(self.requirements),
            articles_unlocks=tuple(ArticleUnlock(level=u.level, id=u.id) for u in self.articles_unlocks),
        )


class ProductionRecord(Record):
    energy: Count
    output: Count = 0


class WorkerRecord(Record):
    id: str
    name: str
    description: str = ""
    cost: Count
    production: ProductionRecord
    cost_multiplier: Factor = Field(alias="costMultiplier")
    unlock_conditions: List[ConditionRecord] = Field(default_factory=list, alias="unlockConditions")

    def build(self) -> Worker:
        return Worker(
            id=self.id,
            name=self.name,
            description=self.description,
            cost=self.cost,
            energy_production=self.production.energy,
            output_production=self.production.output,
            cost_multiplier=self.cost_multiplier,
            unlock_conditions=_build_all(self.unlock_conditions),
        )


class UpgradeEffectRecord(Record):
    type: GainMultiplier
    value: Factor


class UpgradeRecord(Record):
    id: str
    name: str
    description: str = ""
    category: str
    cost: Dict[Resource, Count]
    cost_multiplier: Factor = Field(alias="costMultiplier")
    effect: List[UpgradeEffectRecord] = Field(default_factory=list)
    unlock_condition: Optional[ConditionRecord] = Field(None, alias="unlockCondition")
    max_level: Count = Field(alias="maxLevel")

    def build(self) -> Upgrade:
        return Upgrade(
            id=self.id,
            name=self.name,
            description=self.description,
            category=self.category,
            cost=dict(self.cost),
            cost_multiplier=self.cost_multiplier,
            effects=tuple(UpgradeEffect(type=e.type, value=e.value) for e in self.effect),
            unlock_condition=self.unlock_condition.build() if self.unlock_condition else None,
            max_level=self.max_level,
        )


class ProgressRecord(Record):
    start: Count
    end: Count


class UnlockCostRecord(Record):
    operations_completed: Count = Field(alias="operationsCompleted")
    unlocked_articles: List[str] = Field(default_factory=list, alias="unlockedArticles")


class LevelRecord(Record):
    id: str
    name: str
    description: str = ""
    progress: ProgressRecord
    unlock_cost: UnlockCostRecord = Field(alias="unlockCost")
    energy_cost_multiplier: Factor = Field(alias="energyCostMultiplier")
    samples_gain_multiplier: Factor = Field(alias="samplesGainMultiplier")
    operations: List[str] = Field(default_factory=list)

    def build(self) -> Level:
        return Level(
            id=self.id,
            name=self.name,
            description=self.description,
            progress_start=self.progress.start,
            progress_end=self.progress.end,
            operations_required=self.unlock_cost.operations_completed,
            articles_required=tuple(self.unlock_cost.unlocked_articles),
            energy_cost_multiplier=self.energy_cost_multiplier,
            output_gain_multiplier=self.samples_gain_multiplier,
            operations=tuple(self.operations),
        )


class ArticleRecord(Record):
    id: str
    title: str
    content: str = ""

    def build(self) -> Article:
        return Article(id=self.id, title=self.title, content=self.content)


class AchievementRecord(Record):
    id: str
    name: str
    description: str = ""
    icon: str = ""
    category: str = "general"
    condition: ConditionRecord
    reward: Optional[BonusRecord] = None
    hidden: Annotated[bool, Strict()] = False

    def build(self) -> Achievement:
        return Achievement(
            id=self.id,
            name=self.name,
            description=self.description,
            icon=self.icon,
            category=self.category,
            condition=self.condition.build(),
            reward=self.reward.build() if self.reward else None,
            hidden=self.hidden,
        )


class MultiplierEffectRecord(Record):
    type: Literal["multiplier"]
    target: GainMultiplier
    value: Factor

    def build(self) -> PrestigeEffect:
        return PrestigeEffect(type=self.type, target=self.target, value=self.value)


class StartingResourceEffectRecord(Record):
    type: Literal["startingResource"]
    resource: Resource
    amount: Count

    def build(self) -> PrestigeEffect:
        return PrestigeEffect(type=self.type, resource=self.resource, amount=self.amount)


class StartingWorkersEffectRecord(Record):
    type: Literal["startingWorkers"]
    worker_id: str = Field(alias="workerId")
    count: Count

    def build(self) -> PrestigeEffect:
        return PrestigeEffect(type=self.type, worker_id=self.worker_id, count=self.count)


class LevelThresholdEffectRecord(Record):
    type: Literal["levelThreshold"]
    level_index: Count = Field(alias="levelIndex")
    reduction: Factor

    def build(self) -> PrestigeEffect:
        return PrestigeEffect(type=self.type, level_index=self.level_index, reduction=self.reduction)


class StartingOperationsEffectRecord(Record):
    type: Literal["startingOperations"]
    count: Count

    def build(self) -> PrestigeEffect:
        return PrestigeEffect(type=self.type, count=self.count)


PrestigeEffectRecord = Annotated[
    Union[
        MultiplierEffectRecord,
        StartingResourceEffectRecord,
        StartingWorkersEffectRecord,
        LevelThresholdEffectRecord,
        StartingOperationsEffectRecord,
    ],
    Field(discriminator="type"),
]


class PrestigeUpgradeRecord(Record):
    id: str
    name: str
    description: str = ""
    category: str
    base_cost: Count = Field(alias="baseCost")
    cost_multiplier: Optional[Factor] = Field(None, alias="costMultiplier")  # stackable upgrades only
    max_level: Optional[Count] = Field(None, alias="maxLevel")
    effects: List[PrestigeEffectRecord] = Field(default_factory=list)

    def build(self) -> PrestigeUpgrade:
        return PrestigeUpgrade(
            id=self.id,
            name=self.name,
            description=self.description,
            category=self.category,
            base_cost=self.base_cost,
            cost_multiplier=self.cost_multiplier,
            max_level=self.max_level,
            effects=_build_all(self.effects),
        )
