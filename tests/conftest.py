"""Shared fixtures: a manual clock, fake timers and a small content set."""

import copy

import pytest

from explorer.config import GameConfig
from explorer.content import ContentLoader
from explorer.engine import GameEngine
from explorer.storage import SaveStorage
from explorer.timeutils import ManualClock

T0 = 1_700_000_000_000

RAW_CONTENT = {
    "operations": [
        {
            "id": "survey",
            "name": "Reef Survey",
            "rarity": "common",
            "duration": 30,
            "cooldown": 60,
            "cost": {"output": 10, "energy": 5},
            "rewards": {
                "reputation": 5,
                "money": 3,
                "bonus": {"type": "multiplier", "target": "outputGain", "value": 2, "duration": 120},
            },
            "articlesUnlocks": [{"level": 1, "id": "reef"}],
        },
        {
            "id": "sample",
            "name": "Quick Sample",
            "rarity": "uncommon",
            "duration": 0,
            "cooldown": 10,
            "cost": {"energy": 10},
            "rewards": {"reputation": 1},
        },
        {
            "id": "deep_dive",
            "name": "Deep Dive",
            "rarity": "rare",
            "duration": 60,
            "cooldown": 0,
            "cost": {"money": 50},
            "rewards": {"reputation": 20, "output": 15},
            "requirements": [{"type": "operationCompleted", "operationId": "survey"}],
        },
    ],
    "workers": [
        {
            "id": "diver",
            "name": "Diver",
            "cost": 10,
            "production": {"energy": 2, "output": 1},
            "costMultiplier": 1.5,
            "unlockConditions": [{"type": "default"}],
        },
    ],
    "levels": [
        {
            "id": "reef",
            "name": "Coral Reef",
            "progress": {"start": 100, "end": 200},
            "unlockCost": {"unlockedArticles": ["reef"], "operationsCompleted": 2},
            "energyCostMultiplier": 1.5,
            "samplesGainMultiplier": 2,
        },
        {
            "id": "shallows",
            "name": "Shallows",
            "progress": {"start": 0, "end": 100},
            "unlockCost": {"unlockedArticles": [], "operationsCompleted": 0},
            "energyCostMultiplier": 1,
            "samplesGainMultiplier": 1,
        },
    ],
    "upgrades": [
        {
            "id": "better_fins",
            "name": "Better Fins",
            "category": "operations",
            "cost": {"money": 20},
            "costMultiplier": 2,
            "effect": [{"type": "operationCostReduction", "value": 1.25}],
            "maxLevel": 2,
        },
    ],
    "achievements": [
        {
            "id": "first_op",
            "name": "First Steps",
            "category": "operations",
            "condition": {"type": "operationsCompleted", "count": 1},
            "reward": {"type": "multiplier", "target": "energyGain", "value": 1.5},
        },
    ],
    "articles": [
        {"id": "reef", "title": "Life on the Reef"},
    ],
    "prestige_upgrades": [
        {
            "id": "head_start",
            "name": "Head Start",
            "category": "starting",
            "baseCost": 1,
            "effects": [{"type": "startingResource", "resource": "energy", "amount": 100}],
        },
        {
            "id": "veteran",
            "name": "Veteran Crew",
            "category": "starting",
            "baseCost": 1,
            "effects": [{"type": "startingOperations", "count": 5}],
        },
        {
            "id": "fast_boats",
            "name": "Fast Boats",
            "category": "production",
            "baseCost": 2,
            "costMultiplier": 2,
            "maxLevel": 3,
            "effects": [{"type": "multiplier", "target": "operationDurationReduction", "value": 2}],
        },
    ],
}


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeTimers:
    """Records call_later requests instead of scheduling them."""

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self):
        return [h for h in self.handles if not h.cancelled]

    def fire(self):
        """Run the single outstanding timer."""
        (handle,) = self.active
        handle.cancelled = True
        handle.callback()


@pytest.fixture
def raw_content():
    return copy.deepcopy(RAW_CONTENT)


@pytest.fixture
def content(raw_content):
    return ContentLoader().from_dict(raw_content)


@pytest.fixture
def clock():
    return ManualClock(T0)


@pytest.fixture
def timers():
    return FakeTimers()


@pytest.fixture
def config(tmp_path):
    return GameConfig(database_path=str(tmp_path / "test.db"))


@pytest.fixture
def engine(content, config, clock, timers):
    return GameEngine(
        content,
        config,
        storage=SaveStorage(config.database_path),
        clock=clock,
        timers=timers,
    )


@pytest.fixture
def ctx(engine):
    return engine.ctx


@pytest.fixture
async def stored_engine(engine):
    await engine.initialize()
    return engine
