import asyncio
import json

import pytest

from explorer.models import ActionResult
from explorer.sync import SAVING
from explorer.timeutils import format_duration, format_timestamp
from explorer.view import GameView


def test_click(engine):
    ctx = engine.ctx
    assert engine.click() is False

    ctx.resources.add_resource("energy", 5)
    assert engine.click() is True
    assert ctx.resources.energy == 0
    assert ctx.resources.output == 10


def test_click_scales_with_level(engine):
    ctx = engine.ctx
    ctx.codex.unlock_article("reef")
    ctx.operations.add_starting_operations(2)
    ctx.level.select_level(1)

    assert engine.energy_cost == 8
    assert engine.output_gain == 20


def test_tick_runs_every_round(engine):
    ctx = engine.ctx
    ctx.achievements.complete_operation()

    engine.tick()

    assert ctx.resources.energy == 10
    assert ctx.prestige.current_run_ms == ctx.config.round_interval
    assert "first_op" in ctx.achievements.unlocked_achievements


def test_act_on_operation_results(engine, clock):
    ctx = engine.ctx

    result = engine.act_on_operation("kelp_farm")
    assert result.success is False

    result = engine.act_on_operation("survey")
    assert result == ActionResult(False, "Insufficient resources to conduct operation survey")

    ctx.resources.add_resource("output", 12)
    ctx.resources.add_resource("energy", 6)
    result = engine.act_on_operation("survey")
    assert result.success is True
    assert result.duration == 30

    clock.advance(30000)
    result = engine.act_on_operation("survey")
    assert result == ActionResult(True, "Reef Survey completed.", duration=0)

    result = engine.act_on_operation("survey")
    assert result.success is False
    assert "cooldown" in result.message


def test_purchase_results(engine):
    ctx = engine.ctx
    assert engine.hire_worker("diver").success is False
    assert engine.purchase_upgrade("better_fins").success is False
    assert engine.purchase_prestige_upgrade("head_start").success is False
    assert engine.prestige().success is False

    ctx.resources.add_resource("money", 30)
    assert engine.hire_worker("diver") == ActionResult(True, "Hired Diver.")
    assert engine.purchase_upgrade("better_fins") == ActionResult(True, "Purchased Better Fins.")
    ctx.prestige.add_points(1)
    assert engine.purchase_prestige_upgrade("head_start").success is True


async def test_stop_writes_final_save(stored_engine):
    ctx = stored_engine.ctx
    stored_engine.start()
    assert stored_engine.running

    ctx.resources.add_resource("money", 7)
    await stored_engine.stop()

    assert not stored_engine.running
    raw = await ctx.sync.storage.get(ctx.config.save_key)
    assert json.loads(raw)["resources"]["money"] == 7


async def test_reset(stored_engine):
    ctx = stored_engine.ctx
    ctx.resources.add_resource("money", 7)
    await ctx.sync.save(force=True)

    await stored_engine.reset()

    assert ctx.resources.money == 0
    assert await ctx.sync.storage.get(ctx.config.save_key) is None


def test_status_view(engine):
    engine.ctx.resources.add_resource("energy", 3)
    status = GameView(engine.ctx).format_status()

    assert "energy: 3 (+10/round)" in status
    assert "Level: Shallows" in status
    assert "Reef Survey [common] - cannot afford (done 0x)" in status


@pytest.mark.parametrize("ms,expected", [
    (0, "0s"),
    (61_000, "1m 1s"),
    (3_723_000, "1h 2m 3s"),
    (7_200_000, "2h"),
])
def test_format_duration(ms, expected):
    assert format_duration(ms) == expected


def test_format_timestamp():
    assert format_timestamp(0) == "1970-01-01 00:00:00 UTC"
    assert format_timestamp(10**20) == f"{10**20} ms"


async def test_stop_lets_periodic_save_finish(stored_engine, monkeypatch):
    ctx = stored_engine.ctx
    storage = ctx.sync.storage
    write_started = asyncio.Event()
    release = asyncio.Event()
    real_set = storage.set

    async def slow_set(key, value):
        write_started.set()
        await release.wait()
        await real_set(key, value)

    monkeypatch.setattr(storage, "set", slow_set)
    ctx.resources.add_resource("money", 7)

    stored_engine.start()
    await asyncio.wait_for(write_started.wait(), timeout=5)
    stopping = asyncio.ensure_future(stored_engine.stop())
    await asyncio.sleep(0)
    assert not stopping.done()

    release.set()
    await asyncio.wait_for(stopping, timeout=5)

    assert not stored_engine.running
    assert not ctx.sync.is_dirty
    raw = await storage.get(ctx.config.save_key)
    assert json.loads(raw)["resources"]["money"] == 7


async def test_loop_iteration_plays_round_and_saves(stored_engine, clock):
    ctx = stored_engine.ctx
    stored_engine.running = True

    await stored_engine.game_loop()

    assert ctx.resources.energy == 10
    assert ctx.sync.last_save == clock.now()
    raw = await ctx.sync.storage.get(ctx.config.save_key)
    assert json.loads(raw)["resources"]["energy"] == 10

    # the next round falls inside the save interval
    clock.advance(ctx.config.round_interval)
    await stored_engine.game_loop()

    assert ctx.resources.energy == 20
    raw = await ctx.sync.storage.get(ctx.config.save_key)
    assert json.loads(raw)["resources"]["energy"] == 10
    assert ctx.sync.is_dirty


async def test_loop_idle_until_started(stored_engine):
    await stored_engine.game_loop()

    assert stored_engine.ctx.resources.energy == 0
    assert await stored_engine.ctx.sync.storage.get(stored_engine.ctx.config.save_key) is None


async def test_loop_reports_failures(stored_engine, monkeypatch):
    ctx = stored_engine.ctx
    reports = []
    stored_engine.error_handler.add_listener(lambda title, message, error: reports.append(title))

    def broken_round():
        raise RuntimeError("tide table missing")

    async def broken_set(key, value):
        raise OSError("disk full")

    monkeypatch.setattr(ctx.level, "round", broken_round)
    monkeypatch.setattr(ctx.sync.storage, "set", broken_set)
    stored_engine.running = True

    await stored_engine.game_loop()

    assert reports == ["Game round failed: RuntimeError", "Periodic save failed: OSError"]
    assert ctx.resources.energy == 10
    assert "resources" in ctx.sync.dirty


async def test_loop_skips_save_while_sync_busy(stored_engine):
    ctx = stored_engine.ctx
    reports = []
    stored_engine.error_handler.add_listener(lambda title, message, error: reports.append(title))
    ctx.sync.state = SAVING
    stored_engine.running = True

    await stored_engine.game_loop()

    assert reports == []
    assert ctx.sync.is_dirty
    assert await ctx.sync.storage.get(ctx.config.save_key) is None
