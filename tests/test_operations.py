import pydantic
import pytest

from explorer.errors import InsufficientResourcesError, OperationPhaseError
from explorer.models import OperationProgress
from explorer.notifications import ARTICLE_UNLOCKED
from explorer.operations import CLAIMABLE, COOLDOWN, IDLE, IN_PROGRESS, operation_phase


@pytest.fixture
def survey(content):
    return content.operation("survey")


@pytest.fixture
def ops(ctx):
    return ctx.operations


def fund(ctx, **amounts):
    for resource, amount in amounts.items():
        ctx.resources.add_resource(resource, amount)


@pytest.mark.parametrize("progress,now,expected", [
    (None, 0, IDLE),
    (OperationProgress(0, 0), 10, IDLE),
    (OperationProgress(500, 900), 100, IN_PROGRESS),
    (OperationProgress(500, 900), 500, CLAIMABLE),
    (OperationProgress(500, 900), 2000, CLAIMABLE),
    (OperationProgress(0, 900), 100, COOLDOWN),
    (OperationProgress(0, 900), 900, IDLE),
])
def test_operation_phase(progress, now, expected):
    assert operation_phase(progress, now) == expected


def test_full_lifecycle(ctx, ops, survey, clock):
    clock.set(0)
    fund(ctx, output=12, energy=6)

    assert ops.conduct_operation(survey) == 30
    assert ops.operations_progress["survey"] == OperationProgress(claimable_at=30000, cooldown_till=90000)
    assert ctx.resources.output == 0
    assert ctx.resources.energy == 0

    clock.set(15000)
    assert ops.phase("survey") == IN_PROGRESS
    assert ops.get_operation_remaining_time("survey") == 15
    assert ops.operations_in_progress == {"survey"}
    assert ops.operations_claimable == set()

    clock.set(45000)
    assert ops.phase("survey") == CLAIMABLE
    ops.claim_operation(survey)
    assert ops.operations_progress["survey"] == OperationProgress(claimable_at=0, cooldown_till=90000)
    assert ops.phase("survey") == COOLDOWN
    assert ops.cooldown_times == {"survey": 45}
    assert ctx.resources.reputation == 5
    assert ctx.resources.money == 3
    assert ops.operations_finished == {"survey": 1}

    clock.set(95000)
    assert ops.phase("survey") == IDLE
    assert ops.get_cooldown_remaining_time("survey") == 0


def test_insufficient_resources_leaves_state_untouched(ctx, ops, survey):
    # common rarity scales the cost by 1.2: 12 output and 6 energy are needed
    fund(ctx, output=10, energy=5)

    with pytest.raises(InsufficientResourcesError):
        ops.conduct_operation(survey)

    assert ctx.resources.output == 10
    assert ctx.resources.energy == 5
    assert "survey" not in ops.operations_progress
    assert ops.phase("survey") == IDLE
    assert not ops.scheduler.pending


def test_can_afford_operation(ctx, ops, survey):
    fund(ctx, output=10, energy=5)
    assert ops.can_afford_operation(survey) is False

    fund(ctx, output=2, energy=1)
    assert ops.can_afford_operation(survey) is True
    assert ops.affordable_operations == {"survey": True, "sample": False}


def test_conduct_rejected_outside_idle(ctx, ops, survey, clock):
    fund(ctx, output=100, energy=100)
    ops.conduct_operation(survey)

    with pytest.raises(OperationPhaseError) as exc:
        ops.conduct_operation(survey)
    assert exc.value.phase == IN_PROGRESS

    clock.advance(30000)
    with pytest.raises(OperationPhaseError) as exc:
        ops.conduct_operation(survey)
    assert exc.value.phase == CLAIMABLE

    ops.claim_operation(survey)
    clock.advance(10000)
    with pytest.raises(OperationPhaseError) as exc:
        ops.conduct_operation(survey)
    assert exc.value.phase == COOLDOWN
    assert exc.value.remaining_seconds == 50
    # only the first conduct was paid for
    assert ctx.resources.output == 88
    assert ctx.resources.energy == 94


def test_claim_rejected_unless_claimable(ctx, ops, survey, clock):
    with pytest.raises(OperationPhaseError) as exc:
        ops.claim_operation(survey)
    assert exc.value.phase == IDLE

    fund(ctx, output=12, energy=6)
    ops.conduct_operation(survey)
    with pytest.raises(OperationPhaseError) as exc:
        ops.claim_operation(survey)
    assert exc.value.phase == IN_PROGRESS

    clock.advance(30000)
    ops.claim_operation(survey)
    with pytest.raises(OperationPhaseError):
        ops.claim_operation(survey)
    assert ops.operations_finished["survey"] == 1
    assert ctx.resources.reputation == 5


def test_zero_duration_completes_immediately(ctx, ops, content, clock, timers):
    sample = content.operation("sample")
    fund(ctx, energy=14)

    assert ops.conduct_operation(sample) == 0
    assert ops.operations_finished == {"sample": 1}
    assert ctx.resources.reputation == 1
    assert ops.operations_progress["sample"] == OperationProgress(0, clock.now() + 10000)
    assert ops.phase("sample") == COOLDOWN
    # cooldown views refresh once per round
    assert [h.delay for h in timers.active] == [1.0]


def test_cooldown_never_before_claimable(ctx, ops, content, clock):
    fund(ctx, output=1000, energy=1000, money=1000)
    for operation_id in ("survey", "sample"):
        ops.conduct_operation(content.operation(operation_id))
    clock.advance(30000)
    ops.claim_operation(content.operation("survey"))
    ops.conduct_operation(content.operation("deep_dive"))

    for progress in ops.operations_progress.values():
        assert progress.cooldown_till >= progress.claimable_at


def test_claim_grants_bonus_and_article(ctx, ops, survey, clock):
    fund(ctx, output=12, energy=6)
    ops.conduct_operation(survey)
    clock.advance(30000)
    ops.claim_operation(survey)

    assert len(ops.active_bonuses) == 1
    assert ops.active_bonuses[0].expires_at == clock.now() + 120000
    assert ops.multipliers()["outputGain"] == 2
    assert ctx.get_multiplier("outputGain") == 2
    assert "reef" in ctx.codex.unlocked_articles
    assert ctx.achievements.operations_completed == 1
    kinds = [n.kind for n in ctx.notifications.consume()]
    assert ARTICLE_UNLOCKED in kinds


def test_duration_reduction_applies(ctx, ops, survey, clock):
    ctx.prestige.purchased_upgrades["fast_boats"] = 1
    fund(ctx, output=12, energy=6)

    assert ops.conduct_operation(survey) == 15
    assert ops.operations_progress["survey"].claimable_at == clock.now() + 15000
    assert ops.operations_progress["survey"].cooldown_till == clock.now() + 75000


def test_cost_reduction_applies(ctx, ops, survey):
    ctx.upgrades.unlocked_upgrades["better_fins"] = 1
    # 1.2 / 1.25 = 0.96: 10 output and 5 energy now suffice
    fund(ctx, output=10, energy=5)

    ops.conduct_operation(survey)
    assert ctx.resources.output == 0
    assert ctx.resources.energy == 0


def test_requirements_gate_availability(ctx, ops, survey, clock):
    assert [op.id for op in ops.available_operations] == ["survey", "sample"]

    fund(ctx, output=12, energy=6)
    ops.conduct_operation(survey)
    clock.advance(30000)
    ops.claim_operation(survey)

    assert [op.id for op in ops.available_operations] == ["survey", "sample", "deep_dive"]


def test_act_on_operation(ctx, ops, survey, clock):
    fund(ctx, output=12, energy=6)

    assert ops.act_on_operation(survey) == 30
    with pytest.raises(OperationPhaseError):
        ops.act_on_operation(survey)

    clock.advance(30000)
    assert ops.act_on_operation(survey) == 0
    assert ops.operations_finished["survey"] == 1

    with pytest.raises(OperationPhaseError) as exc:
        ops.act_on_operation(survey)
    assert exc.value.phase == COOLDOWN
    assert exc.value.remaining_seconds == 60


def test_starting_operations_count_toward_total(ops):
    ops.add_starting_operations(5)

    assert ops.total_operations_completed == 5
    assert ops.operations_finished == {}
    assert ops.get_snapshot()["startingOperations"] == 5


def test_legacy_starting_operations_migrated(ops):
    snapshot = {
        "operations": {
            "operationsFinished": {"survey": 2, "_prestige_start": 3},
            "operationsProgress": {},
            "activeBonuses": [],
        }
    }
    ops.load_snapshot(snapshot)

    assert ops.operations_finished == {"survey": 2}
    assert ops.starting_operations == 3
    assert ops.total_operations_completed == 5


def test_snapshot_round_trip_resumes_timer(ctx, ops, survey, clock, timers):
    fund(ctx, output=12, energy=6)
    ops.conduct_operation(survey)
    snapshot = {"operations": ops.get_snapshot()}

    ops.reset()
    assert not ops.scheduler.pending

    ops.load_snapshot(snapshot)
    assert ops.phase("survey") == IN_PROGRESS
    assert ops.scheduler.pending
    assert [h.delay for h in timers.active] == [30.0]


def test_snapshot_round_trip_keeps_counters_and_bonuses(ctx, ops, survey, clock):
    fund(ctx, output=12, energy=6)
    ops.conduct_operation(survey)
    clock.advance(30000)
    ops.claim_operation(survey)
    ops.add_starting_operations(3)
    saved = ops.get_snapshot()

    ops.reset()
    ops.load_snapshot({"operations": saved})

    assert ops.operations_finished == {"survey": 1}
    assert ops.starting_operations == 3
    assert [b.bonus.target for b in ops.active_bonuses] == ["outputGain"]
    assert ops.get_snapshot() == saved


@pytest.mark.parametrize("section", [
    {"operationsFinished": {}, "operationsProgress": {}, "activeBonuses": {}},
    {"operationsFinished": {"survey": -1}, "operationsProgress": {}, "activeBonuses": []},
    {"operationsFinished": {}, "operationsProgress": {"survey": {"claimableAt": "soon"}}, "activeBonuses": []},
    {"operationsFinished": {}, "operationsProgress": {}, "activeBonuses": [{"bonus": {}, "expiresAt": 1}]},
])
def test_parse_snapshot_rejects_malformed(ops, section):
    with pytest.raises(pydantic.ValidationError):
        ops.parse_snapshot({"operations": section})
