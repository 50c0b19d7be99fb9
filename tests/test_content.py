import json
from pathlib import Path

import pytest

from explorer.config import load_config
from explorer.content import ContentLoader
from explorer.errors import ContentError


def test_parse_operation(content):
    survey = content.operation("survey")

    assert survey.rarity == "common"
    assert survey.cost == {"output": 10, "energy": 5}
    assert survey.rewards.bonus.target == "outputGain"
    assert survey.articles_unlocks[0].id == "reef"
    assert content.operation("deep_dive").requirements[0].operation_id == "survey"


def test_unknown_operation(content):
    with pytest.raises(ContentError):
        content.operation("kelp_farm")


@pytest.mark.parametrize("patch", [
    {"rarity": "mythic"},
    {"cost": {"reputation": 3}},
    {"cost": {"energy": -1}},
    {"duration": 1.5},
    {"rewards": {"reputation": 1, "bonus": {"type": "multiplier", "target": "luck", "value": 2}}},
])
def test_invalid_operation_rejected(raw_content, patch):
    raw_content["operations"][0].update(patch)
    with pytest.raises(ContentError):
        ContentLoader().from_dict(raw_content)


def test_missing_field_rejected(raw_content):
    del raw_content["workers"][0]["cost"]
    with pytest.raises(ContentError):
        ContentLoader().from_dict(raw_content)


@pytest.mark.parametrize("effect", [
    {"type": "timeTravel", "count": 1},
    {"type": "startingResource", "resource": "pearls", "amount": 5},
    {"type": "startingWorkers", "workerId": "diver", "count": True},
])
def test_invalid_prestige_effect_rejected(raw_content, effect):
    raw_content["prestige_upgrades"][0]["effects"] = [effect]
    with pytest.raises(ContentError):
        ContentLoader().from_dict(raw_content)


def test_unknown_article_reference(raw_content):
    raw_content["articles"] = []
    with pytest.raises(ContentError):
        ContentLoader().from_dict(raw_content)


def test_load_from_directory(tmp_path, raw_content):
    (tmp_path / "operations.json").write_text(json.dumps(raw_content["operations"]))
    (tmp_path / "articles.json").write_text(json.dumps(raw_content["articles"]))

    content = ContentLoader(str(tmp_path)).load()

    assert [op.id for op in content.operations] == ["survey", "sample", "deep_dive"]
    assert content.workers == []


def test_load_bad_json(tmp_path):
    (tmp_path / "workers.json").write_text("[{")
    with pytest.raises(ContentError):
        ContentLoader(str(tmp_path)).load()


def test_config_from_environment(monkeypatch):
    monkeypatch.setenv("EXPLORER_ROUND_INTERVAL", "250")
    monkeypatch.setenv("EXPLORER_OFFLINE_MULTIPLIER", "0.75")
    monkeypatch.setenv("EXPLORER_SAVE_KEY", "slot_2")

    config = load_config(max_offline_time=1000)

    assert config.round_interval == 250
    assert config.round_seconds == 0.25
    assert config.offline_multiplier == 0.75
    assert config.save_key == "slot_2"
    assert config.max_offline_time == 1000
    assert config.operation_scale_factor["legendary"] == 2.0


def test_shipped_content_loads():
    content_dir = Path(__file__).resolve().parent.parent / "content"
    content = ContentLoader(str(content_dir)).load()

    assert [level.id for level in content.levels] == ["shoreline", "kelp_forest", "coral_reef"]
    assert content.operation("plankton_sampling").duration == 0
    assert len(content.prestige_upgrades) == 5
