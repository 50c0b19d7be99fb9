"""Loading of static game content (operations, workers, levels, ...)."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from .errors import ContentError
from .models import Achievement, Article, Level, Operation, PrestigeUpgrade, Upgrade, Worker
from .schemas import (
    AchievementRecord,
    ArticleRecord,
    LevelRecord,
    OperationRecord,
    PrestigeUpgradeRecord,
    UpgradeRecord,
    WorkerRecord,
)

logger = logging.getLogger(__name__)

CONTENT_FILES = {
    "workers": "workers.json",
    "levels": "levels.json",
    "operations": "operations.json",
    "upgrades": "upgrades.json",
    "achievements": "achievements.json",
    "articles": "articles.json",
    "prestige_upgrades": "prestigeUpgrades.json",
}


@dataclass
class GameContent:
    """Every definition the core reads; never mutated after loading."""
    workers: List[Worker] = field(default_factory=list)
    levels: List[Level] = field(default_factory=list)
    operations: List[Operation] = field(default_factory=list)
    upgrades: List[Upgrade] = field(default_factory=list)
    achievements: List[Achievement] = field(default_factory=list)
    articles: List[Article] = field(default_factory=list)
    prestige_upgrades: List[PrestigeUpgrade] = field(default_factory=list)

    def operation(self, operation_id: str) -> Operation:
        for operation in self.operations:
            if operation.id == operation_id:
                return operation
        raise ContentError(f"Unknown operation: {operation_id}")


RECORDS = {
    "workers": WorkerRecord,
    "levels": LevelRecord,
    "operations": OperationRecord,
    "upgrades": UpgradeRecord,
    "achievements": AchievementRecord,
    "articles": ArticleRecord,
    "prestige_upgrades": PrestigeUpgradeRecord,
}


class ContentLoader:
    """Turns raw JSON definitions into a GameContent."""

    def __init__(self, content_dir: Optional[str] = None):
        self.content_dir = Path(content_dir) if content_dir else None

    def from_dict(self, raw: Mapping[str, Any]) -> GameContent:
        content = GameContent()
        for kind, record in RECORDS.items():
            items = raw.get(kind, [])
            try:
                parsed = [record.model_validate(item).build() for item in items]
            except (TypeError, ValidationError) as e:
                raise ContentError(f"Invalid {kind} content: {e}") from e
            setattr(content, kind, parsed)
        # Levels are addressed by index in progression order
        content.levels.sort(key=lambda level: level.progress_start)
        self._check_references(content)
        return content

    def _check_references(self, content: GameContent):
        article_ids = {a.id for a in content.articles}
        for operation in content.operations:
            for unlock in operation.articles_unlocks:
                if unlock.id not in article_ids:
                    raise ContentError(f"Operation {operation.id} unlocks unknown article {unlock.id}")

    def load(self) -> GameContent:
        """Read every content file from the content directory."""
        if self.content_dir is None:
            raise ContentError("No content directory configured")
        raw: Dict[str, Any] = {}
        for kind, filename in CONTENT_FILES.items():
            path = self.content_dir / filename
            if not path.exists():
                logger.warning(f"Content file {path} not found, using no {kind}")
                continue
            try:
                with path.open(encoding="utf-8") as f:
                    raw[kind] = json.load(f)
            except json.JSONDecodeError as e:
                raise ContentError(f"Failed to parse {path}: {e}") from e
        content = self.from_dict(raw)
        logger.info(
            f"Loaded content: {len(content.operations)} operations, {len(content.workers)} workers, "
            f"{len(content.levels)} levels, {len(content.upgrades)} upgrades"
        )
        return content
