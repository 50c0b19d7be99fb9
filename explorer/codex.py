"""Codex of unlocked articles."""

from typing import Dict, List, Mapping, Set

from .context import GameContext
from .errors import ContentError
from .models import Article
from .notifications import ARTICLE_UNLOCKED
from .schemas import CodexSnapshot


class CodexStore:
    def __init__(self, ctx: GameContext):
        self.ctx = ctx
        self.articles: Dict[str, Article] = {a.id: a for a in ctx.content.articles}
        self.unlocked_articles: Set[str] = set()

    def unlock_article(self, article_id: str):
        """Open an article; unlocking one twice is a no-op."""
        article = self.articles.get(article_id)
        if article is None:
            raise ContentError(f"Article not found: {article_id}")
        if article.id in self.unlocked_articles:
            return
        self.unlocked_articles.add(article.id)
        self.ctx.achievements.add_articles_opened()
        self.ctx.mark_dirty("codex")
        self.ctx.notifications.notify(ARTICLE_UNLOCKED, article.title, subject_id=article.id)

    def get_snapshot(self) -> Dict[str, List[str]]:
        return {"unlockedArticles": sorted(self.unlocked_articles)}

    def parse_snapshot(self, snapshot: Mapping) -> CodexSnapshot:
        return CodexSnapshot.model_validate(snapshot.get("codex"))

    def apply_snapshot(self, parsed: CodexSnapshot):
        self.unlocked_articles = set(parsed.unlocked_articles)

    def load_snapshot(self, snapshot: Mapping):
        self.apply_snapshot(self.parse_snapshot(snapshot))

    def reset(self):
        self.unlocked_articles = set()
