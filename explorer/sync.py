"""Save/load coordination: dirty tracking, snapshots and the single-flight gate."""

import json
import logging
from typing import Any, Dict, Mapping, Optional, Set

import aiosqlite
from pydantic import ValidationError

from .context import GameContext
from .errors import DirtyStateError, SyncStateError
from .models import STORES_TO_SYNC
from .schemas import GameSave
from .storage import SaveStorage
from .timeutils import format_timestamp

logger = logging.getLogger(__name__)

IDLE = "idle"
SAVING = "saving"
LOADING = "loading"


class SyncCoordinator:
    """Tracks unsaved changes and moves snapshots in and out of storage.

    Only one save, load or reset may be in flight; overlapping calls are
    rejected with SyncStateError instead of being interleaved.
    """

    def __init__(self, ctx: GameContext, storage: SaveStorage):
        self.ctx = ctx
        self.storage = storage
        self.state = IDLE
        self.last_save = 0
        self.last_error: Optional[Exception] = None
        self.dirty: Set[str] = set()

    @property
    def is_dirty(self) -> bool:
        return bool(self.dirty)

    def mark_dirty(self, store: str):
        if store not in STORES_TO_SYNC:
            raise KeyError(f"Unknown store: {store}")
        self.dirty.add(store)

    def clear_dirty(self):
        self.dirty.clear()

    def _store(self, name: str):
        return getattr(self.ctx, name)

    def get_snapshot(self, timestamp: int) -> Dict[str, Any]:
        snapshot: Dict[str, Any] = {
            "version": self.ctx.config.game_version,
            "timestamp": timestamp,
        }
        for name in STORES_TO_SYNC:
            snapshot[name] = self._store(name).get_snapshot()
        return snapshot

    def parse_snapshot(self, data: Any) -> GameSave:
        """Validate every section up front so a bad save is never half applied."""
        return GameSave.model_validate(data)

    def load_snapshot(self, snapshot: Mapping[str, Any]) -> GameSave:
        if self.is_dirty:
            raise DirtyStateError("Cannot load snapshot while store state is dirty")
        parsed = self.parse_snapshot(snapshot)
        for name in STORES_TO_SYNC:
            self._store(name).apply_snapshot(getattr(parsed, name))
        return parsed

    async def save(self, force: bool = False) -> bool:
        """Write a snapshot if anything changed and the save interval passed.

        ``force`` skips the interval check (used on shutdown). Returns
        whether a write happened.
        """
        if not self.is_dirty:
            return False
        if self.state != IDLE:
            raise SyncStateError(f"Cannot save while state is {self.state}")

        now = self.ctx.now()
        if not force and now - self.last_save <= self.ctx.config.save_interval:
            return False

        self.state = SAVING
        # Changes made while the write is awaited stay dirty for the next save
        pending, self.dirty = self.dirty, set()
        saved = False
        try:
            payload = json.dumps(self.get_snapshot(now))
            await self.storage.set(self.ctx.config.save_key, payload)
            saved = True
            self.last_save = now
            self.last_error = None
            logger.debug(f"Saved game ({len(pending)} dirty store(s))")
            return True
        except Exception as e:
            self.last_error = e
            logger.error(f"Failed to save game: {e}")
            raise
        finally:
            # A failed or cancelled write leaves everything dirty
            if not saved:
                self.dirty |= pending
            self.state = IDLE

    async def load(self) -> Optional[int]:
        """Load the saved snapshot; returns its timestamp or None when nothing usable exists."""
        if self.state != IDLE:
            raise SyncStateError(f"Cannot load while state is {self.state}")
        if self.is_dirty:
            raise DirtyStateError(
                f"Cannot load while unsaved changes exist in: {', '.join(sorted(self.dirty))}"
            )

        self.state = LOADING
        try:
            raw = await self.storage.get(self.ctx.config.save_key)
            if raw is None:
                logger.info("No save data found")
                return None
            parsed = self.load_snapshot(json.loads(raw))
            saved_at = format_timestamp(parsed.timestamp, self.ctx.config.timezone)
            logger.info(f"Loaded save version {parsed.version} from {saved_at}")
            return parsed.timestamp
        except (json.JSONDecodeError, ValidationError, aiosqlite.Error) as e:
            self.last_error = e
            logger.error(f"Failed to load save data: {e}")
            return None
        finally:
            self.state = IDLE

    async def reset(self):
        """Wipe every sub-store and delete the durable save."""
        if self.state != IDLE:
            raise SyncStateError(f"Cannot reset while state is {self.state}")

        self.state = SAVING
        try:
            for name in STORES_TO_SYNC:
                self._store(name).reset()
            self.clear_dirty()
            self.last_save = 0
            await self.storage.delete(self.ctx.config.save_key)
            logger.info("Game state reset and save deleted")
        finally:
            self.state = IDLE
