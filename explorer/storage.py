"""Durable key-value storage for save slots."""

import time
from typing import Optional

import aiosqlite

from .config import DATABASE_PATH


class SaveStorage:
    """Stores one JSON document per save key in SQLite."""

    def __init__(self, db_path: str = DATABASE_PATH):
        self.db_path = db_path

    async def initialize(self):
        """Create the saves table if needed."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS saves (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at INTEGER NOT NULL
                )
            """)
            await db.commit()

    async def get(self, key: str) -> Optional[str]:
        """Get the raw document stored under key."""
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute("SELECT value FROM saves WHERE key = ?", (key,)) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else None

    async def set(self, key: str, value: str):
        """Write the document for key, replacing any previous one."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO saves (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, int(time.time())),
            )
            await db.commit()

    async def delete(self, key: str):
        """Remove the document for key."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM saves WHERE key = ?", (key,))
            await db.commit()

    async def keys(self):
        """List every save key."""
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute("SELECT key FROM saves ORDER BY key") as cursor:
                rows = await cursor.fetchall()
                return [row[0] for row in rows]
