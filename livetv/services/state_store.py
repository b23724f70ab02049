"""
SQLite-backed resume state.
Remembers the last category, volume, mute flag and stream between runs.
"""
import json
import logging
from pathlib import Path
from typing import Optional

import aiosqlite
from pydantic import BaseModel

from livetv.config import get_settings
from livetv.models.channel import ALL_CATEGORY

logger = logging.getLogger(__name__)


class ResumeState(BaseModel):
    """What the player restores at startup."""
    last_category: str = ALL_CATEGORY
    volume: int = 100
    muted: bool = False
    last_stream_url: str = ""


class StateStore:
    """Async SQLite key-value store for ResumeState."""
    
    def __init__(self, db_path: Optional[str] = None):
        settings = get_settings()
        self.db_path = db_path or settings.database_path
        self._ensure_directory()
    
    def _ensure_directory(self):
        """Create data directory if it doesn't exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
    
    async def initialize(self):
        """Create the table if it doesn't exist."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS player_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await db.commit()
    
    async def load(self, default_volume: int = 100) -> ResumeState:
        """Read the saved state; missing keys fall back to defaults."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT key, value FROM player_state")
            rows = await cursor.fetchall()
        
        values = {}
        for key, raw in rows:
            if key not in ResumeState.model_fields:
                continue
            try:
                values[key] = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring corrupt saved value for {key}")
        
        values.setdefault("volume", default_volume)
        state = ResumeState.model_validate(values)
        logger.info(f"Loaded resume state: category={state.last_category} volume={state.volume}")
        return state
    
    async def save(self, state: ResumeState):
        """Persist every field of state."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.executemany(
                """
                INSERT OR REPLACE INTO player_state (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                [(key, json.dumps(value)) for key, value in state.model_dump().items()],
            )
            await db.commit()
        logger.info("Resume state saved")
