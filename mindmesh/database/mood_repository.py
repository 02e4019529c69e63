"""Repository for mood entries."""

import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from mindmesh.models.constants import DEFAULT_MOOD_LOAD_LIMIT
from mindmesh.models.mood import MoodEntry
from mindmesh.database.models import MoodEntryDB

logger = logging.getLogger(__name__)


class MoodRepository:
    """Repository for MoodEntry database operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, entry: MoodEntry) -> MoodEntry:
        """Create a new mood entry."""
        try:
            entry_db = MoodEntryDB.from_pydantic(entry)
            self.db.add(entry_db)
            self.db.commit()
            self.db.refresh(entry_db)
            logger.debug(f"Created mood entry {entry.id}")
            return entry_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create mood entry {entry.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: str, entry_id: str) -> Optional[MoodEntry]:
        entry_db = self.db.query(MoodEntryDB).filter(
            MoodEntryDB.id == entry_id,
            MoodEntryDB.user_id == user_id,
        ).first()
        return entry_db.to_pydantic() if entry_db else None

    def list_recent(self, user_id: str, limit: int = DEFAULT_MOOD_LOAD_LIMIT) -> List[MoodEntry]:
        """Get the most recent entries, newest first."""
        entries_db = self.db.query(MoodEntryDB).filter(
            MoodEntryDB.user_id == user_id,
        ).order_by(desc(MoodEntryDB.created_at)).limit(limit).all()
        return [e.to_pydantic() for e in entries_db]

    def list_since(self, user_id: str, since: datetime) -> List[MoodEntry]:
        """Get entries created at or after `since`, newest first."""
        entries_db = self.db.query(MoodEntryDB).filter(
            MoodEntryDB.user_id == user_id,
            MoodEntryDB.created_at >= since,
        ).order_by(desc(MoodEntryDB.created_at)).all()
        return [e.to_pydantic() for e in entries_db]

    def update(self, entry: MoodEntry) -> MoodEntry:
        """Update an existing mood entry (scores and notes only)."""
        entry_db = self.db.query(MoodEntryDB).filter(
            MoodEntryDB.id == entry.id,
            MoodEntryDB.user_id == entry.user_id,
        ).first()
        if not entry_db:
            raise ValueError(f"Mood entry {entry.id} not found")

        entry_db.mood_score = entry.mood_score
        entry_db.energy_level = entry.energy_level
        entry_db.focus_level = entry.focus_level
        entry_db.notes = entry.notes
        try:
            self.db.commit()
            self.db.refresh(entry_db)
            return entry_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update mood entry {entry.id}: {type(e).__name__}: {str(e)}")
            raise
