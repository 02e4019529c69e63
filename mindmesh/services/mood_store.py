"""Mood store: recent check-ins plus derived averages and trends."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from mindmesh.database.mood_repository import MoodRepository
from mindmesh.engine.patterns import mood_averages, mood_by_time_of_day, recent_trend
from mindmesh.models.constants import DEFAULT_AVERAGE_WINDOW_DAYS, DEFAULT_MOOD_LOAD_LIMIT
from mindmesh.models.mood import MoodEntry

logger = logging.getLogger(__name__)


class MoodStore:
    """Caches the newest entries (newest first); accessors recompute on every call."""

    def __init__(self, repo: MoodRepository, user_id: str, now: Optional[Callable[[], datetime]] = None):
        self.repo = repo
        self.user_id = user_id
        self._now = now or datetime.utcnow
        self.entries: List[MoodEntry] = []
        self.loading = False
        self.error: Optional[str] = None

    def _fail(self, action: str, e: Exception) -> None:
        self.error = f"Failed to {action}: {e}"
        logger.warning(f"Mood store could not {action}: {type(e).__name__}: {str(e)}")

    def load(self, limit: int = DEFAULT_MOOD_LOAD_LIMIT) -> bool:
        self.loading = True
        try:
            self.entries = self.repo.list_recent(self.user_id, limit)
            self.error = None
            return True
        except Exception as e:
            self._fail("load mood entries", e)
            return False
        finally:
            self.loading = False

    def load_window(self, days: int) -> bool:
        """Replace the cache with every entry from the last `days` days."""
        self.loading = True
        try:
            self.entries = self.repo.list_since(self.user_id, self._now() - timedelta(days=days))
            self.error = None
            return True
        except Exception as e:
            self._fail("load mood entries", e)
            return False
        finally:
            self.loading = False

    def add_entry(self, mood_score: int, energy_level: int, focus_level: int, notes: Optional[str] = None) -> Optional[MoodEntry]:
        try:
            entry = self.repo.create(MoodEntry(
                id=str(uuid.uuid4()),
                user_id=self.user_id,
                mood_score=mood_score,
                energy_level=energy_level,
                focus_level=focus_level,
                notes=notes,
                created_at=self._now(),
            ))
        except Exception as e:
            self._fail("save mood entry", e)
            return None
        self.entries = [entry] + self.entries
        self.error = None
        return entry

    def update_entry(self, entry_id: str, changes: Dict) -> Optional[MoodEntry]:
        try:
            current = self.repo.get(self.user_id, entry_id)
            if current is None:
                raise ValueError(f"Mood entry {entry_id} not found")
            # Re-validate so scores stay within 1-10.
            entry = self.repo.update(MoodEntry(**{**current.model_dump(), **changes}))
        except Exception as e:
            self._fail("update mood entry", e)
            return None
        self.entries = [entry if e.id == entry.id else e for e in self.entries]
        self.error = None
        return entry

    def get_averages(self, days: int = DEFAULT_AVERAGE_WINDOW_DAYS) -> Optional[Dict[str, float]]:
        return mood_averages(self.entries, days, self._now())

    def get_recent_trend(self) -> str:
        return recent_trend(self.entries)

    def get_mood_by_time_of_day(self) -> Dict[str, float]:
        return mood_by_time_of_day(self.entries)
