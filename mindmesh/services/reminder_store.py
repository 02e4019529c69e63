"""Reminder store."""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from mindmesh.database.reminder_repository import ReminderRepository
from mindmesh.models.constants import DEFAULT_SNOOZE_MINUTES
from mindmesh.models.reminder import Reminder

logger = logging.getLogger(__name__)


class ReminderStore:
    def __init__(self, repo: ReminderRepository, user_id: str, now: Optional[Callable[[], datetime]] = None):
        self.repo = repo
        self.user_id = user_id
        self._now = now or datetime.utcnow
        self.reminders: List[Reminder] = []
        self.loading = False
        self.error: Optional[str] = None

    def _fail(self, action: str, e: Exception) -> None:
        self.error = f"Failed to {action}: {e}"
        logger.warning(f"Reminder store could not {action}: {type(e).__name__}: {str(e)}")

    def load(self) -> bool:
        self.loading = True
        try:
            self.reminders = self.repo.list_all(self.user_id)
            self.error = None
            return True
        except Exception as e:
            self._fail("load reminders", e)
            return False
        finally:
            self.loading = False

    def add(self, title: str, remind_at: datetime, description: Optional[str] = None) -> Optional[Reminder]:
        try:
            reminder = self.repo.create(Reminder(
                id=str(uuid.uuid4()),
                user_id=self.user_id,
                title=title,
                description=description,
                remind_at=remind_at,
                created_at=self._now(),
            ))
        except Exception as e:
            self._fail("create reminder", e)
            return None
        self.reminders = self.reminders + [reminder]
        self.error = None
        return reminder

    def dismiss(self, reminder_id: str) -> Optional[Reminder]:
        try:
            dismissed = self.repo.dismiss(self.user_id, reminder_id)
        except Exception as e:
            self._fail("dismiss reminder", e)
            return None
        self.reminders = [dismissed if r.id == reminder_id else r for r in self.reminders]
        self.error = None
        return dismissed

    def snooze(self, reminder_id: str, minutes: int = DEFAULT_SNOOZE_MINUTES) -> Optional[Reminder]:
        """Replace a reminder with a copy due `minutes` from now.

        Returns:
            The new reminder, or None on failure (the original is untouched)
        """
        try:
            snoozed = self.repo.snooze(self.user_id, reminder_id, minutes, self._now())
        except Exception as e:
            self._fail("snooze reminder", e)
            return None
        self.load()
        return snoozed

    def get_active_reminders(self) -> List[Reminder]:
        now = self._now()
        return [r for r in self.reminders if r.is_active(now)]
