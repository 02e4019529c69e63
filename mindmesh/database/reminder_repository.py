"""Repository for reminders."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import asc

from mindmesh.models.reminder import Reminder
from mindmesh.database.models import ReminderDB

logger = logging.getLogger(__name__)


class ReminderRepository:
    """Repository for Reminder database operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, reminder: Reminder) -> Reminder:
        """Create a new reminder."""
        try:
            reminder_db = ReminderDB.from_pydantic(reminder)
            self.db.add(reminder_db)
            self.db.commit()
            self.db.refresh(reminder_db)
            logger.debug(f"Created reminder {reminder.id}: {reminder.title[:50]}")
            return reminder_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create reminder {reminder.id}: {type(e).__name__}: {str(e)}")
            raise

    def _get_db(self, user_id: str, reminder_id: str) -> Optional[ReminderDB]:
        return self.db.query(ReminderDB).filter(
            ReminderDB.id == reminder_id,
            ReminderDB.user_id == user_id,
        ).first()

    def get(self, user_id: str, reminder_id: str) -> Optional[Reminder]:
        reminder_db = self._get_db(user_id, reminder_id)
        return reminder_db.to_pydantic() if reminder_db else None

    def list_all(self, user_id: str) -> List[Reminder]:
        """Get all reminders for a user, soonest first."""
        rows = self.db.query(ReminderDB).filter(
            ReminderDB.user_id == user_id,
        ).order_by(asc(ReminderDB.remind_at)).all()
        return [r.to_pydantic() for r in rows]

    def list_active(self, user_id: str, now: datetime) -> List[Reminder]:
        """Get reminders that are not dismissed and are due."""
        rows = self.db.query(ReminderDB).filter(
            ReminderDB.user_id == user_id,
            ReminderDB.is_dismissed.is_(False),
            ReminderDB.remind_at <= now,
        ).order_by(asc(ReminderDB.remind_at)).all()
        return [r.to_pydantic() for r in rows]

    def dismiss(self, user_id: str, reminder_id: str) -> Reminder:
        reminder_db = self._get_db(user_id, reminder_id)
        if not reminder_db:
            raise ValueError(f"Reminder {reminder_id} not found")
        try:
            reminder_db.is_dismissed = True
            self.db.commit()
            self.db.refresh(reminder_db)
            return reminder_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to dismiss reminder {reminder_id}: {type(e).__name__}: {str(e)}")
            raise

    def snooze(self, user_id: str, reminder_id: str, minutes: int, now: Optional[datetime] = None) -> Reminder:
        """Create the snoozed copy and dismiss the original in a single commit.

        Returns:
            The newly created reminder.
        """
        original = self._get_db(user_id, reminder_id)
        if not original:
            raise ValueError(f"Reminder {reminder_id} not found")
        if minutes <= 0:
            raise ValueError("Snooze minutes must be positive")

        now = now or datetime.utcnow()
        snoozed = ReminderDB(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=original.title,
            description=original.description,
            remind_at=now + timedelta(minutes=minutes),
            is_dismissed=False,
            snooze_minutes=minutes,
            original_reminder_id=original.id,
            created_at=now,
        )
        try:
            self.db.add(snoozed)
            original.is_dismissed = True
            self.db.commit()
            self.db.refresh(snoozed)
            logger.debug(f"Snoozed reminder {reminder_id} for {minutes} min -> {snoozed.id}")
            return snoozed.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to snooze reminder {reminder_id}: {type(e).__name__}: {str(e)}")
            raise
