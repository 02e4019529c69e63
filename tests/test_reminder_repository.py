"""Tests for reminder persistence, snoozing and activity."""

import uuid
from datetime import datetime, timedelta

import pytest

from mindmesh.database.reminder_repository import ReminderRepository
from mindmesh.models.reminder import Reminder

NOW = datetime(2025, 4, 1, 10, 0)


@pytest.fixture
def reminder_repository(db_session):
    return ReminderRepository(db_session)


def _reminder(user_id, remind_at, title="Take meds"):
    return Reminder(
        id=str(uuid.uuid4()),
        user_id=user_id,
        title=title,
        remind_at=remind_at,
        created_at=NOW - timedelta(days=1),
    )


class TestReminderRepository:
    """Test reminder lifecycle."""

    def test_active_means_due_and_not_dismissed(self, reminder_repository, test_user_id):
        due = reminder_repository.create(_reminder(test_user_id, NOW - timedelta(minutes=1), "due"))
        reminder_repository.create(_reminder(test_user_id, NOW + timedelta(hours=1), "future"))
        dismissed = reminder_repository.create(_reminder(test_user_id, NOW - timedelta(hours=1), "dismissed"))
        reminder_repository.dismiss(test_user_id, dismissed.id)

        active = reminder_repository.list_active(test_user_id, NOW)

        assert [r.id for r in active] == [due.id]

    def test_snooze_creates_new_and_dismisses_original(self, reminder_repository, test_user_id):
        original = reminder_repository.create(_reminder(test_user_id, NOW - timedelta(minutes=5)))

        snoozed = reminder_repository.snooze(test_user_id, original.id, 30, NOW)

        assert snoozed.id != original.id
        assert snoozed.remind_at == NOW + timedelta(minutes=30)
        assert snoozed.snooze_minutes == 30
        assert snoozed.original_reminder_id == original.id
        assert snoozed.is_dismissed is False
        assert reminder_repository.get(test_user_id, original.id).is_dismissed is True
        assert len(reminder_repository.list_all(test_user_id)) == 2

    def test_snooze_missing_reminder_raises(self, reminder_repository, test_user_id):
        with pytest.raises(ValueError):
            reminder_repository.snooze(test_user_id, "missing", 30, NOW)

    def test_snooze_requires_positive_minutes(self, reminder_repository, test_user_id):
        original = reminder_repository.create(_reminder(test_user_id, NOW))
        with pytest.raises(ValueError):
            reminder_repository.snooze(test_user_id, original.id, 0, NOW)
        assert reminder_repository.get(test_user_id, original.id).is_dismissed is False

    def test_other_user_cannot_dismiss(self, reminder_repository, test_user_id, other_user_id):
        reminder = reminder_repository.create(_reminder(test_user_id, NOW))
        with pytest.raises(ValueError):
            reminder_repository.dismiss(other_user_id, reminder.id)
