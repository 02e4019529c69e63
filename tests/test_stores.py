"""Tests for the task, mood, reminder, settings and subscription stores."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from mindmesh.database.mood_repository import MoodRepository
from mindmesh.database.reminder_repository import ReminderRepository
from mindmesh.integrations.revenuecat import BillingError, MOCK_OFFERINGS
from mindmesh.models.task import RecurrencePattern, TaskStatus
from mindmesh.services.kv_slot import KeyValueSlot
from mindmesh.services.mood_store import MoodStore
from mindmesh.services.reminder_store import ReminderStore
from mindmesh.services.settings_store import DEFAULT_SETTINGS, SettingsStore
from mindmesh.services.subscription_store import SubscriptionStore
from mindmesh.services.task_store import TaskStore

NOW = datetime(2025, 2, 3, 9, 0)


class TestTaskStore:
    """Test await-then-apply semantics of the task store."""

    def test_create_and_load_builds_forest(self, task_repository, test_user_id):
        store = TaskStore(task_repository, test_user_id)
        parent = store.create("Plan trip")
        store.create("Book train", parent_task_id=parent.id)

        assert store.error is None
        assert len(store.tasks) == 2
        assert [t.title for t in store.forest.children_of(parent.id)] == ["Book train"]

    def test_failed_update_leaves_cache_unchanged(self, task_repository, test_user_id):
        store = TaskStore(task_repository, test_user_id)
        task = store.create("Stable title")
        before = list(store.tasks)

        failing = MagicMock(wraps=task_repository)
        failing.update.side_effect = RuntimeError("database is locked")
        store.repo = failing

        assert store.update(task.id, {"title": "New title"}) is None
        assert store.tasks == before
        assert "database is locked" in store.error

    def test_update_to_completed_stamps_completed_at(self, task_repository, test_user_id):
        store = TaskStore(task_repository, test_user_id, now=lambda: NOW)
        task = store.create("Stamp me")

        done = store.update(task.id, {"status": "completed"})
        assert done.completed_at == NOW

        reopened = store.update(task.id, {"status": "pending"})
        assert reopened.completed_at is None

    def test_complete_recurring_creates_successor(self, task_repository, test_user_id):
        store = TaskStore(task_repository, test_user_id, now=lambda: NOW)
        task = store.create("Weekly review", recurrence_pattern=RecurrencePattern.WEEKLY,
                            due_date=datetime(2025, 1, 1))

        completed, successor = store.complete(task.id)

        assert completed.status == TaskStatus.COMPLETED.value
        assert successor.due_date == datetime(2025, 1, 8)
        assert len(store.tasks) == 2

    def test_update_to_completed_creates_successor(self, task_repository, test_user_id):
        """Completing through a status update recurs like complete() does."""
        store = TaskStore(task_repository, test_user_id, now=lambda: NOW)
        task = store.create("Water plants", recurrence_pattern=RecurrencePattern.DAILY,
                            due_date=datetime(2025, 1, 1), tags=["home"])

        done = store.update(task.id, {"status": "completed", "title": "Water the plants"})

        assert done.status == TaskStatus.COMPLETED.value
        assert done.title == "Water the plants"
        assert len(store.tasks) == 2
        successor = next(t for t in store.tasks if t.id != task.id)
        assert successor.status == TaskStatus.PENDING.value
        assert successor.title == "Water the plants"
        assert successor.due_date == datetime(2025, 1, 2)
        assert successor.tags == ["home"]

    def test_update_already_completed_creates_no_successor(self, task_repository, test_user_id):
        store = TaskStore(task_repository, test_user_id, now=lambda: NOW)
        task = store.create("Once", recurrence_pattern=RecurrencePattern.DAILY, due_date=datetime(2025, 1, 1))
        store.update(task.id, {"status": "completed"})

        store.update(task.id, {"status": "completed", "description": "again"})

        assert len(store.tasks) == 2

    def test_complete_missing_sets_error(self, task_repository, test_user_id):
        store = TaskStore(task_repository, test_user_id)
        assert store.complete("missing") is None
        assert "not found" in store.error

    def test_expansion_survives_reload(self, task_repository, test_user_id):
        store = TaskStore(task_repository, test_user_id)
        task = store.create("Expandable")

        assert store.toggle_expansion(task.id) is True
        store.load()

        assert store.forest.find(task.id).is_expanded is True

    def test_add_suggested_tasks_paces_and_skips_untitled(self, task_repository, test_user_id):
        sleeps = []
        store = TaskStore(task_repository, test_user_id, sleep=sleeps.append)

        created = store.add_suggested_tasks([
            {"title": "Outline", "priority": "high", "tags": ["planning"]},
            {"title": "   "},
            {"title": "Draft", "priority": "urgent"},
        ])

        assert [t.title for t in created] == ["Outline", "Draft"]
        assert created[0].priority == "high"
        assert created[1].priority == "medium"
        assert all(t.source_type == "suggestion" for t in created)
        assert sleeps == [0.3]

    def test_add_suggested_tasks_keeps_going_after_failure(self, task_repository, test_user_id):
        store = TaskStore(task_repository, test_user_id, sleep=lambda s: None)
        real_create = task_repository.create
        calls = {"n": 0}

        def flaky_create(task):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("insert failed")
            return real_create(task)

        failing = MagicMock(wraps=task_repository)
        failing.create.side_effect = flaky_create
        store.repo = failing

        created = store.add_suggested_tasks([{"title": "One"}, {"title": "Two"}])

        assert [t.title for t in created] == ["Two"]
        assert "insert failed" in store.error


class TestMoodStore:
    """Test mood caching and derived metrics."""

    def test_averages_none_when_empty(self, db_session, test_user_id):
        store = MoodStore(MoodRepository(db_session), test_user_id, now=lambda: NOW)
        assert store.load() is True
        assert store.get_averages() is None
        assert store.get_recent_trend() == "stable"

    def test_add_entry_prepends(self, db_session, test_user_id):
        times = iter([NOW - timedelta(hours=2), NOW - timedelta(hours=1)])
        store = MoodStore(MoodRepository(db_session), test_user_id, now=lambda: next(times))

        first = store.add_entry(5, 5, 5)
        second = store.add_entry(7, 6, 4, "better")

        assert [e.id for e in store.entries] == [second.id, first.id]

    def test_window_average_uses_every_entry_in_window(self, db_session, test_user_id):
        """More entries than the default load limit still all count."""
        clock = {"now": NOW - timedelta(days=10)}
        store = MoodStore(MoodRepository(db_session), test_user_id, now=lambda: clock["now"])
        store.add_entry(1, 1, 1)
        for i in range(40):
            clock["now"] = NOW - timedelta(hours=i + 1)
            store.add_entry(8 if i % 2 else 4, 5, 5)
        clock["now"] = NOW

        assert store.load_window(7) is True
        averages = store.get_averages(7)

        assert len(store.entries) == 40
        assert averages["count"] == 40
        assert averages["mood"] == 6

    def test_update_entry_revalidates(self, db_session, test_user_id):
        store = MoodStore(MoodRepository(db_session), test_user_id, now=lambda: NOW)
        entry = store.add_entry(5, 5, 5)

        assert store.update_entry(entry.id, {"mood_score": 11}) is None
        assert store.error is not None
        assert store.update_entry(entry.id, {"mood_score": 9}).mood_score == 9


class TestReminderStore:
    """Test snooze and active filtering through the store."""

    def test_snooze_replaces_active_reminder(self, db_session, test_user_id):
        clock = {"now": NOW}
        store = ReminderStore(ReminderRepository(db_session), test_user_id, now=lambda: clock["now"])
        reminder = store.add("Stretch", NOW - timedelta(minutes=1))
        assert [r.id for r in store.get_active_reminders()] == [reminder.id]

        snoozed = store.snooze(reminder.id, 30)

        assert store.get_active_reminders() == []
        clock["now"] = NOW + timedelta(minutes=31)
        assert [r.id for r in store.get_active_reminders()] == [snoozed.id]

    def test_dismiss(self, db_session, test_user_id):
        store = ReminderStore(ReminderRepository(db_session), test_user_id, now=lambda: NOW)
        reminder = store.add("Drink water", NOW)
        assert store.dismiss(reminder.id).is_dismissed is True
        assert store.get_active_reminders() == []


class TestSettingsStore:
    """Test preference persistence."""

    def test_defaults(self, tmp_path, test_user_id):
        store = SettingsStore.for_user(test_user_id, str(tmp_path))
        assert store.settings == DEFAULT_SETTINGS
        assert store.settings["appearance"]["theme"] == "light"

    def test_update_persists_and_ignores_unknown_keys(self, tmp_path, test_user_id):
        store = SettingsStore.for_user(test_user_id, str(tmp_path))
        assert store.update_appearance({"theme": "dark", "font": "comic"}) is True

        reloaded = SettingsStore.for_user(test_user_id, str(tmp_path))
        assert reloaded.settings["appearance"]["theme"] == "dark"
        assert "font" not in reloaded.settings["appearance"]

    def test_section_setters_touch_only_their_section(self, tmp_path, test_user_id):
        store = SettingsStore.for_user(test_user_id, str(tmp_path))

        assert store.update_notifications({"email_reminders": False}) is True
        assert store.update_privacy({"data_sharing": True}) is True

        reloaded = SettingsStore.for_user(test_user_id, str(tmp_path)).settings
        assert reloaded["notifications"]["email_reminders"] is False
        assert reloaded["notifications"]["push_notifications"] is True
        assert reloaded["privacy"]["data_sharing"] is True
        assert reloaded["appearance"] == DEFAULT_SETTINGS["appearance"]

    def test_reset_to_defaults(self, tmp_path, test_user_id):
        store = SettingsStore.for_user(test_user_id, str(tmp_path))
        store.update({"privacy": {"analytics": False}})
        store.reset_to_defaults()

        assert SettingsStore.for_user(test_user_id, str(tmp_path)).settings == DEFAULT_SETTINGS

    def test_corrupt_slot_falls_back_to_defaults(self, tmp_path, test_user_id):
        slot = KeyValueSlot(f"settings-{test_user_id}", str(tmp_path))
        (tmp_path / f"{slot.name}.json").write_text("{not json")

        assert SettingsStore(slot).settings == DEFAULT_SETTINGS


class TestSubscriptionStore:
    """Test developer mode and billing fallbacks."""

    def test_dev_mode_grants_pro(self, tmp_path, test_user_id):
        billing = MagicMock()
        store = SubscriptionStore.for_user(test_user_id, billing, str(tmp_path))
        store.set_dev_mode(True)

        assert store.is_subscribed() is True
        assert store.has_entitlement("pro") is True
        assert store.get_active_product_id() == "dev_mode_pro"
        billing.get_subscription.assert_not_called()

        reloaded = SubscriptionStore.for_user(test_user_id, billing, str(tmp_path))
        assert reloaded.dev_mode_enabled is True

    def test_billing_failure_reports_inactive(self, tmp_path, test_user_id):
        billing = MagicMock()
        billing.get_subscription.side_effect = BillingError("RevenueCat request failed")
        store = SubscriptionStore.for_user(test_user_id, billing, str(tmp_path))

        assert store.is_subscribed() is False
        assert store.has_entitlement() is False
        assert store.error == "RevenueCat request failed"

    def test_offerings_fall_back_to_mock(self, tmp_path, test_user_id):
        billing = MagicMock()
        billing.configured = True
        billing.get_offerings.side_effect = BillingError("down")
        store = SubscriptionStore.for_user(test_user_id, billing, str(tmp_path))

        assert store.get_offerings() == MOCK_OFFERINGS


@pytest.mark.parametrize("name,expected", [("settings-a/b", "settings-a_b"), ("ok.name", "ok.name")])
def test_slot_names_are_sanitized(tmp_path, name, expected):
    assert KeyValueSlot(name, str(tmp_path)).name == expected
