"""Tests for integration import/export reconciliation."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from mindmesh.database.integration_repository import IntegrationRepository
from mindmesh.database.sync_mapping_repository import SyncMappingRepository
from mindmesh.models.task import TaskStatus
from mindmesh.sync.reconciler import SyncReconciler, map_notion_status, notion_page_fields

NOW = datetime(2025, 5, 1, 8, 0)


def _calendar_event(event_id="evt_123", summary="Dentist", start="2025-05-02T10:00:00Z"):
    event = {"id": event_id, "summary": summary, "start": {}}
    if start:
        event["start"]["dateTime"] = start
    else:
        event["start"]["date"] = "2025-05-02"
    return event


def _connect(db_session, user_id, integration_type, sync_rules=None):
    repo = IntegrationRepository(db_session)
    integration = repo.upsert_tokens(
        user_id,
        integration_type,
        "test_access_token_value",
        refresh_token="test_refresh_token_value",
        expires_at=NOW + timedelta(hours=1),
    )
    if sync_rules is not None:
        integration = repo.update_sync_rules(user_id, integration.id, sync_rules)
    return integration


def _reconciler(db_session, calendar=None, notion=None, **kwargs):
    return SyncReconciler(
        db_session,
        calendar_client_factory=lambda creds: calendar,
        notion_client_factory=lambda access: notion,
        now=lambda: NOW,
        **kwargs,
    )


class TestNotionHelpers:
    """Test Notion status and property extraction."""

    @pytest.mark.parametrize("name,expected", [
        ("Done", TaskStatus.COMPLETED),
        ("Completed", TaskStatus.COMPLETED),
        ("In progress", TaskStatus.IN_PROGRESS),
        ("Doing", TaskStatus.IN_PROGRESS),
        ("Not started", TaskStatus.PENDING),
        (None, TaskStatus.PENDING),
    ])
    def test_map_notion_status(self, name, expected):
        assert map_notion_status(name) == expected

    def test_page_fields(self):
        page = {
            "id": "page-1",
            "properties": {
                "Name": {"type": "title", "title": [{"plain_text": "Write "}, {"plain_text": "essay"}]},
                "Status": {"type": "status", "status": {"name": "In progress"}},
                "Due": {"type": "date", "date": {"start": "2025-05-03"}},
            },
        }
        fields = notion_page_fields(page)
        assert fields["title"] == "Write essay"
        assert fields["status"] == "In progress"
        assert fields["due_date"] == datetime(2025, 5, 3)

    def test_page_without_title_is_untitled(self):
        assert notion_page_fields({"properties": {}})["title"] == "Untitled"


class TestCalendarImport:
    """Test importing Google Calendar events."""

    def test_bad_event_does_not_stop_later_events(self, db_session, test_user_id):
        _connect(db_session, test_user_id, "google_calendar")
        calendar = MagicMock()
        calendar.list_events_in_range.return_value = [
            _calendar_event("evt_bad", "Broken", start="tomorrow-ish"),
            _calendar_event("evt_good", "Standup"),
        ]

        result = _reconciler(db_session, calendar=calendar).sync(test_user_id, "google_calendar", "import")

        assert result["total_imported"] == 1
        assert len(result["errors"]) == 1
        assert "evt_bad" in result["errors"][0]

    def test_import_is_idempotent(self, db_session, test_user_id):
        """Test that the same event imported twice yields one task and one mapping."""
        _connect(db_session, test_user_id, "google_calendar")
        calendar = MagicMock()
        calendar.list_events_in_range.return_value = [_calendar_event()]
        reconciler = _reconciler(db_session, calendar=calendar)

        first = reconciler.sync(test_user_id, "google_calendar", "import")
        second = reconciler.sync(test_user_id, "google_calendar", "import")

        assert first["total_imported"] == 1
        assert second["total_imported"] == 0
        mappings = SyncMappingRepository(db_session).list_for_user(test_user_id)
        assert len(mappings) == 1
        assert mappings[0].external_id == "evt_123"

        from mindmesh.database.repository import TaskRepository
        tasks = TaskRepository(db_session).get_all(test_user_id)
        assert len(tasks) == 1
        assert tasks[0].title == "Dentist"
        assert tasks[0].source_type == "google_calendar"
        assert tasks[0].due_date == datetime(2025, 5, 2, 10, 0)
        assert "calendar-import" in tasks[0].tags

    def test_all_day_events_are_skipped(self, db_session, test_user_id):
        _connect(db_session, test_user_id, "google_calendar")
        calendar = MagicMock()
        calendar.list_events_in_range.return_value = [_calendar_event(start=None)]

        result = _reconciler(db_session, calendar=calendar).sync(test_user_id, "google_calendar", "import")

        assert result["total_imported"] == 0
        assert result["errors"] == []

    def test_title_filters(self, db_session, test_user_id):
        _connect(db_session, test_user_id, "google_calendar", {"title_filters": ["gym"]})
        calendar = MagicMock()
        calendar.list_events_in_range.return_value = [
            _calendar_event("evt_1", "Gym session"),
            _calendar_event("evt_2", "Team standup"),
        ]

        result = _reconciler(db_session, calendar=calendar).sync(test_user_id, "google_calendar", "import")

        assert result["total_imported"] == 1

    def test_import_disabled_by_rules(self, db_session, test_user_id):
        _connect(db_session, test_user_id, "google_calendar", {"import_enabled": False})
        calendar = MagicMock()
        calendar.list_events_in_range.return_value = [_calendar_event()]

        result = _reconciler(db_session, calendar=calendar).sync(test_user_id)

        assert result["total_imported"] == 0
        calendar.list_events_in_range.assert_not_called()

    def test_sync_stamps_last_sync_at(self, db_session, test_user_id):
        _connect(db_session, test_user_id, "google_calendar")
        calendar = MagicMock()
        calendar.list_events_in_range.return_value = []

        _reconciler(db_session, calendar=calendar).sync(test_user_id)

        integration = IntegrationRepository(db_session).list_for_user(test_user_id)[0]
        assert integration.last_sync_at == NOW


class TestNotionImport:
    """Test importing pages from Notion task databases."""

    def test_imports_only_task_databases(self, db_session, test_user_id):
        _connect(db_session, test_user_id, "notion")
        notion = MagicMock()
        notion.search_databases.return_value = [
            {"id": "db-tasks", "properties": {"Name": {"type": "title"}, "Status": {"type": "status"}}},
            {"id": "db-notes", "properties": {"Name": {"type": "title"}}},
        ]
        notion.query_database.return_value = [{
            "id": "page-1",
            "properties": {
                "Name": {"type": "title", "title": [{"plain_text": "Finish slides"}]},
                "Status": {"type": "status", "status": {"name": "Done"}},
            },
        }]

        result = _reconciler(db_session, notion=notion).sync(test_user_id, "notion", "import")

        assert result["total_imported"] == 1
        notion.query_database.assert_called_once_with("db-tasks")
        from mindmesh.database.repository import TaskRepository
        task = TaskRepository(db_session).get_all(test_user_id)[0]
        assert task.title == "Finish slides"
        assert task.status == TaskStatus.COMPLETED.value
        assert task.completed_at is not None

    def test_bad_page_does_not_stop_later_pages(self, db_session, test_user_id):
        """Test that a page with an unparseable date is reported and the next page still imports."""
        _connect(db_session, test_user_id, "notion")
        notion = MagicMock()
        notion.search_databases.return_value = [
            {"id": "db-tasks", "properties": {"Name": {"type": "title"}, "Status": {"type": "status"}}},
        ]
        notion.query_database.return_value = [
            {
                "id": "page-bad",
                "properties": {
                    "Name": {"type": "title", "title": [{"plain_text": "Someday"}]},
                    "Due": {"type": "date", "date": {"start": "next tuesday"}},
                },
            },
            {
                "id": "page-good",
                "properties": {"Name": {"type": "title", "title": [{"plain_text": "Pay rent"}]}},
            },
        ]

        result = _reconciler(db_session, notion=notion).sync(test_user_id, "notion", "import")

        assert result["total_imported"] == 1
        assert len(result["integrations"]["notion"]["errors"]) == 1
        assert "page-bad" in result["integrations"]["notion"]["errors"][0]
        mappings = SyncMappingRepository(db_session).list_for_user(test_user_id)
        assert [m.external_id for m in mappings] == ["page-good"]


class TestExport:
    """Test pushing completions back to external systems."""

    def _import_event(self, db_session, test_user_id, calendar):
        calendar.list_events_in_range.return_value = [_calendar_event()]
        _reconciler(db_session, calendar=calendar).sync(test_user_id, "google_calendar", "import")

    def test_completed_calendar_task_appends_note(self, db_session, test_user_id):
        from mindmesh.database.repository import TaskRepository
        _connect(db_session, test_user_id, "google_calendar")
        calendar = MagicMock()
        self._import_event(db_session, test_user_id, calendar)

        repo = TaskRepository(db_session)
        task = repo.get_all(test_user_id)[0]
        repo.update(task.model_copy(update={"status": TaskStatus.COMPLETED, "completed_at": NOW - timedelta(hours=1)}))

        result = _reconciler(db_session, calendar=calendar).sync(test_user_id, "google_calendar", "export")

        assert result["total_exported"] == 1
        calendar.append_to_description.assert_called_once_with(
            "evt_123", "\n\n✅ Completed in MindMesh on 2025-05-01"
        )

    def test_completion_note_uses_completion_date(self, db_session, test_user_id):
        """Test that a task finished yesterday is noted with yesterday's date."""
        from mindmesh.database.repository import TaskRepository
        _connect(db_session, test_user_id, "google_calendar")
        calendar = MagicMock()
        self._import_event(db_session, test_user_id, calendar)

        repo = TaskRepository(db_session)
        task = repo.get_all(test_user_id)[0]
        repo.update(task.model_copy(update={"status": TaskStatus.COMPLETED, "completed_at": NOW - timedelta(hours=20)}))

        _reconciler(db_session, calendar=calendar).sync(test_user_id, "google_calendar", "export")

        calendar.append_to_description.assert_called_once_with(
            "evt_123", "\n\n✅ Completed in MindMesh on 2025-04-30"
        )

    def test_old_completions_are_not_exported(self, db_session, test_user_id):
        from mindmesh.database.repository import TaskRepository
        _connect(db_session, test_user_id, "google_calendar")
        calendar = MagicMock()
        self._import_event(db_session, test_user_id, calendar)

        repo = TaskRepository(db_session)
        task = repo.get_all(test_user_id)[0]
        repo.update(task.model_copy(update={"status": TaskStatus.COMPLETED, "completed_at": NOW - timedelta(days=3)}))

        result = _reconciler(db_session, calendar=calendar).sync(test_user_id, "google_calendar", "export")

        assert result["total_exported"] == 0

    def test_notion_export_sets_done(self, db_session, test_user_id):
        from mindmesh.database.repository import TaskRepository
        _connect(db_session, test_user_id, "notion")
        notion = MagicMock()
        notion.search_databases.return_value = [
            {"id": "db-tasks", "properties": {"Name": {"type": "title"}, "Stage": {"type": "select"}}},
        ]
        notion.query_database.return_value = [{
            "id": "page-1",
            "properties": {"Name": {"type": "title", "title": [{"plain_text": "Email Sam"}]}},
        }]
        _reconciler(db_session, notion=notion).sync(test_user_id, "notion", "import")

        repo = TaskRepository(db_session)
        task = repo.get_all(test_user_id)[0]
        repo.update(task.model_copy(update={"status": TaskStatus.COMPLETED, "completed_at": NOW}))
        notion.get_page.return_value = {"properties": {"Stage": {"type": "select", "select": {"name": "Todo"}}}}

        result = _reconciler(db_session, notion=notion).sync(test_user_id, "notion", "export")

        assert result["total_exported"] == 1
        notion.update_page_properties.assert_called_once_with("page-1", {"Stage": {"select": {"name": "Done"}}})


class TestIsolation:
    """Test that one failing integration does not stop the others."""

    def test_failing_adapter_is_reported_per_integration(self, db_session, test_user_id):
        _connect(db_session, test_user_id, "google_calendar")
        _connect(db_session, test_user_id, "notion")
        calendar = MagicMock()
        calendar.list_events_in_range.side_effect = Exception("calendar down")
        notion = MagicMock()
        notion.search_databases.return_value = [
            {"id": "db-tasks", "properties": {"Name": {"type": "title"}, "Status": {"type": "status"}}},
        ]
        notion.query_database.return_value = [{
            "id": "page-9",
            "properties": {"Name": {"type": "title", "title": [{"plain_text": "Call mum"}]}},
        }]

        result = _reconciler(db_session, calendar=calendar, notion=notion).sync(test_user_id, "all", "import")

        assert result["integrations"]["google_calendar"]["errors"] == ["calendar down"]
        assert result["integrations"]["notion"]["imported"] == 1
        assert result["total_imported"] == 1
        assert result["errors"] == ["google_calendar: calendar down"]

    def test_inactive_integrations_are_skipped(self, db_session, test_user_id):
        integration = _connect(db_session, test_user_id, "google_calendar")
        IntegrationRepository(db_session).deactivate(test_user_id, integration.id)
        calendar = MagicMock()

        result = _reconciler(db_session, calendar=calendar).sync(test_user_id)

        assert result["integrations"] == {}
        calendar.list_events_in_range.assert_not_called()

    def test_expired_calendar_token_is_refreshed(self, db_session, test_user_id):
        repo = IntegrationRepository(db_session)
        repo.upsert_tokens(
            test_user_id, "google_calendar", "old_access_value",
            refresh_token="test_refresh_token_value",
            expires_at=NOW - timedelta(minutes=5),
        )
        new_expiry = NOW + timedelta(hours=1)
        seen = {}

        def refresher(creds):
            seen["refresh_token"] = creds.refresh_token
            creds.token = "new_access_value"
            creds.expiry = new_expiry
            return creds

        def factory(creds):
            seen["access"] = creds.token
            client = MagicMock()
            client.list_events_in_range.return_value = []
            return client

        reconciler = SyncReconciler(db_session, calendar_client_factory=factory,
                                    refresh_credentials=refresher, now=lambda: NOW)
        result = reconciler.sync(test_user_id, "google_calendar", "import")

        assert result["errors"] == []
        assert seen == {"refresh_token": "test_refresh_token_value", "access": "new_access_value"}
        row = repo.get_row(test_user_id, "google_calendar")
        assert repo.access_token(row) == "new_access_value"
        assert row.token_expires_at == new_expiry

    def test_valid_calendar_token_is_not_refreshed(self, db_session, test_user_id):
        _connect(db_session, test_user_id, "google_calendar")
        refresher = MagicMock()
        calendar = MagicMock()
        calendar.list_events_in_range.return_value = []

        _reconciler(db_session, calendar=calendar, refresh_credentials=refresher).sync(test_user_id)

        refresher.assert_not_called()
