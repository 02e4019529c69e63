"""Two-way reconciliation between MindMesh tasks and connected integrations.

Import creates a task plus its mapping row for every external item not yet
mapped. Export pushes recent completions back to the external item. Each
integration is processed independently: a failing adapter is recorded in the
result and the remaining integrations still run.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from mindmesh.database.integration_repository import IntegrationRepository
from mindmesh.database.models import IntegrationDB
from mindmesh.database.repository import TaskRepository
from mindmesh.database.sync_mapping_repository import SyncMappingRepository
from mindmesh.integrations.google_calendar import GoogleCalendarClient, build_credentials, refresh_credentials
from mindmesh.integrations.notion import NotionClient
from mindmesh.integrations.timestamps import parse_timestamp, to_rfc3339
from mindmesh.models.constants import (
    CALENDAR_IMPORT_TAG,
    CALENDAR_IMPORT_WINDOW_DAYS,
    EXPORT_LOOKBACK_HOURS,
    NOTION_IMPORT_TAG,
)
from mindmesh.models.integration import IntegrationType, SyncDirection
from mindmesh.models.task import Task, TaskStatus
from mindmesh.models.task_factory import create_task_base
from mindmesh.sync.classifier import is_task_database

logger = logging.getLogger(__name__)

ALL_INTEGRATIONS = "all"
COMPLETION_NOTE = "\n\n✅ Completed in MindMesh on {date}"


def map_notion_status(name: Optional[str]) -> TaskStatus:
    """Map a free-text Notion status name onto a task status by substring."""
    lowered = (name or "").lower()
    if "done" in lowered or "complete" in lowered:
        return TaskStatus.COMPLETED
    if "progress" in lowered or "doing" in lowered:
        return TaskStatus.IN_PROGRESS
    return TaskStatus.PENDING


def _plain_text(rich_text: List[Dict[str, Any]]) -> str:
    return "".join(part.get("plain_text", "") for part in rich_text or [])


def notion_page_fields(page: Dict[str, Any]) -> Dict[str, Any]:
    """Extract title, status name and due date from a Notion page's properties."""
    title = ""
    status_name = None
    due = None
    for prop in (page.get("properties") or {}).values():
        prop_type = prop.get("type")
        if prop_type == "title" and not title:
            title = _plain_text(prop.get("title"))
        elif prop_type in ("status", "select") and status_name is None:
            status_name = (prop.get(prop_type) or {}).get("name")
        elif prop_type == "date" and due is None:
            due = parse_timestamp((prop.get("date") or {}).get("start"))
    return {"title": title.strip() or "Untitled", "status": status_name, "due_date": due}


def _passes_title_filters(title: str, filters: List[str]) -> bool:
    if not filters:
        return True
    lowered = title.lower()
    return any(f.lower() in lowered for f in filters if f)


def _direction_includes(direction: str, wanted: SyncDirection) -> bool:
    return direction in (wanted.value, SyncDirection.BIDIRECTIONAL.value)


class SyncReconciler:
    """Runs import and export passes for one user's active integrations.

    Client factories, the token refresher and the database classifier are
    injectable so the reconciler can be exercised without network access.
    """

    def __init__(
        self,
        db: Session,
        calendar_client_factory: Optional[Callable[..., Any]] = None,
        notion_client_factory: Optional[Callable[[str], Any]] = None,
        classifier: Callable[[Dict[str, Any]], bool] = is_task_database,
        refresh_credentials: Callable[[Any], Any] = refresh_credentials,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.integrations = IntegrationRepository(db)
        self.tasks = TaskRepository(db)
        self.mappings = SyncMappingRepository(db)
        self.calendar_client_factory = calendar_client_factory or GoogleCalendarClient
        self.notion_client_factory = notion_client_factory or NotionClient
        self.classifier = classifier
        self.refresh_credentials = refresh_credentials
        self._now = now or datetime.utcnow

    def sync(
        self,
        user_id: str,
        integration_type: str = ALL_INTEGRATIONS,
        direction: str = SyncDirection.BIDIRECTIONAL.value,
    ) -> Dict[str, Any]:
        """Reconcile every active integration of `user_id` matching `integration_type`.

        Returns:
            {total_imported, total_exported, integrations: {type: {imported, exported, errors}}, errors}
        """
        now = self._now()
        type_filter = None if integration_type == ALL_INTEGRATIONS else integration_type
        rows = self.integrations.list_active_rows(user_id, type_filter)

        summary: Dict[str, Any] = {
            "total_imported": 0,
            "total_exported": 0,
            "integrations": {},
            "errors": [],
        }
        for row in rows:
            result = self._sync_one(user_id, row, direction, now)
            summary["integrations"][row.integration_type] = result
            summary["total_imported"] += result["imported"]
            summary["total_exported"] += result["exported"]
            summary["errors"].extend(f"{row.integration_type}: {err}" for err in result["errors"])

        logger.info(
            f"Sync for user {user_id}: {summary['total_imported']} imported, "
            f"{summary['total_exported']} exported, {len(summary['errors'])} errors"
        )
        return summary

    def _sync_one(self, user_id: str, row: IntegrationDB, direction: str, now: datetime) -> Dict[str, Any]:
        result: Dict[str, Any] = {"imported": 0, "exported": 0, "errors": []}
        rules = row.sync_rules or {}
        do_import = _direction_includes(direction, SyncDirection.IMPORT) and rules.get("import_enabled", True)
        do_export = _direction_includes(direction, SyncDirection.EXPORT) and rules.get("export_enabled", True)

        try:
            if row.integration_type == IntegrationType.GOOGLE_CALENDAR.value:
                client = self._calendar_client(row, now)
                if do_import:
                    self._import_calendar(user_id, client, rules, now, result)
                if do_export:
                    self._export(user_id, IntegrationType.GOOGLE_CALENDAR, now, result,
                                 lambda external_id, task: self._export_calendar_item(
                                     client, external_id, task.completed_at or now))
            elif row.integration_type == IntegrationType.NOTION.value:
                client = self.notion_client_factory(self.integrations.access_token(row))
                if do_import:
                    self._import_notion(user_id, client, rules, result)
                if do_export:
                    self._export(user_id, IntegrationType.NOTION, now, result,
                                 lambda external_id, task: self._export_notion_item(client, external_id))
            else:
                result["errors"].append(f"Unsupported integration type {row.integration_type}")
        except Exception as e:
            logger.warning(f"Sync failed for {row.integration_type} integration {row.id}: {type(e).__name__}")
            result["errors"].append(str(e))
        finally:
            self.integrations.mark_synced(row, now)

        return result

    def _calendar_client(self, row: IntegrationDB, now: datetime):
        creds = build_credentials(
            self.integrations.access_token(row),
            self.integrations.refresh_token(row),
            row.token_expires_at,
        )
        if row.token_expires_at and row.token_expires_at <= now and creds.refresh_token:
            self.refresh_credentials(creds)
            self.integrations.update_access_token(row, creds.token, creds.expiry)
            logger.debug(f"Refreshed access token for integration {row.id}")
        return self.calendar_client_factory(creds)

    def _import_item(
        self,
        user_id: str,
        external_id: Optional[str],
        integration_type: IntegrationType,
        build_task: Callable[[], Optional[Task]],
        result: Dict[str, Any],
    ) -> None:
        """Parse, build and store one external item; failures stay with that item."""
        if not external_id:
            return
        try:
            if self.mappings.get_by_external_id(user_id, external_id, integration_type.value):
                return
            task = build_task()
            if task is None:
                return
            self.mappings.create_task_with_mapping(task, external_id, integration_type.value)
            result["imported"] += 1
        except Exception as e:
            logger.warning(f"Skipping {integration_type.value} item {external_id}: {type(e).__name__}")
            result["errors"].append(f"Failed to import {external_id}: {type(e).__name__}: {e}")

    def _import_calendar(self, user_id: str, client, rules: Dict[str, Any], now: datetime, result: Dict[str, Any]) -> None:
        time_min = to_rfc3339(now)
        time_max = to_rfc3339(now + timedelta(days=CALENDAR_IMPORT_WINDOW_DAYS))
        filters = rules.get("title_filters") or []

        def build(event: Dict[str, Any]) -> Optional[Task]:
            start = (event.get("start") or {}).get("dateTime")
            # All-day events only carry start.date
            if not start:
                return None
            summary = event.get("summary")
            title = summary or "Calendar Event"
            if not _passes_title_filters(title, filters):
                return None
            return create_task_base(
                user_id=user_id,
                title=title,
                source_type=IntegrationType.GOOGLE_CALENDAR.value,
                description=event.get("description") or f"Calendar event: {summary}",
                due_date=parse_timestamp(start),
                tags=[CALENDAR_IMPORT_TAG],
            )

        for event in client.list_events_in_range(time_min, time_max):
            self._import_item(user_id, event.get("id"), IntegrationType.GOOGLE_CALENDAR,
                              lambda: build(event), result)

    def _import_notion(self, user_id: str, client, rules: Dict[str, Any], result: Dict[str, Any]) -> None:
        filters = rules.get("title_filters") or []

        def build(page: Dict[str, Any]) -> Optional[Task]:
            fields = notion_page_fields(page)
            if not _passes_title_filters(fields["title"], filters):
                return None
            task = create_task_base(
                user_id=user_id,
                title=fields["title"],
                source_type=IntegrationType.NOTION.value,
                due_date=fields["due_date"],
                tags=[NOTION_IMPORT_TAG],
            )
            status = map_notion_status(fields["status"])
            if status != TaskStatus.PENDING:
                task = task.model_copy(update={
                    "status": status.value,
                    "completed_at": task.created_at if status == TaskStatus.COMPLETED else None,
                })
            return task

        for database in client.search_databases():
            if not self.classifier(database.get("properties") or {}):
                continue
            for page in client.query_database(database["id"]):
                self._import_item(user_id, page.get("id"), IntegrationType.NOTION,
                                  lambda: build(page), result)

    def _export(self, user_id: str, integration_type: IntegrationType, now: datetime,
                result: Dict[str, Any], push: Callable[[str, Task], None]) -> None:
        since = now - timedelta(hours=EXPORT_LOOKBACK_HOURS)
        for task in self.tasks.get_completed_since(user_id, since):
            mapping = self.mappings.get_for_task(task.id, integration_type.value)
            if mapping is None:
                continue
            try:
                push(mapping.external_id, task)
                result["exported"] += 1
            except Exception as e:
                result["errors"].append(f"Failed to export task {task.id}: {e}")

    def _export_calendar_item(self, client, event_id: str, completed_at: datetime) -> None:
        client.append_to_description(event_id, COMPLETION_NOTE.format(date=completed_at.strftime("%Y-%m-%d")))

    def _export_notion_item(self, client, page_id: str) -> None:
        page = client.get_page(page_id)
        for name, prop in (page.get("properties") or {}).items():
            if prop.get("type") in ("status", "select"):
                client.update_page_properties(page_id, {name: {prop["type"]: {"name": "Done"}}})
                return
        raise ValueError(f"Notion page {page_id} has no status or select property")
