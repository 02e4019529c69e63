"""Recurring task regeneration for MindMesh.

When a recurring task is completed, exactly one successor is created with the
due date shifted by one recurrence unit.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from dateutil.relativedelta import relativedelta

from mindmesh.database.repository import TaskRepository
from mindmesh.models.task import Task, TaskStatus, RecurrencePattern
from mindmesh.models.task_factory import create_task_base

logger = logging.getLogger(__name__)


_STEPS = {
    RecurrencePattern.DAILY: timedelta(days=1),
    RecurrencePattern.WEEKLY: timedelta(weeks=1),
    # relativedelta clamps to month end (Jan 31 + 1 month -> Feb 28/29).
    RecurrencePattern.MONTHLY: relativedelta(months=1),
    RecurrencePattern.YEARLY: relativedelta(years=1),
}


def next_due_date(pattern: str, due_date: Optional[datetime], now: Optional[datetime] = None) -> datetime:
    """Compute the successor's due date.

    Args:
        pattern: Recurrence pattern value (daily/weekly/monthly/yearly)
        due_date: Current due date; "now" is used when missing
        now: Reference time (defaults to utcnow)

    Returns:
        Base date plus one recurrence unit

    Raises:
        ValueError: If the pattern is not recognized
    """
    step = _STEPS[RecurrencePattern(pattern)]
    base = due_date or now or datetime.utcnow()
    return base + step


def build_successor(task: Task, now: Optional[datetime] = None) -> Optional[Task]:
    """Build (without persisting) the next occurrence of a recurring task.

    Returns None when the task does not recur or the next due date would fall
    after `recurrence_end_date`.
    """
    if not task.recurrence_pattern:
        return None

    due = next_due_date(task.recurrence_pattern, task.due_date, now)
    if task.recurrence_end_date and due > task.recurrence_end_date:
        logger.debug(f"Recurrence for task {task.id} ended; no successor past {task.recurrence_end_date}")
        return None

    return create_task_base(
        user_id=task.user_id,
        title=task.title,
        source_type="recurrence",
        description=task.description,
        priority=task.priority,
        due_date=due,
        parent_task_id=task.parent_task_id,
        recurrence_pattern=task.recurrence_pattern,
        recurrence_end_date=task.recurrence_end_date,
        task_order=task.task_order,
        tags=task.tags,
        complexity=task.complexity,
    )


def complete_and_maybe_recur(
    repo: TaskRepository,
    user_id: str,
    task_id: str,
    now: Optional[datetime] = None,
    changes: Optional[Dict[str, Any]] = None,
) -> Tuple[Task, Optional[Task]]:
    """Mark a task completed and create its recurrence successor if due.

    `changes` are other field edits applied together with the completion;
    the successor is built from the edited task.
    Completing an already-completed task is a no-op and creates no successor.

    Returns:
        (completed task, successor or None)

    Raises:
        ValueError: If the task does not exist for this user
    """
    task = repo.get(user_id, task_id)
    if task is None:
        raise ValueError(f"Task {task_id} not found")
    if task.status == TaskStatus.COMPLETED:
        return task, None

    now = now or datetime.utcnow()
    update = dict(changes or {})
    update.update({
        "status": TaskStatus.COMPLETED,
        "completed_at": update.get("completed_at") or now,
        "updated_at": now,
    })
    completed = task.model_copy(update=update)
    successor = build_successor(completed, now)
    saved = repo.complete_with_successor(completed, successor)
    return saved, successor
