"""Task creation factory for MindMesh.

This module centralizes task creation logic so every creation path
(API, recurrence, integration import, AI suggestions) applies the same defaults.
"""

import uuid
from datetime import datetime
from typing import Optional, Dict, Any, List

from mindmesh.models.task import Task, TaskPriority, RecurrencePattern
from mindmesh.models.constants import (
    DEFAULT_TASK_STATUS,
    DEFAULT_TASK_PRIORITY,
    DEFAULT_COMPLEXITY,
    DEFAULT_TASK_ORDER,
)


def create_task_defaults() -> Dict[str, Any]:
    """Get default task values as a dictionary.
    
    Returns:
        Dictionary with default task field values using constants
    """
    return {
        "status": DEFAULT_TASK_STATUS,
        "priority": DEFAULT_TASK_PRIORITY,
        "due_date": None,
        "parent_task_id": None,
        "recurrence_pattern": None,
        "recurrence_end_date": None,
        "task_order": DEFAULT_TASK_ORDER,
        "tags": [],
        "complexity": DEFAULT_COMPLEXITY,
        "completed_at": None,
    }


def create_task_base(
    user_id: str,
    title: str,
    source_type: str = "api",
    description: Optional[str] = None,
    priority: Optional[TaskPriority] = None,
    due_date: Optional[datetime] = None,
    parent_task_id: Optional[str] = None,
    recurrence_pattern: Optional[RecurrencePattern] = None,
    recurrence_end_date: Optional[datetime] = None,
    task_order: Optional[int] = None,
    tags: Optional[List[str]] = None,
    complexity: Optional[int] = None,
) -> Task:
    """Create a task with defaults, allowing overrides.
    
    Args:
        user_id: User ID who owns this task (required)
        title: Task title (required)
        source_type: Creation path (e.g., 'api', 'recurrence', 'google_calendar')
        description: Task description
        priority: Task priority (defaults to medium)
        due_date: Due timestamp
        parent_task_id: Parent task for subtasks
        recurrence_pattern: Recurrence unit
        recurrence_end_date: Last date a successor may be due
        task_order: Order within the sibling group (defaults to 0)
        tags: Free-text tags
        complexity: Complexity 1-5 (defaults to constant)
        
    Returns:
        Task object with defaults applied
    """
    now = datetime.utcnow()
    defaults = create_task_defaults()
    return Task(
        id=str(uuid.uuid4()),
        user_id=user_id,
        source_type=source_type,
        title=title,
        description=description,
        status=defaults["status"],
        priority=priority if priority is not None else defaults["priority"],
        due_date=due_date,
        parent_task_id=parent_task_id,
        recurrence_pattern=recurrence_pattern,
        recurrence_end_date=recurrence_end_date,
        task_order=task_order if task_order is not None else defaults["task_order"],
        tags=list(tags) if tags else defaults["tags"],
        complexity=complexity if complexity is not None else defaults["complexity"],
        created_at=now,
        updated_at=now,
        completed_at=None,
    )
