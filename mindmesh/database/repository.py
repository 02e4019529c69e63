"""Repository layer for database operations."""

import logging
from datetime import datetime
from typing import List, Optional, Set
from sqlalchemy.orm import Session
from sqlalchemy import asc, desc

from mindmesh.models.task import Task, TaskStatus
from mindmesh.database.models import TaskDB, SyncMappingDB, enum_to_value

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _validate_parent(self, user_id: str, task_id: str, parent_task_id: Optional[str]) -> None:
        """Reject cross-owner parents and parent chains that loop back to the task."""
        if not parent_task_id:
            return
        if parent_task_id == task_id:
            raise ValueError("A task cannot be its own parent")

        seen: Set[str] = set()
        current_id: Optional[str] = parent_task_id
        while current_id:
            if current_id in seen:
                # Pre-existing loop above us; it does not include task_id.
                break
            seen.add(current_id)
            row = self.db.query(TaskDB.id, TaskDB.parent_task_id).filter(
                TaskDB.id == current_id,
                TaskDB.user_id == user_id,
            ).first()
            if row is None:
                if current_id == parent_task_id:
                    raise ValueError(f"Parent task {parent_task_id} not found")
                break
            if row.parent_task_id == task_id:
                raise ValueError(f"Setting parent {parent_task_id} would create a cycle")
            current_id = row.parent_task_id

    def create(self, task: Task) -> Task:
        """Create a new task."""
        self._validate_parent(task.user_id, task.id, task.parent_task_id)
        try:
            task_db = TaskDB.from_pydantic(task)
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: str, task_id: str) -> Optional[Task]:
        """Get task by ID for a specific user."""
        task_db = self.db.query(TaskDB).filter(
            TaskDB.id == task_id,
            TaskDB.user_id == user_id,
        ).first()
        return task_db.to_pydantic() if task_db else None

    def get_all(self, user_id: str, status: Optional[str] = None) -> List[Task]:
        """Get tasks for a user ordered by task_order, then newest first."""
        query = self.db.query(TaskDB).filter(TaskDB.user_id == user_id)
        if status:
            query = query.filter(TaskDB.status == enum_to_value(status))
        tasks_db = query.order_by(asc(TaskDB.task_order), desc(TaskDB.created_at)).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def get_created_since(self, user_id: str, since: datetime) -> List[Task]:
        """Get tasks created at or after `since`."""
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.user_id == user_id,
            TaskDB.created_at >= since,
        ).order_by(desc(TaskDB.created_at)).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def get_completed_since(self, user_id: str, since: datetime) -> List[Task]:
        """Get tasks completed at or after `since`."""
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.user_id == user_id,
            TaskDB.status == TaskStatus.COMPLETED.value,
            TaskDB.completed_at.isnot(None),
            TaskDB.completed_at >= since,
        ).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def _apply(self, task_db: TaskDB, task: Task) -> None:
        task_db.source_type = task.source_type
        task_db.title = task.title
        task_db.description = task.description
        task_db.status = enum_to_value(task.status)
        task_db.priority = enum_to_value(task.priority)
        task_db.due_date = task.due_date
        task_db.parent_task_id = task.parent_task_id
        task_db.recurrence_pattern = enum_to_value(task.recurrence_pattern) if task.recurrence_pattern else None
        task_db.recurrence_end_date = task.recurrence_end_date
        task_db.task_order = task.task_order
        task_db.tags = list(task.tags or [])
        task_db.complexity = task.complexity
        task_db.updated_at = task.updated_at
        task_db.completed_at = task.completed_at

    def update(self, task: Task) -> Task:
        """Update an existing task (user_id must match task.user_id)."""
        task_db = self.db.query(TaskDB).filter(
            TaskDB.id == task.id,
            TaskDB.user_id == task.user_id,
        ).first()
        if not task_db:
            raise ValueError(f"Task {task.id} not found")

        if task.parent_task_id != task_db.parent_task_id:
            self._validate_parent(task.user_id, task.id, task.parent_task_id)

        self._apply(task_db, task)

        try:
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Updated task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def complete_with_successor(self, task: Task, successor: Optional[Task]) -> Task:
        """Persist a completed task and its recurrence successor in one commit."""
        task_db = self.db.query(TaskDB).filter(
            TaskDB.id == task.id,
            TaskDB.user_id == task.user_id,
        ).first()
        if not task_db:
            raise ValueError(f"Task {task.id} not found")

        self._apply(task_db, task)
        try:
            if successor is not None:
                self.db.add(TaskDB.from_pydantic(successor))
            self.db.commit()
            self.db.refresh(task_db)
            if successor is not None:
                logger.debug(f"Completed task {task.id}; created successor {successor.id}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to complete task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def update_order(self, user_id: str, task_id: str, new_order: int) -> Task:
        """Persist a new sibling order for one task (siblings are not renumbered)."""
        task_db = self.db.query(TaskDB).filter(
            TaskDB.id == task_id,
            TaskDB.user_id == user_id,
        ).first()
        if not task_db:
            raise ValueError(f"Task {task_id} not found")
        try:
            task_db.task_order = new_order
            task_db.updated_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(task_db)
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to reorder task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, user_id: str, task_id: str) -> bool:
        """Permanently delete a task; its children become roots and its sync mappings go away."""
        task_db = self.db.query(TaskDB).filter(
            TaskDB.id == task_id,
            TaskDB.user_id == user_id,
        ).first()
        if not task_db:
            return False

        try:
            # Explicit so behaviour does not depend on the backend enforcing FK actions.
            self.db.query(TaskDB).filter(
                TaskDB.user_id == user_id,
                TaskDB.parent_task_id == task_id,
            ).update({TaskDB.parent_task_id: None}, synchronize_session=False)
            self.db.query(SyncMappingDB).filter(
                SyncMappingDB.task_id == task_id,
            ).delete(synchronize_session=False)
            self.db.delete(task_db)
            self.db.commit()
            logger.debug(f"Deleted task {task_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete task {task_id}: {type(e).__name__}: {str(e)}")
            raise
