"""Task store: cached task list plus its hierarchy for one user.

Every mutation waits for the repository before touching the cache. A failed
call leaves `tasks` and `forest` exactly as they were, sets `error` and logs.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from mindmesh.database.repository import TaskRepository
from mindmesh.engine.hierarchy import TaskForest, build_hierarchy
from mindmesh.engine.recurrence import complete_and_maybe_recur
from mindmesh.models.constants import SUGGESTED_TASK_DELAY_SEC
from mindmesh.models.task import Task, TaskPriority, TaskStatus
from mindmesh.models.task_factory import create_task_base

logger = logging.getLogger(__name__)

_PRIORITIES = {p.value for p in TaskPriority}


class TaskStore:
    """Owner-scoped task cache with a derived forest."""

    def __init__(
        self,
        repo: TaskRepository,
        user_id: str,
        sleep: Callable[[float], None] = time.sleep,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.repo = repo
        self.user_id = user_id
        self.sleep = sleep
        self._now = now or datetime.utcnow
        self.tasks: List[Task] = []
        self.forest: TaskForest = build_hierarchy([])
        self.loading = False
        self.error: Optional[str] = None
        self._expanded: Set[str] = set()

    def _fail(self, action: str, e: Exception) -> None:
        self.error = f"Failed to {action}: {e}"
        logger.warning(f"Task store could not {action}: {type(e).__name__}: {str(e)}")

    def _rebuild(self, tasks: List[Task]) -> None:
        self.tasks = tasks
        self.forest = build_hierarchy(tasks)
        # Expansion survives reloads for tasks that still exist.
        self._expanded = {task_id for task_id in self._expanded if self.forest.find(task_id)}
        for task_id in self._expanded:
            self.forest.find(task_id).is_expanded = True

    def load(self) -> bool:
        """Fetch all tasks and rebuild the forest."""
        self.loading = True
        try:
            tasks = self.repo.get_all(self.user_id)
        except Exception as e:
            self._fail("load tasks", e)
            return False
        finally:
            self.loading = False
        self._rebuild(tasks)
        self.error = None
        return True

    def create(self, title: str, **fields: Any) -> Optional[Task]:
        try:
            task = self.repo.create(create_task_base(user_id=self.user_id, title=title, **fields))
        except Exception as e:
            self._fail("create task", e)
            return None
        self.load()
        return task

    def update(self, task_id: str, changes: Dict[str, Any]) -> Optional[Task]:
        """Apply field changes to one task.

        Moving a task into `completed` goes through the completion path, so a
        recurring task gets its successor. Moving it out clears `completed_at`.
        """
        try:
            current = self.repo.get(self.user_id, task_id)
            if current is None:
                raise ValueError(f"Task {task_id} not found")
            now = self._now()
            update = dict(changes)
            new_status = update.get("status", current.status)
            if new_status == TaskStatus.COMPLETED and current.status != TaskStatus.COMPLETED:
                update.pop("status", None)
                task, _ = complete_and_maybe_recur(self.repo, self.user_id, task_id, now, changes=update)
            else:
                update["updated_at"] = now
                if new_status != TaskStatus.COMPLETED:
                    update["completed_at"] = None
                task = self.repo.update(current.model_copy(update=update))
        except Exception as e:
            self._fail("update task", e)
            return None
        self.load()
        return task

    def delete(self, task_id: str) -> bool:
        try:
            deleted = self.repo.delete(self.user_id, task_id)
        except Exception as e:
            self._fail("delete task", e)
            return False
        if deleted:
            self.load()
        return deleted

    def complete(self, task_id: str) -> Optional[Tuple[Task, Optional[Task]]]:
        """Complete a task, creating its recurrence successor when due.

        Returns:
            (completed task, successor or None), or None on failure
        """
        try:
            result = complete_and_maybe_recur(self.repo, self.user_id, task_id, self._now())
        except Exception as e:
            self._fail("complete task", e)
            return None
        self.load()
        return result

    def reorder(self, task_id: str, new_order: int) -> Optional[Task]:
        try:
            task = self.repo.update_order(self.user_id, task_id, new_order)
        except Exception as e:
            self._fail("reorder task", e)
            return None
        self.load()
        return task

    def toggle_expansion(self, task_id: str) -> Optional[bool]:
        """Flip a node's expanded flag in the cached forest (never persisted)."""
        flag = self.forest.toggle_expansion(task_id)
        if flag is True:
            self._expanded.add(task_id)
        elif flag is False:
            self._expanded.discard(task_id)
        return flag

    def add_suggested_tasks(self, suggestions: List[Dict[str, Any]]) -> List[Task]:
        """Create tasks from AI workload suggestions, pausing between inserts.

        Suggestions without a title are skipped; a failed insert is logged and
        the remaining suggestions are still attempted.
        """
        created: List[Task] = []
        failure: Optional[str] = None
        for i, suggestion in enumerate(suggestions):
            title = (suggestion.get("title") or "").strip()
            if not title:
                continue
            if i > 0:
                self.sleep(SUGGESTED_TASK_DELAY_SEC)
            priority = suggestion.get("priority")
            tags = [t for t in (suggestion.get("tags") or []) if isinstance(t, str)]
            try:
                task = self.repo.create(create_task_base(
                    user_id=self.user_id,
                    title=title,
                    source_type="suggestion",
                    description=suggestion.get("description"),
                    priority=TaskPriority(priority) if priority in _PRIORITIES else None,
                    tags=tags,
                ))
                created.append(task)
            except Exception as e:
                self._fail(f"add suggested task '{title[:50]}'", e)
                failure = self.error
        self.load()
        if failure:
            self.error = failure
        return created
