"""Tests for TaskRepository CRUD operations."""

import pytest
from datetime import datetime, timedelta

from mindmesh.models.task import TaskStatus


class TestTaskRepository:
    """Test TaskRepository CRUD operations."""

    def test_create_task(self, task_repository, sample_task, test_user_id):
        """Test creating a task."""
        created = task_repository.create(sample_task)

        assert created.id == sample_task.id
        assert created.title == sample_task.title
        assert created.status == TaskStatus.PENDING.value
        assert created.user_id == test_user_id

    def test_get_nonexistent_task(self, task_repository, test_user_id):
        """Test retrieving a nonexistent task returns None."""
        assert task_repository.get(test_user_id, "nonexistent-id") is None

    def test_get_is_owner_scoped(self, task_repository, sample_task, other_user_id):
        """Test that another user cannot read the task."""
        task_repository.create(sample_task)
        assert task_repository.get(other_user_id, sample_task.id) is None

    def test_get_all_orders_by_task_order_then_newest(self, task_repository, make_task, test_user_id):
        """Test that get_all() sorts by task_order, then creation date (newest first)."""
        now = datetime.utcnow()
        task_repository.create(make_task(title="old", created_at=now - timedelta(minutes=2)))
        task_repository.create(make_task(title="new", created_at=now))
        task_repository.create(make_task(title="first", task_order=-1, created_at=now - timedelta(minutes=5)))

        titles = [t.title for t in task_repository.get_all(test_user_id)]
        assert titles == ["first", "new", "old"]

    def test_get_all_filters_by_status(self, task_repository, make_task, test_user_id):
        task_repository.create(make_task(title="open"))
        task_repository.create(make_task(title="done", status=TaskStatus.COMPLETED, completed_at=datetime.utcnow()))

        done = task_repository.get_all(test_user_id, "completed")
        assert [t.title for t in done] == ["done"]

    def test_update_task(self, task_repository, sample_task, test_user_id):
        """Test updating a task."""
        created = task_repository.create(sample_task)
        updated = task_repository.update(created.model_copy(update={"title": "Renamed", "tags": ["x"]}))

        assert updated.title == "Renamed"
        assert task_repository.get(test_user_id, created.id).tags == ["x"]

    def test_update_nonexistent_raises(self, task_repository, sample_task):
        with pytest.raises(ValueError):
            task_repository.update(sample_task)

    def test_parent_must_belong_to_owner(self, task_repository, make_task, other_user_id):
        """Test that a parent owned by another user is rejected."""
        foreign = task_repository.create(make_task(user_id=other_user_id, title="Foreign"))
        with pytest.raises(ValueError):
            task_repository.create(make_task(title="Child", parent_task_id=foreign.id))

    def test_parent_cycle_rejected(self, task_repository, make_task):
        """Test that re-parenting a task under its own descendant is rejected."""
        parent = task_repository.create(make_task(title="Parent"))
        child = task_repository.create(make_task(title="Child", parent_task_id=parent.id))

        with pytest.raises(ValueError):
            task_repository.update(parent.model_copy(update={"parent_task_id": child.id}))

    def test_delete_promotes_children(self, task_repository, make_task, test_user_id):
        """Test that deleting a parent leaves its children as roots."""
        parent = task_repository.create(make_task(title="Parent"))
        child = task_repository.create(make_task(title="Child", parent_task_id=parent.id))

        assert task_repository.delete(test_user_id, parent.id) is True

        remaining = task_repository.get(test_user_id, child.id)
        assert remaining is not None
        assert remaining.parent_task_id is None

    def test_delete_missing_returns_false(self, task_repository, test_user_id):
        assert task_repository.delete(test_user_id, "missing") is False

    def test_update_order(self, task_repository, sample_task, test_user_id):
        created = task_repository.create(sample_task)
        reordered = task_repository.update_order(test_user_id, created.id, 5)
        assert reordered.task_order == 5

    def test_completed_since(self, task_repository, make_task, test_user_id):
        now = datetime.utcnow()
        task_repository.create(make_task(title="recent", status=TaskStatus.COMPLETED,
                                         completed_at=now - timedelta(hours=2)))
        task_repository.create(make_task(title="stale", status=TaskStatus.COMPLETED,
                                         completed_at=now - timedelta(days=2)))

        recent = task_repository.get_completed_since(test_user_id, now - timedelta(hours=24))
        assert [t.title for t in recent] == ["recent"]
