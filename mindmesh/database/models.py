"""SQLAlchemy database models for MindMesh."""

from datetime import datetime
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, ForeignKey, UniqueConstraint

from typing import Union, TypeVar, Type
from mindmesh.database.database import Base
from mindmesh.models.task import TaskStatus, TaskPriority, RecurrencePattern
from mindmesh.models.integration import IntegrationType, SyncDirection

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


def _new_id() -> str:
    return str(uuid.uuid4())


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"

    id = Column(String, primary_key=True, default=_new_id)

    # Owner is the identity provider's subject; there is no local users table.
    user_id = Column(String, nullable=False, index=True)
    source_type = Column(String, nullable=False, default="api")

    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    status = Column(String, nullable=False, default=TaskStatus.PENDING.value, index=True)
    priority = Column(String, nullable=False, default=TaskPriority.MEDIUM.value)
    due_date = Column(DateTime, nullable=True)

    # Hierarchy: deleting a parent promotes its children to roots.
    parent_task_id = Column(String, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True, index=True)
    task_order = Column(Integer, nullable=False, default=0)

    recurrence_pattern = Column(String, nullable=True)
    recurrence_end_date = Column(DateTime, nullable=True)

    tags = Column(JSON, nullable=False, default=list)
    complexity = Column(Integer, nullable=False, default=3)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True, index=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from mindmesh.models.task import Task

        recurrence = None
        if self.recurrence_pattern:
            recurrence = value_to_enum(self.recurrence_pattern, RecurrencePattern, None)

        return Task(
            id=self.id,
            user_id=self.user_id,
            source_type=self.source_type,
            title=self.title,
            description=self.description,
            status=value_to_enum(self.status, TaskStatus, TaskStatus.PENDING),
            priority=value_to_enum(self.priority, TaskPriority, TaskPriority.MEDIUM),
            due_date=self.due_date,
            parent_task_id=self.parent_task_id,
            recurrence_pattern=recurrence,
            recurrence_end_date=self.recurrence_end_date,
            task_order=self.task_order or 0,
            tags=self.tags or [],
            complexity=self.complexity,
            created_at=self.created_at,
            updated_at=self.updated_at,
            completed_at=self.completed_at,
        )

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        return cls(
            id=task.id,
            user_id=task.user_id,
            source_type=task.source_type,
            title=task.title,
            description=task.description,
            status=enum_to_value(task.status),
            priority=enum_to_value(task.priority),
            due_date=task.due_date,
            parent_task_id=task.parent_task_id,
            recurrence_pattern=enum_to_value(task.recurrence_pattern) if task.recurrence_pattern else None,
            recurrence_end_date=task.recurrence_end_date,
            task_order=task.task_order,
            tags=list(task.tags or []),
            complexity=task.complexity,
            created_at=task.created_at,
            updated_at=task.updated_at,
            completed_at=task.completed_at,
        )


class MoodEntryDB(Base):
    """Database model for MoodEntry."""

    __tablename__ = "mood_entries"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    mood_score = Column(Integer, nullable=False)
    energy_level = Column(Integer, nullable=False)
    focus_level = Column(Integer, nullable=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from mindmesh.models.mood import MoodEntry
        return MoodEntry(
            id=self.id,
            user_id=self.user_id,
            mood_score=self.mood_score,
            energy_level=self.energy_level,
            focus_level=self.focus_level,
            notes=self.notes,
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, entry):
        """Create database model from Pydantic model."""
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            mood_score=entry.mood_score,
            energy_level=entry.energy_level,
            focus_level=entry.focus_level,
            notes=entry.notes,
            created_at=entry.created_at,
        )


class ReminderDB(Base):
    """Database model for Reminder."""

    __tablename__ = "reminders"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    remind_at = Column(DateTime, nullable=False, index=True)
    is_dismissed = Column(Boolean, nullable=False, default=False)
    snooze_minutes = Column(Integer, nullable=True)
    original_reminder_id = Column(String, ForeignKey("reminders.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from mindmesh.models.reminder import Reminder
        return Reminder(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            description=self.description,
            remind_at=self.remind_at,
            is_dismissed=self.is_dismissed,
            snooze_minutes=self.snooze_minutes,
            original_reminder_id=self.original_reminder_id,
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, reminder):
        """Create database model from Pydantic model."""
        return cls(
            id=reminder.id,
            user_id=reminder.user_id,
            title=reminder.title,
            description=reminder.description,
            remind_at=reminder.remind_at,
            is_dismissed=reminder.is_dismissed,
            snooze_minutes=reminder.snooze_minutes,
            original_reminder_id=reminder.original_reminder_id,
            created_at=reminder.created_at,
        )


class FocusSessionDB(Base):
    """Database model for FocusSession."""

    __tablename__ = "focus_sessions"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    task_id = Column(String, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    ended_at = Column(DateTime, nullable=True)
    planned_minutes = Column(Integer, nullable=False, default=25)
    completed = Column(Boolean, nullable=False, default=False)
    notes = Column(String, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from mindmesh.models.focus_session import FocusSession
        return FocusSession(
            id=self.id,
            user_id=self.user_id,
            task_id=self.task_id,
            started_at=self.started_at,
            ended_at=self.ended_at,
            planned_minutes=self.planned_minutes,
            completed=self.completed,
            notes=self.notes,
        )


class BrainDumpDB(Base):
    """Database model for BrainDumpEntry."""

    __tablename__ = "brain_dumps"

    # Client-generated id; uploads upsert on it.
    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    content = Column(String, nullable=False)
    entry_type = Column(String, nullable=False, default="text")
    timestamp = Column(DateTime, nullable=False)
    processed = Column(Boolean, nullable=False, default=False)
    ai_result = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from mindmesh.models.brain_dump import BrainDumpEntry
        return BrainDumpEntry(
            id=self.id,
            user_id=self.user_id,
            content=self.content,
            entry_type=self.entry_type,
            timestamp=self.timestamp,
            processed=self.processed,
            ai_result=self.ai_result,
            created_at=self.created_at,
        )


class IntegrationDB(Base):
    """Database model for a connected external account.

    Token columns hold Fernet ciphertext, never raw values.
    """

    __tablename__ = "user_integrations"
    __table_args__ = (
        UniqueConstraint("user_id", "integration_type", name="uq_user_integration_type"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    integration_type = Column(String, nullable=False)
    access_token_encrypted = Column(String, nullable=True)
    refresh_token_encrypted = Column(String, nullable=True)
    token_expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_sync_at = Column(DateTime, nullable=True)
    sync_rules = Column(JSON, nullable=False, default=dict)
    integration_data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model (tokens are not exposed)."""
        from mindmesh.models.integration import Integration
        return Integration(
            id=self.id,
            user_id=self.user_id,
            integration_type=value_to_enum(self.integration_type, IntegrationType, IntegrationType.GOOGLE_CALENDAR),
            is_active=self.is_active,
            last_sync_at=self.last_sync_at,
            token_expires_at=self.token_expires_at,
            sync_rules=self.sync_rules or {},
            integration_data=self.integration_data or {},
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class SyncMappingDB(Base):
    """Database model for SyncMapping.

    (user_id, external_id, integration_type) is the import idempotency key.
    """

    __tablename__ = "sync_mappings"
    __table_args__ = (
        UniqueConstraint("user_id", "external_id", "integration_type", name="uq_sync_mapping_external"),
        UniqueConstraint("task_id", "integration_type", name="uq_sync_mapping_task"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    external_id = Column(String, nullable=False)
    integration_type = Column(String, nullable=False)
    sync_direction = Column(String, nullable=False, default=SyncDirection.IMPORT.value)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from mindmesh.models.integration import SyncMapping
        return SyncMapping(
            id=self.id,
            user_id=self.user_id,
            task_id=self.task_id,
            external_id=self.external_id,
            integration_type=value_to_enum(self.integration_type, IntegrationType, IntegrationType.GOOGLE_CALENDAR),
            sync_direction=value_to_enum(self.sync_direction, SyncDirection, SyncDirection.IMPORT),
            created_at=self.created_at,
        )
