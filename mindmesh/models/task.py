"""Task data model for MindMesh."""

from datetime import datetime
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task status enumeration."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    """Task priority enumeration."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecurrencePattern(str, Enum):
    """Supported recurrence units (one unit per occurrence)."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Task(BaseModel):
    """Canonical Task model."""
    
    id: str = Field(..., description="Unique task identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this task")
    source_type: str = Field("api", description="How the task was created (e.g., 'api', 'recurrence', 'google_calendar')")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    status: TaskStatus = Field(TaskStatus.PENDING, description="Task status")
    priority: TaskPriority = Field(TaskPriority.MEDIUM, description="Task priority")
    due_date: Optional[datetime] = Field(None, description="Task due timestamp")
    parent_task_id: Optional[str] = Field(None, description="Parent task ID (same owner) for subtasks")
    recurrence_pattern: Optional[RecurrencePattern] = Field(None, description="Recurrence unit, if recurring")
    recurrence_end_date: Optional[datetime] = Field(None, description="No successor is created past this date")
    task_order: int = Field(0, description="Order within the sibling group")
    tags: List[str] = Field(default_factory=list, description="Free-text tags")
    complexity: int = Field(3, ge=1, le=5, description="Subjective complexity 1-5")
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp")
    
    class Config:
        """Pydantic configuration."""
        use_enum_values = True
