"""Focus session data model for MindMesh."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class FocusSession(BaseModel):
    """A timed focus block, optionally tied to a task."""
    
    id: str = Field(..., description="Unique session identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this session")
    task_id: Optional[str] = Field(None, description="Task being focused on")
    started_at: datetime = Field(..., description="Session start")
    ended_at: Optional[datetime] = Field(None, description="Session end (null while running)")
    planned_minutes: int = Field(25, ge=1, description="Planned session length")
    completed: bool = Field(False, description="Whether the session ran its full length")
    notes: Optional[str] = Field(None, description="Free-text notes")
