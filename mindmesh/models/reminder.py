"""Reminder data model for MindMesh."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Reminder(BaseModel):
    """A user reminder.

    Snoozing never moves `remind_at` in place: a new reminder is created that
    points back at the original via `original_reminder_id`, and the original
    is dismissed.
    """
    
    id: str = Field(..., description="Unique reminder identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this reminder")
    title: str = Field(..., description="Reminder title")
    description: Optional[str] = Field(None, description="Reminder description")
    remind_at: datetime = Field(..., description="When the reminder becomes active")
    is_dismissed: bool = Field(False, description="Dismissed reminders are never active")
    snooze_minutes: Optional[int] = Field(None, description="Snooze duration that produced this reminder")
    original_reminder_id: Optional[str] = Field(None, description="Reminder this one was snoozed from")
    created_at: datetime = Field(..., description="Reminder creation timestamp")

    def is_active(self, now: datetime) -> bool:
        return not self.is_dismissed and self.remind_at <= now
