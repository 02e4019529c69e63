"""Mood entry data model for MindMesh."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class MoodEntry(BaseModel):
    """A single mood/energy/focus check-in."""
    
    id: str = Field(..., description="Unique entry identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this entry")
    mood_score: int = Field(..., ge=1, le=10, description="Mood score 1-10")
    energy_level: int = Field(..., ge=1, le=10, description="Energy level 1-10")
    focus_level: int = Field(..., ge=1, le=10, description="Focus level 1-10")
    notes: Optional[str] = Field(None, description="Free-text notes")
    created_at: datetime = Field(..., description="Entry creation timestamp")
