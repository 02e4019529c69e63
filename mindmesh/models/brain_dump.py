"""Brain dump data model for MindMesh."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, Field


class BrainDumpCategory(str, Enum):
    """Classification assigned to a processed brain dump."""
    ACTION = "action"
    NOTE = "note"
    REFLECTION = "reflection"


class BrainDumpEntry(BaseModel):
    """A free-text (or transcribed voice) capture.

    The id is generated on the client so offline captures can be uploaded
    more than once without duplicating rows.
    """
    
    id: str = Field(..., description="Client-generated entry identifier")
    user_id: str = Field(..., description="User ID who owns this entry")
    content: str = Field(..., description="Captured text")
    entry_type: str = Field("text", description="'text' or 'voice'")
    timestamp: datetime = Field(..., description="When the entry was captured on the client")
    processed: bool = Field(False, description="Whether AI processing has run")
    ai_result: Optional[Dict[str, Any]] = Field(None, description="Processing result (category, title, summary, ...)")
    created_at: datetime = Field(..., description="Row creation timestamp")


class BrainDumpResult(BaseModel):
    """Result of classifying a brain dump."""
    
    category: BrainDumpCategory = BrainDumpCategory.NOTE
    title: str
    summary: str
    priority: Optional[str] = None
    suggested_actions: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    
    class Config:
        """Pydantic configuration."""
        use_enum_values = True
