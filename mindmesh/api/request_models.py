"""Request models for the MindMesh API."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from mindmesh.models.task import TaskPriority, TaskStatus, RecurrencePattern


def _naive_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is not None and v.tzinfo is not None:
        return v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


# Function endpoints

class CoachRequest(BaseModel):
    input: str = Field(..., min_length=1, description="What the user typed or said")
    type: Literal["task", "brain_dump", "voice_note", "reframing_advice"]
    context: Dict[str, Any] = Field(default_factory=dict, description="Mood, energy, neurodivergent type, flags")


class ContextualInsightsRequest(BaseModel):
    user_id: str
    timeframe_days: int = Field(30, ge=1, le=365)


class ProcessBrainDumpRequest(BaseModel):
    content: str = Field(..., min_length=1)
    type: Literal["text", "voice"] = "text"
    user_id: Optional[str] = None


class SmartRemindersRequest(BaseModel):
    user_id: str
    analysis_type: Literal["deadlines", "mood_patterns", "task_transitions", "all"] = "all"


class TextToSpeechRequest(BaseModel):
    text: str
    voice_id: Optional[str] = None
    model_id: Optional[str] = None


class OAuthActionRequest(BaseModel):
    action: str
    code: Optional[str] = None
    user_id: Optional[str] = None
    refresh_token: Optional[str] = None


class SyncIntegrationsRequest(BaseModel):
    user_id: str
    integration_type: Literal["all", "google_calendar", "notion"] = "all"
    direction: Literal["import", "export", "bidirectional"] = "bidirectional"


class BrainDumpSyncEntry(BaseModel):
    """One client-side capture; `timestamp` may be epoch milliseconds or ISO 8601."""

    id: str
    content: str
    type: Literal["text", "voice"] = "text"
    timestamp: datetime
    processed: bool = False
    ai_result: Optional[Dict[str, Any]] = Field(None, alias="aiResult")

    class Config:
        """Pydantic configuration."""
        populate_by_name = True

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, v):
        return _naive_utc(v)


class SyncBrainDumpsRequest(BaseModel):
    entries: List[BrainDumpSyncEntry]
    user_id: str


class WorkloadBreakdownRequest(BaseModel):
    workload_description: str
    existing_tasks: Optional[List[str]] = None
    user_id: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)


class IntegrationOwnerRequest(BaseModel):
    user_id: Optional[str] = None


class DisconnectIntegrationRequest(BaseModel):
    integration_id: str
    user_id: Optional[str] = None


class UpdateSyncRulesRequest(BaseModel):
    integration_id: str
    sync_rules: Dict[str, Any]
    user_id: Optional[str] = None


# REST resources

class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    parent_task_id: Optional[str] = None
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_end_date: Optional[datetime] = None
    task_order: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    complexity: int = Field(3, ge=1, le=5)

    @field_validator("due_date", "recurrence_end_date")
    @classmethod
    def _dates_utc(cls, v):
        return _naive_utc(v)


class TaskUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    parent_task_id: Optional[str] = None
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_end_date: Optional[datetime] = None
    task_order: Optional[int] = None
    tags: Optional[List[str]] = None
    complexity: Optional[int] = Field(None, ge=1, le=5)

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @field_validator("due_date", "recurrence_end_date")
    @classmethod
    def _dates_utc(cls, v):
        return _naive_utc(v)


class TaskReorderRequest(BaseModel):
    task_order: int


class SuggestedTasksRequest(BaseModel):
    suggested_tasks: List[Dict[str, Any]]


class MoodCreateRequest(BaseModel):
    mood_score: int = Field(..., ge=1, le=10)
    energy_level: int = Field(..., ge=1, le=10)
    focus_level: int = Field(..., ge=1, le=10)
    notes: Optional[str] = None


class MoodUpdateRequest(BaseModel):
    mood_score: Optional[int] = Field(None, ge=1, le=10)
    energy_level: Optional[int] = Field(None, ge=1, le=10)
    focus_level: Optional[int] = Field(None, ge=1, le=10)
    notes: Optional[str] = None


class ReminderCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    remind_at: datetime

    @field_validator("remind_at")
    @classmethod
    def _remind_at_utc(cls, v):
        return _naive_utc(v)


class FocusSessionStartRequest(BaseModel):
    task_id: Optional[str] = None
    planned_minutes: int = Field(25, ge=1, le=480)


class FocusSessionEndRequest(BaseModel):
    completed: bool = False
    notes: Optional[str] = None


class SettingsUpdateRequest(BaseModel):
    notifications: Optional[Dict[str, Any]] = None
    privacy: Optional[Dict[str, Any]] = None
    appearance: Optional[Dict[str, Any]] = None
