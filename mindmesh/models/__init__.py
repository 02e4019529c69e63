"""Data models for MindMesh."""

from mindmesh.models.task import Task, TaskStatus, TaskPriority, RecurrencePattern
from mindmesh.models.mood import MoodEntry
from mindmesh.models.reminder import Reminder
from mindmesh.models.focus_session import FocusSession
from mindmesh.models.brain_dump import BrainDumpEntry, BrainDumpCategory, BrainDumpResult
from mindmesh.models.integration import Integration, IntegrationType, SyncDirection, SyncMapping

__all__ = [
    "Task",
    "TaskStatus",
    "TaskPriority",
    "RecurrencePattern",
    "MoodEntry",
    "Reminder",
    "FocusSession",
    "BrainDumpEntry",
    "BrainDumpCategory",
    "BrainDumpResult",
    "Integration",
    "IntegrationType",
    "SyncDirection",
    "SyncMapping",
]
