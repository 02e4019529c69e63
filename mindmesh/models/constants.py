"""Constants for MindMesh.

This module centralizes magic numbers and default values used throughout the application.
"""

from mindmesh.models.task import TaskPriority, TaskStatus


# Task defaults
DEFAULT_TASK_STATUS = TaskStatus.PENDING
DEFAULT_TASK_PRIORITY = TaskPriority.MEDIUM
DEFAULT_COMPLEXITY = 3
DEFAULT_TASK_ORDER = 0

# Mood
DEFAULT_MOOD_LOAD_LIMIT = 30
DEFAULT_AVERAGE_WINDOW_DAYS = 7
TREND_WINDOW_SIZE = 3
TREND_THRESHOLD = 0.5

# Reminders
DEFAULT_SNOOZE_MINUTES = 30

# Focus sessions
DEFAULT_FOCUS_MINUTES = 25

# Sync
CALENDAR_IMPORT_WINDOW_DAYS = 7
NOTION_PAGE_SIZE = 50
EXPORT_LOOKBACK_HOURS = 24
CALENDAR_IMPORT_TAG = "calendar-import"
NOTION_IMPORT_TAG = "notion-import"

# Historical analysis
HISTORY_WINDOW_DAYS = 30
TOP_PRODUCTIVE_HOURS = 3
STRUGGLE_KEYWORDS = ["overwhelmed", "stuck", "procrastinating", "anxious", "confused", "tired"]

# Smart reminders
DEADLINE_LOOKAHEAD_HOURS = 48
DEADLINE_URGENT_HOURS = 6
DEADLINE_SOON_HOURS = 24
BREAK_NUDGE_HOURS = 2
RECENT_MOOD_DAYS = 3
LOW_MOOD_THRESHOLD = 6
LOW_COMPLETION_RATE = 0.5
PREFERRED_BREAK_MINUTES = 15
PROCRASTINATION_TRIGGERS = ["large tasks", "unclear requirements", "low energy"]

# Batch pacing (seconds)
BRAIN_DUMP_BATCH_SIZE = 3
BRAIN_DUMP_BATCH_DELAY_SEC = 1.0
SUGGESTED_TASK_DELAY_SEC = 0.3

# Input validation
MIN_WORKLOAD_DESCRIPTION_LENGTH = 10

# Outbound HTTP timeouts (seconds)
HTTP_TIMEOUT_SEC = 10
TTS_TIMEOUT_SEC = 30
