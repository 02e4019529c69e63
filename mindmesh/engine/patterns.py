"""Pattern analysis over a user's mood, task and brain dump history.

Pure functions: callers load the rows, these compute the aggregates used by
the mood store and the AI handlers.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from mindmesh.models.brain_dump import BrainDumpEntry
from mindmesh.models.constants import (
    TREND_WINDOW_SIZE,
    TREND_THRESHOLD,
    TOP_PRODUCTIVE_HOURS,
    STRUGGLE_KEYWORDS,
    PROCRASTINATION_TRIGGERS,
    PREFERRED_BREAK_MINUTES,
)
from mindmesh.models.mood import MoodEntry
from mindmesh.models.task import Task, TaskStatus, TaskPriority


def _mean(values: List[float]) -> float:
    return sum(values) / len(values)


def mood_averages(entries: List[MoodEntry], days: int, now: Optional[datetime] = None) -> Optional[Dict[str, float]]:
    """Mean mood/energy/focus over entries from the last `days` days.

    Returns:
        {"mood", "energy", "focus", "count"}, or None when no entry is in the window
    """
    now = now or datetime.utcnow()
    cutoff = now - timedelta(days=days)
    window = [e for e in entries if e.created_at >= cutoff]
    if not window:
        return None
    return {
        "mood": _mean([e.mood_score for e in window]),
        "energy": _mean([e.energy_level for e in window]),
        "focus": _mean([e.focus_level for e in window]),
        "count": len(window),
    }


def recent_trend(entries: List[MoodEntry]) -> str:
    """Compare the mean mood of the newest 3 entries with the 3 before them.

    Entries may be in any order; they are sorted newest first here.

    Returns:
        "improving", "declining" or "stable"
    """
    ordered = sorted(entries, key=lambda e: e.created_at, reverse=True)
    recent = ordered[:TREND_WINDOW_SIZE]
    older = ordered[TREND_WINDOW_SIZE:TREND_WINDOW_SIZE * 2]
    if len(recent) < TREND_WINDOW_SIZE or not older:
        return "stable"

    diff = _mean([e.mood_score for e in recent]) - _mean([e.mood_score for e in older])
    if diff > TREND_THRESHOLD:
        return "improving"
    if diff < -TREND_THRESHOLD:
        return "declining"
    return "stable"


def _time_of_day(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 22:
        return "evening"
    return "night"


def mood_by_time_of_day(entries: List[MoodEntry]) -> Dict[str, float]:
    """Average mood per time-of-day bucket (buckets with no entries are omitted)."""
    buckets: Dict[str, List[int]] = {}
    for entry in entries:
        buckets.setdefault(_time_of_day(entry.created_at.hour), []).append(entry.mood_score)
    return {name: _mean(scores) for name, scores in buckets.items()}


def average_mood_by_hour(entries: List[MoodEntry]) -> Dict[int, float]:
    buckets: Dict[int, List[int]] = {}
    for entry in entries:
        buckets.setdefault(entry.created_at.hour, []).append(entry.mood_score)
    return {hour: _mean(scores) for hour, scores in sorted(buckets.items())}


def productive_hours(tasks: List[Task], top: int = TOP_PRODUCTIVE_HOURS) -> List[int]:
    """Hours of day with the most completions (ties go to the earlier hour)."""
    counts = Counter(
        t.completed_at.hour
        for t in tasks
        if t.status == TaskStatus.COMPLETED and t.completed_at
    )
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [hour for hour, _ in ranked[:top]]


def completion_rate(tasks: List[Task]) -> float:
    if not tasks:
        return 0.0
    completed = [t for t in tasks if t.status == TaskStatus.COMPLETED]
    return len(completed) / len(tasks)


def completion_stats(tasks: List[Task]) -> Dict[str, Any]:
    completed = [t for t in tasks if t.status == TaskStatus.COMPLETED and t.completed_at]
    return {
        "total_tasks": len(tasks),
        "completed_tasks": len(completed),
        "completion_rate": (len(completed) / len(tasks)) if tasks else 0.0,
        "tasks_by_priority": {
            p.value: len([t for t in tasks if t.priority == p])
            for p in (TaskPriority.HIGH, TaskPriority.MEDIUM, TaskPriority.LOW)
        },
    }


def common_struggles(brain_dumps: List[BrainDumpEntry]) -> List[str]:
    """Struggle keywords found in the summaries of reflection brain dumps (deduplicated)."""
    found: List[str] = []
    for dump in brain_dumps:
        result = dump.ai_result or {}
        if result.get("category") != "reflection":
            continue
        summary = (result.get("summary") or "").lower()
        for keyword in STRUGGLE_KEYWORDS:
            if keyword in summary and keyword not in found:
                found.append(keyword)
    return found


def historical_summary(
    moods: List[MoodEntry],
    tasks: List[Task],
    brain_dumps: List[BrainDumpEntry],
) -> Dict[str, Any]:
    """Aggregate 30-day history used to personalize coaching prompts."""
    return {
        "mood_patterns": moods,
        "task_completion_stats": completion_stats(tasks),
        "brain_dump_categories": [d.ai_result for d in brain_dumps if d.ai_result],
        "productive_hours": productive_hours(tasks),
        "common_struggles": common_struggles(brain_dumps),
    }


def user_patterns(moods: List[MoodEntry], tasks: List[Task]) -> Dict[str, Any]:
    """Patterns consumed by the smart reminder generator."""
    return {
        "productive_hours": productive_hours(tasks),
        "average_mood_by_hour": average_mood_by_hour(moods),
        "task_completion_rate": completion_rate(tasks),
        "procrastination_triggers": list(PROCRASTINATION_TRIGGERS),
        "preferred_break_duration": PREFERRED_BREAK_MINUTES,
    }


def mood_trend_label(average_mood: float) -> str:
    if average_mood >= 6:
        return "positive"
    if average_mood >= 4:
        return "neutral"
    return "low"
