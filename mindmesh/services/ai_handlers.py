"""AI-backed handlers: coaching, workload breakdown, brain dump classification,
contextual insights and smart reminders.

Every handler returns a payload for HTTP 200. Provider failures and
unparseable replies are replaced by fixed, supportive fallbacks so the UI
always has something to show.
"""

import copy
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from mindmesh.database.brain_dump_repository import BrainDumpRepository
from mindmesh.database.mood_repository import MoodRepository
from mindmesh.database.repository import TaskRepository
from mindmesh.engine.patterns import historical_summary, mood_trend_label, user_patterns
from mindmesh.integrations import prompts
from mindmesh.integrations.openai_client import AIUnavailableError, OpenAIClient
from mindmesh.models.brain_dump import BrainDumpCategory
from mindmesh.models.constants import (
    BREAK_NUDGE_HOURS,
    DEADLINE_LOOKAHEAD_HOURS,
    DEADLINE_SOON_HOURS,
    DEADLINE_URGENT_HOURS,
    HISTORY_WINDOW_DAYS,
    LOW_COMPLETION_RATE,
    LOW_MOOD_THRESHOLD,
    RECENT_MOOD_DAYS,
)
from mindmesh.models.task import TaskStatus

logger = logging.getLogger(__name__)

COACH_FALLBACK = {
    "coaching_response": "I'm here to support you, even though I'm having a small technical hiccup right now. "
                         "Your task is important and manageable.",
    "encouragement": "You're taking a positive step by reaching out for support. That's something to be proud of.",
    "priority_suggestion": "medium",
    "estimated_time": "Take it at your own pace",
}

COACHING_PARSE_FALLBACK = {
    "coaching_response": "I hear you, and I'm here to help you work through this. Let's take it one step at a time.",
    "encouragement": "Your neurodivergent mind is not something to fix - it's something to understand and work with.",
    "priority_suggestion": "medium",
    "estimated_time": "Take your time",
}

REFRAMING_PARSE_FALLBACK = {
    "coaching_response": "I hear that you're feeling stuck. This is completely normal and shows that you care "
                         "about doing well.",
    "encouragement": "Remember, feeling stuck is temporary. You have the strength to work through this, "
                     "one small step at a time.",
    "recommended_strategies": [
        "Take a 5-minute break to reset your mind",
        "Write down just one tiny next step you could take",
        "Remember a time when you overcame a similar challenge",
    ],
}

_BREAKDOWN_TASKS = [
    {
        "title": "Break down the main project",
        "description": "Take time to identify the key components and create a detailed plan",
        "priority": "high",
        "estimated_time": "1-2 hours",
        "tags": ["planning"],
    }
]
_BREAKDOWN_STRATEGY = ("Start by taking a step back and breaking this down into smaller, more manageable pieces. "
                       "Focus on one task at a time.")
_BREAKDOWN_ENCOURAGEMENT = ("This looks like a substantial project, but you can absolutely handle it by taking "
                            "it one step at a time!")

WORKLOAD_COACH_PARSE_FALLBACK = {
    "coaching_response": "I can see this is a complex workload that needs to be broken down into manageable pieces.",
    "suggested_tasks": _BREAKDOWN_TASKS,
    "overall_strategy": _BREAKDOWN_STRATEGY,
    "time_estimate": "Time varies based on scope",
    "encouragement": _BREAKDOWN_ENCOURAGEMENT,
}

WORKLOAD_PARSE_FALLBACK = {
    "analysis": "I can see this is a complex workload that needs to be broken down into manageable pieces.",
    "suggested_tasks": _BREAKDOWN_TASKS,
    "overall_strategy": _BREAKDOWN_STRATEGY,
    "time_estimate": "Time varies based on scope",
    "encouragement": _BREAKDOWN_ENCOURAGEMENT,
}

WORKLOAD_ERROR_FALLBACK = {
    "analysis": "I'm having trouble processing your request right now, but I can see you have a workload "
                "that needs organizing.",
    "suggested_tasks": [
        {
            "title": "Organize your thoughts",
            "description": "Take 15 minutes to write down everything you need to accomplish",
            "priority": "medium",
            "estimated_time": "15 minutes",
            "tags": ["planning"],
        },
        {
            "title": "Identify priorities",
            "description": "Look at your list and mark what's most urgent or important",
            "priority": "medium",
            "estimated_time": "10 minutes",
            "tags": ["planning"],
        },
    ],
    "overall_strategy": "Start with a brain dump of everything you need to do, then prioritize and break "
                        "things down further.",
    "time_estimate": "Varies by project scope",
    "encouragement": "Even when technology hiccups, you've got this! Breaking things down step by step is "
                     "always the right approach.",
}

INSIGHTS_NO_DATA = {
    "productivity_patterns": ["Not enough data yet - keep using MindMesh to build your patterns!"],
    "mood_correlations": ["Start logging your mood to discover correlations with your productivity"],
    "task_completion_insights": ["Create and complete tasks to see your completion patterns"],
    "personalized_recommendations": ["Begin by logging your mood and creating a few tasks to get started"],
}

INSIGHTS_FALLBACK = {
    "productivity_patterns": ["Your productivity patterns are still developing - keep tracking!"],
    "mood_correlations": ["Continue logging mood and tasks to discover correlations"],
    "task_completion_insights": ["Your task completion data is building - great progress!"],
    "personalized_recommendations": ["Keep using MindMesh consistently to unlock personalized insights"],
}

INSIGHT_KEYS = tuple(INSIGHTS_FALLBACK)

BRAIN_DUMP_PENDING = {
    "category": BrainDumpCategory.NOTE.value,
    "title": "Captured Thought",
    "summary": "Your thought has been captured and will be processed when possible.",
    "tags": ["pending"],
}

_PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}
_TIMING_RANK = {"immediate": 4, "in_30_min": 3, "in_1_hour": 2, "tomorrow": 1}

ANALYSIS_TYPES = ("deadlines", "mood_patterns", "task_transitions", "all")


def _fallback(payload: Dict[str, Any]) -> Dict[str, Any]:
    return copy.deepcopy(payload)


def load_historical_data(db: Session, user_id: str, now: Optional[datetime] = None,
                         days: int = HISTORY_WINDOW_DAYS) -> Dict[str, Any]:
    """Load and summarize the last `days` days of mood, task and brain dump history."""
    now = now or datetime.utcnow()
    since = now - timedelta(days=days)
    moods = MoodRepository(db).list_since(user_id, since)
    tasks = TaskRepository(db).get_created_since(user_id, since)
    dumps = BrainDumpRepository(db).list_since(user_id, since, processed_only=True)
    return historical_summary(moods, tasks, dumps)


def _is_reframing(input_type: str, context: Dict[str, Any]) -> bool:
    return input_type == "reframing_advice" or bool(context.get("is_stuck_request"))


def coach(
    ai: OpenAIClient,
    user_input: str,
    input_type: str,
    context: Optional[Dict[str, Any]] = None,
    historical: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Coaching reply for a task, brain dump, voice note or reframing request.

    The prompt variant is reframing (stuck requests), workload (when
    `context.workload_breakdown` is true) or general coaching.
    """
    context = context or {}
    if _is_reframing(input_type, context):
        prompt = prompts.reframing_prompt(user_input, context, historical)
        parse_fallback = REFRAMING_PARSE_FALLBACK
    elif context.get("workload_breakdown") is True:
        prompt = prompts.workload_prompt(user_input, context.get("existing_tasks") or [], context, historical)
        parse_fallback = WORKLOAD_COACH_PARSE_FALLBACK
    else:
        prompt = prompts.coaching_prompt(user_input, input_type, context, historical)
        parse_fallback = COACHING_PARSE_FALLBACK

    try:
        reply = ai.complete_json(prompt)
    except AIUnavailableError as e:
        logger.warning(f"AI coach unavailable: {e}")
        return _fallback(COACH_FALLBACK)

    if reply is None or not reply.get("coaching_response"):
        return _fallback(parse_fallback)
    return reply


def workload_breakdown(
    ai: OpenAIClient,
    workload_description: str,
    existing_tasks: Optional[List[str]] = None,
    context: Optional[Dict[str, Any]] = None,
    historical: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Split a workload description into suggested tasks.

    The reply's `coaching_response` is exposed as `analysis`.
    """
    prompt = prompts.workload_prompt(workload_description, existing_tasks or [], context or {}, historical)
    try:
        reply = ai.complete_json(prompt)
    except AIUnavailableError as e:
        logger.warning(f"Workload breakdown unavailable: {e}")
        return _fallback(WORKLOAD_ERROR_FALLBACK)

    if reply is None:
        return _fallback(WORKLOAD_PARSE_FALLBACK)
    analysis = reply.get("analysis") or reply.get("coaching_response")
    suggested = reply.get("suggested_tasks")
    if not analysis or not isinstance(suggested, list):
        logger.warning("Workload breakdown reply missing analysis or suggested_tasks")
        return _fallback(WORKLOAD_PARSE_FALLBACK)

    return {
        "analysis": analysis,
        "suggested_tasks": [t for t in suggested if isinstance(t, dict) and t.get("title")],
        "overall_strategy": reply.get("overall_strategy") or _BREAKDOWN_STRATEGY,
        "time_estimate": reply.get("time_estimate") or "Time varies based on scope",
        "encouragement": reply.get("encouragement") or _BREAKDOWN_ENCOURAGEMENT,
    }


def unprocessed_brain_dump(content: str) -> Dict[str, Any]:
    summary = content[:100] + "..." if len(content) > 100 else content
    return {
        "category": BrainDumpCategory.NOTE.value,
        "title": "Brain Dump Entry",
        "summary": summary,
        "tags": ["unprocessed"],
    }


def classify_brain_dump(ai: OpenAIClient, content: str, input_type: str = "text") -> Dict[str, Any]:
    """Classify one brain dump into action, note or reflection.

    An unusable reply yields the "Brain Dump Entry" result tagged `unprocessed`.

    Raises:
        AIUnavailableError: If the provider call failed
    """
    reply = ai.complete_json(prompts.brain_dump_prompt(content, input_type))
    if reply is None or not all(reply.get(k) for k in ("category", "title", "summary")):
        return unprocessed_brain_dump(content)
    if reply["category"] not in {c.value for c in BrainDumpCategory}:
        reply["category"] = BrainDumpCategory.NOTE.value

    result = {
        "category": reply["category"],
        "title": reply["title"],
        "summary": reply["summary"],
    }
    for key in ("priority", "suggested_actions", "tags"):
        if reply.get(key):
            result[key] = reply[key]
    return result


def process_brain_dump(ai: OpenAIClient, content: str, input_type: str = "text") -> Dict[str, Any]:
    """Classify a brain dump, answering with the "Captured Thought" placeholder if the provider fails."""
    try:
        return classify_brain_dump(ai, content, input_type)
    except AIUnavailableError as e:
        logger.warning(f"Brain dump processing unavailable: {e}")
        return _fallback(BRAIN_DUMP_PENDING)


def contextual_insights(db: Session, ai: OpenAIClient, user_id: str, timeframe_days: int = HISTORY_WINDOW_DAYS,
                        now: Optional[datetime] = None) -> Dict[str, Any]:
    """Four lists of insights drawn from the last `timeframe_days` days."""
    now = now or datetime.utcnow()
    since = now - timedelta(days=timeframe_days)
    try:
        moods = MoodRepository(db).list_since(user_id, since)
        tasks = TaskRepository(db).get_created_since(user_id, since)
        dumps = BrainDumpRepository(db).list_since(user_id, since, processed_only=True)
        if not moods and not tasks and not dumps:
            return _fallback(INSIGHTS_NO_DATA)

        reply = ai.complete_json(prompts.insights_prompt(moods, tasks, dumps))
    except Exception as e:
        logger.error(f"Failed to generate insights: {type(e).__name__}: {str(e)}")
        return _fallback(INSIGHTS_FALLBACK)

    if reply is None or not all(isinstance(reply.get(k), list) for k in INSIGHT_KEYS):
        return _fallback(INSIGHTS_FALLBACK)
    return {k: reply[k] for k in INSIGHT_KEYS}


def _reminder_text(ai: OpenAIClient, prompt: str, kind: str) -> Optional[Dict[str, Any]]:
    try:
        reply = ai.complete_json(prompt)
    except AIUnavailableError as e:
        logger.warning(f"Skipping {kind} reminder: {e}")
        return None
    if reply is None or not reply.get("title") or not reply.get("message"):
        logger.warning(f"Skipping {kind} reminder: unusable reply")
        return None
    return reply


def _reminder(reply: Dict[str, Any], reminder_id: str, kind: str, priority: str, timing: str,
              context: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": reminder_id,
        "type": kind,
        "title": reply["title"],
        "message": reply["message"],
        "priority": priority,
        "suggested_action": reply.get("suggested_action"),
        "timing": timing,
        "voice_message": reply.get("voice_message") or reply["message"],
        "context": context,
    }


def sort_reminders(reminders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Highest priority first, then most urgent timing."""
    return sorted(
        reminders,
        key=lambda r: (-_PRIORITY_RANK.get(r["priority"], 0), -_TIMING_RANK.get(r["timing"], 0)),
    )


def smart_reminders(
    db: Session,
    ai: OpenAIClient,
    user_id: str,
    analysis_type: str = "all",
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Generate deadline, mood, break and encouragement reminders.

    `analysis_type` restricts generation to deadlines, mood_patterns or
    task_transitions; encouragement is only considered for `all`.
    """
    now = now or datetime.utcnow()
    since = now - timedelta(days=HISTORY_WINDOW_DAYS)
    mood_repo = MoodRepository(db)
    task_repo = TaskRepository(db)

    patterns = user_patterns(mood_repo.list_since(user_id, since), task_repo.get_created_since(user_id, since))
    tasks = task_repo.get_all(user_id)
    recent = mood_repo.list_since(user_id, now - timedelta(days=RECENT_MOOD_DAYS))
    mood = sum(m.mood_score for m in recent) / len(recent) if recent else 5.0
    energy = sum(m.energy_level for m in recent) / len(recent) if recent else 5.0
    pending_count = len([t for t in tasks if t.status == TaskStatus.PENDING])

    def wants(kind: str) -> bool:
        return analysis_type in (kind, "all")

    reminders: List[Dict[str, Any]] = []

    if wants("deadlines"):
        for task in tasks:
            if not task.due_date or task.status == TaskStatus.COMPLETED:
                continue
            hours = (task.due_date - now).total_seconds() / 3600
            if not 0 < hours <= DEADLINE_LOOKAHEAD_HOURS:
                continue
            if hours <= DEADLINE_URGENT_HOURS:
                priority, timing = "high", "immediate"
            elif hours <= DEADLINE_SOON_HOURS:
                priority, timing = "medium", "in_30_min"
            else:
                priority, timing = "medium", "in_1_hour"
            reply = _reminder_text(ai, prompts.deadline_reminder_prompt(task, hours, mood, energy), "deadline")
            if reply:
                reminders.append(_reminder(reply, f"deadline_{task.id}", "deadline_warning", priority, timing, {
                    "related_task_id": task.id,
                    "mood_trend": mood_trend_label(mood),
                    "energy_recommendation": "Consider taking a short break first" if energy < 5
                    else "Good energy for tackling this",
                }))

    if wants("mood_patterns") and now.hour in patterns["productive_hours"] and mood < LOW_MOOD_THRESHOLD:
        reply = _reminder_text(ai, prompts.mood_transition_prompt(now.hour, mood, energy, pending_count), "mood")
        if reply:
            reminders.append(_reminder(reply, f"mood_transition_{int(now.timestamp())}", "mood_based",
                                       "medium", "immediate", {
                                           "mood_trend": "needs_support",
                                           "energy_recommendation": "Start with the smallest possible step",
                                       }))

    if wants("task_transitions"):
        for task in tasks:
            if task.status != TaskStatus.IN_PROGRESS:
                continue
            hours_working = (now - task.updated_at).total_seconds() / 3600
            if hours_working <= BREAK_NUDGE_HOURS:
                continue
            reply = _reminder_text(ai, prompts.break_reminder_prompt(task, hours_working, mood), "break")
            if reply:
                reminders.append(_reminder(reply, f"break_{task.id}", "transition_nudge", "low", "immediate", {
                    "related_task_id": task.id,
                    "energy_recommendation": "Take a restorative break",
                }))

    if analysis_type == "all" and patterns["task_completion_rate"] < LOW_COMPLETION_RATE and not reminders:
        reply = _reminder_text(
            ai,
            prompts.encouragement_prompt(patterns["task_completion_rate"], mood, pending_count),
            "encouragement",
        )
        if reply:
            reminders.append(_reminder(reply, f"encouragement_{int(now.timestamp())}", "encouragement",
                                       "low", "immediate", {
                                           "mood_trend": "needs_encouragement",
                                           "energy_recommendation": "Focus on progress, not perfection",
                                       }))

    ordered = sort_reminders(reminders)
    return {
        "reminders": ordered,
        "user_patterns": patterns,
        "analysis_timestamp": now.isoformat() + "Z",
        "total_reminders": len(ordered),
    }

