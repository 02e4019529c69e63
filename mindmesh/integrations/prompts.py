"""Prompt templates for the MindMesh AI handlers."""

from typing import Any, Dict, List, Optional

from mindmesh.models.brain_dump import BrainDumpEntry
from mindmesh.models.mood import MoodEntry
from mindmesh.models.task import Task


PERSONALIZATION = {
    "adhd": """ADHD-SPECIFIC PERSONALIZATION:
- Keep main points short (2-3 sentences)
- Break work into very small steps of 5-15 minutes
- Use dopamine-friendly language ("Quick win!")
- Suggest body doubling, timers and movement breaks
- Acknowledge executive function challenges without judgment
- Suggest working with natural energy cycles and hyperfocus""",
    "autism": """AUTISM-SPECIFIC PERSONALIZATION:
- Give clear, structured, predictable guidance
- Use concrete, specific language rather than abstractions
- Respect sensory sensitivities and routine preferences
- Use a calm, steady tone without overwhelming enthusiasm
- Provide detailed step-by-step instructions
- Offer scripts for social or communication tasks""",
    "anxiety": """ANXIETY-SPECIFIC PERSONALIZATION:
- Use gentle, reassuring language that validates concerns
- Emphasize safety and control ("This is just a suggestion")
- Break tasks into tiny, non-threatening steps
- Suggest grounding techniques and breathing exercises
- Offer several options so they feel in control
- Emphasize progress over perfection""",
    "multiple": """MULTIPLE CONDITIONS PERSONALIZATION:
- Combine strategies from several neurodivergent approaches
- Be extra flexible and adaptive
- Offer options for different energy levels and states
- Encourage experimenting to find what works
- Recognize that needs may change day to day""",
}

GENERAL_PERSONALIZATION = """GENERAL NEURODIVERGENT-FRIENDLY APPROACH:
- Use clear, supportive language that validates their experience
- Break tasks into manageable steps
- Provide options and flexibility
- Emphasize progress over perfection"""


def personalization(neurodivergent_type: Optional[str]) -> str:
    return PERSONALIZATION.get(neurodivergent_type or "", GENERAL_PERSONALIZATION)


def _hours(hours: List[int]) -> str:
    return ", ".join(f"{h}:00" for h in hours)


def _history_block(historical: Optional[Dict[str, Any]], detailed: bool = True) -> str:
    if not historical:
        return ""
    lines = ["", "=== HISTORICAL CONTEXT (Last 30 Days) ==="]
    moods: List[MoodEntry] = historical.get("mood_patterns") or []
    if moods and detailed:
        avg_mood = sum(m.mood_score for m in moods) / len(moods)
        avg_energy = sum(m.energy_level for m in moods) / len(moods)
        lines.append(f"Average Mood: {avg_mood:.1f}/10, Average Energy: {avg_energy:.1f}/10")
    stats = historical.get("task_completion_stats")
    if stats:
        lines.append(f"Task Completion Rate: {stats['completion_rate'] * 100:.1f}%")
        if detailed:
            lines.append(f"Total Tasks: {stats['total_tasks']}, Completed: {stats['completed_tasks']}")
    if historical.get("productive_hours"):
        lines.append(f"Most Productive Hours: {_hours(historical['productive_hours'])}")
    if historical.get("common_struggles"):
        lines.append(f"Common Challenges: {', '.join(historical['common_struggles'])}")
    categories = historical.get("brain_dump_categories") or []
    if categories and detailed:
        counts: Dict[str, int] = {}
        for item in categories:
            name = item.get("category", "uncategorized")
            counts[name] = counts.get(name, 0) + 1
        lines.append("Brain Dump Patterns: " + ", ".join(f"{k}({v})" for k, v in counts.items()))
    return "\n".join(lines)


def _state_lines(context: Dict[str, Any]) -> List[str]:
    lines = []
    nd_type = context.get("neurodivergent_type")
    if nd_type and nd_type != "none":
        lines.append("")
        lines.append(personalization(nd_type))
    if context.get("mood_score"):
        lines.append(f"Current Mood Score: {context['mood_score']}/10")
    if context.get("energy_level"):
        lines.append(f"Current Energy Level: {context['energy_level']}/10")
    return lines


def coaching_prompt(user_input: str, input_type: str, context: Dict[str, Any], historical: Optional[Dict[str, Any]] = None) -> str:
    lines = [
        "You are a gentle, encouraging AI coach for neurodivergent minds (ADHD, autism, anxiety). "
        "Help break down tasks and give supportive guidance.",
        "",
        f"User Input Type: {input_type}",
        f'User Input: "{user_input}"',
        f"Neurodivergent Type: {context.get('neurodivergent_type') or 'not specified'}",
    ]
    lines.extend(_state_lines(context))
    if context.get("existing_tasks"):
        lines.append(f"Existing Tasks: {', '.join(context['existing_tasks'])}")
    if context.get("focus_mode_active"):
        lines.append("Focus Mode: Active (keep guidance short and focused)")
    lines.append(_history_block(historical))
    lines.append("""
Respond with a JSON object:
{
  "coaching_response": "Warm response acknowledging their input with gentle guidance (2-3 sentences)",
  "subtasks": ["specific", "actionable", "subtasks"],
  "priority_suggestion": "low|medium|high",
  "estimated_time": "realistic estimate like '15-30 minutes'",
  "encouragement": "Specific encouragement that validates their experience",
  "personalized_insights": ["insights based on historical patterns"],
  "recommended_strategies": ["strategies based on their patterns"]
}

Use warm, non-judgmental language. Their brain works differently, not wrongly.
Respond ONLY with valid JSON, no additional text.""")
    return "\n".join(lines)


def reframing_prompt(user_input: str, context: Dict[str, Any], historical: Optional[Dict[str, Any]] = None) -> str:
    lines = [
        "You are a compassionate AI coach helping a neurodivergent person who feels stuck, blocked or "
        "overwhelmed. Offer gentle reframing and practical next steps.",
        "",
        f'USER\'S STUCK REQUEST: "{user_input}"',
        "",
        "CURRENT CONTEXT:",
        f"- Focus mode active: {'Yes' if context.get('focus_mode_active') else 'No'}",
        f"- Current energy level: {context.get('energy_level') or 'Unknown'}/10",
        f"- Current mood: {context.get('mood_score') or 'Unknown'}/10",
        f"- Neurodivergent type: {context.get('neurodivergent_type') or 'not specified'}",
    ]
    nd_type = context.get("neurodivergent_type")
    if nd_type and nd_type != "none":
        lines.append("")
        lines.append(personalization(nd_type))
    lines.append(_history_block(historical, detailed=False))
    lines.append("""
Respond with a JSON object:
{
  "coaching_response": "Validate their feelings and offer a new perspective (2-3 sentences)",
  "recommended_strategies": ["2-3 specific strategies to get unstuck"],
  "encouragement": "Warm message reminding them of their capabilities",
  "personalized_insights": ["insights based on their patterns, if available"]
}

Validate first, then reframe, then offer one small next step.
Respond ONLY with valid JSON, no additional text.""")
    return "\n".join(lines)


def workload_prompt(
    workload_description: str,
    existing_tasks: List[str],
    context: Dict[str, Any],
    historical: Optional[Dict[str, Any]] = None,
) -> str:
    existing = "\n".join(f"- {t}" for t in existing_tasks) if existing_tasks else "No existing tasks"
    lines = [
        "You are a productivity coach helping neurodivergent people break complex workloads into "
        "manageable, prioritized tasks.",
        "",
        f'WORKLOAD DESCRIPTION: "{workload_description}"',
        "",
        "EXISTING TASKS CONTEXT:",
        existing,
        "",
        f"NEURODIVERGENT TYPE: {context.get('neurodivergent_type') or 'not specified'}",
    ]
    lines.extend(_state_lines(context))
    lines.append(_history_block(historical))
    lines.append("""
Consider scope, dependencies, realistic time estimates, priority and energy management.

Respond with a JSON object:
{
  "coaching_response": "Analysis of the workload: key challenges, scope and approach (2-3 sentences)",
  "suggested_tasks": [
    {
      "title": "Clear, actionable task title",
      "description": "What needs to be done and how",
      "priority": "high|medium|low",
      "estimated_time": "e.g. '30 minutes', '2-3 hours'",
      "subtasks": ["optional smaller steps"],
      "tags": ["optional tags"]
    }
  ],
  "overall_strategy": "Recommended order and pacing (2-3 sentences)",
  "time_estimate": "Overall time estimate",
  "encouragement": "Supportive message about tackling this workload"
}

Suggest 3-8 main tasks. Respond ONLY with valid JSON, no additional text.""")
    return "\n".join(lines)


def brain_dump_prompt(content: str, input_type: str) -> str:
    return f"""You help neurodivergent people organize scattered thoughts. Classify this {input_type} brain dump.

Brain dump: "{content}"

Categories:
- action: something the person needs to do
- note: information worth keeping
- reflection: feelings, worries or self-observation

Respond with a JSON object:
{{
  "category": "action|note|reflection",
  "title": "A clear, concise title (max 60 characters)",
  "summary": "A helpful summary (max 150 characters)",
  "priority": "low|medium|high (only for actions)",
  "suggested_actions": ["specific next steps (only for actions)"],
  "tags": ["relevant keywords (for notes and reflections)"]
}}

Respond ONLY with valid JSON, no additional text."""


def insights_prompt(
    moods: List[MoodEntry],
    tasks: List[Task],
    brain_dumps: List[BrainDumpEntry],
) -> str:
    mood_lines = "\n".join(
        f"{m.created_at.date().isoformat()}: Mood {m.mood_score}/10, Energy {m.energy_level}/10, "
        f"Focus {m.focus_level}/10{f' - {m.notes}' if m.notes else ''}"
        for m in moods
    )
    task_lines = "\n".join(
        f"{t.title} ({t.priority} priority, {t.status}) - Created: {t.created_at.date().isoformat()}"
        + (f", Completed: {t.completed_at.date().isoformat()}" if t.completed_at else "")
        for t in tasks
    )
    dump_lines = "\n".join(
        f"{(d.ai_result or {}).get('category', 'uncategorized')}: "
        f"{(d.ai_result or {}).get('title') or d.content[:50]}"
        for d in brain_dumps
    )
    return f"""Analyze this neurodivergent user's recent history and find actionable patterns.

Mood Entries:
{mood_lines or 'None'}

Task Completion Patterns:
{task_lines or 'None'}

Brain Dump Categories:
{dump_lines or 'None'}

Respond with a JSON object:
{{
  "productivity_patterns": ["when and how the user is most productive"],
  "mood_correlations": ["links between mood/energy and task completion"],
  "task_completion_insights": ["what they complete vs. struggle with"],
  "personalized_recommendations": ["specific, actionable strategies"]
}}

Be supportive and identify strengths as well as areas to improve.
Respond ONLY with valid JSON, no additional text."""


_REMINDER_SHAPE = """Respond with a JSON object:
{
  "title": "Brief, non-alarming title",
  "message": "Supportive message (2-3 sentences)",
  "suggested_action": "One small action they can take right now",
  "voice_message": "Warm spoken version of the message"
}
Respond ONLY with valid JSON."""


def deadline_reminder_prompt(task: Task, hours_until_due: float, mood: float, energy: float) -> str:
    return f"""Create a gentle reminder for a neurodivergent person about an upcoming deadline.

Task: "{task.title}"
Description: "{task.description or 'No description'}"
Priority: {task.priority}
Hours until due: {round(hours_until_due)}
Current mood trend: {mood:.1f}/10
Current energy: {energy:.1f}/10

Reduce anxiety rather than increase it, and suggest breaking the task down if it feels big.
{_REMINDER_SHAPE}"""


def mood_transition_prompt(current_hour: int, mood: float, energy: float, pending_count: int) -> str:
    return f"""Create an encouraging transition reminder for someone in their usual productive hours whose mood is lower today.

Current hour: {current_hour}
Current mood trend: {mood:.1f}/10
Current energy trend: {energy:.1f}/10
Pending tasks: {pending_count}

Productivity does not require a perfect mood; suggest the smallest possible first step.
{_REMINDER_SHAPE}"""


def break_reminder_prompt(task: Task, hours_working: float, mood: float) -> str:
    return f"""Create a gentle break reminder for someone who has been working on a task for {round(hours_working)} hours.

Task: "{task.title}"
Current mood: {mood:.1f}/10

Celebrate their focus and suggest one short, specific break activity.
{_REMINDER_SHAPE}"""


def encouragement_prompt(completion_rate: float, mood: float, pending_count: int) -> str:
    return f"""Create a daily encouragement message for someone with a lower task completion rate.

Completion rate: {round(completion_rate * 100)}%
Current mood: {mood:.1f}/10
Pending tasks: {pending_count}

Reframe productivity beyond task completion, celebrate small wins and reduce shame.
{_REMINDER_SHAPE}"""
