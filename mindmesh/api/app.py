"""FastAPI web application for MindMesh."""

import asyncio
import logging
import os
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from mindmesh.api.request_models import (
    CoachRequest,
    ContextualInsightsRequest,
    DisconnectIntegrationRequest,
    FocusSessionEndRequest,
    FocusSessionStartRequest,
    IntegrationOwnerRequest,
    MoodCreateRequest,
    MoodUpdateRequest,
    OAuthActionRequest,
    ProcessBrainDumpRequest,
    ReminderCreateRequest,
    SettingsUpdateRequest,
    SmartRemindersRequest,
    SuggestedTasksRequest,
    SyncBrainDumpsRequest,
    SyncIntegrationsRequest,
    TaskCreateRequest,
    TaskReorderRequest,
    TaskUpdateRequest,
    TextToSpeechRequest,
    UpdateSyncRulesRequest,
    WorkloadBreakdownRequest,
)
from mindmesh.auth.dependencies import CurrentUser, get_current_user, require_same_user
from mindmesh.database.brain_dump_repository import BrainDumpRepository
from mindmesh.database.database import get_db, init_db, session_scope
from mindmesh.database.focus_session_repository import FocusSessionRepository
from mindmesh.database.integration_repository import IntegrationRepository
from mindmesh.database.mood_repository import MoodRepository
from mindmesh.database.reminder_repository import ReminderRepository
from mindmesh.database.repository import TaskRepository
from mindmesh.integrations.elevenlabs import SpeechController, SpeechError
from mindmesh.integrations.oauth import GoogleCalendarOAuth, NotionOAuth, OAuthError
from mindmesh.integrations.openai_client import OpenAIClient
from mindmesh.integrations.revenuecat import RevenueCatClient
from mindmesh.models.constants import (
    DEFAULT_AVERAGE_WINDOW_DAYS,
    DEFAULT_MOOD_LOAD_LIMIT,
    DEFAULT_SNOOZE_MINUTES,
    MIN_WORKLOAD_DESCRIPTION_LENGTH,
)
from mindmesh.models.integration import IntegrationType
from mindmesh.services import ai_handlers
from mindmesh.services.brain_dump import BrainDumpProcessor, entry_stats, organize_by_category, sync_entries
from mindmesh.services.mood_store import MoodStore
from mindmesh.services.reminder_store import ReminderStore
from mindmesh.services.settings_store import SettingsStore
from mindmesh.services.subscription_store import SubscriptionStore
from mindmesh.services.task_store import TaskStore
from mindmesh.sync.reconciler import SyncReconciler

load_dotenv()

logger = logging.getLogger(__name__)

SYNC_INTERVAL_SECONDS = int(os.getenv("SYNC_INTERVAL_SECONDS", "0"))

# Initialize FastAPI app
app = FastAPI(
    title="MindMesh API",
    description="Task, mood and focus support for neurodivergent minds",
    version="0.1.0"
)

_sync_loop_task: Optional[asyncio.Task] = None
_ai_client: Optional[OpenAIClient] = None
_speech_controller: Optional[SpeechController] = None


# Provider dependencies (overridden in tests)

def get_ai_client() -> OpenAIClient:
    global _ai_client
    if _ai_client is None:
        _ai_client = OpenAIClient()
    return _ai_client


def get_speech_controller() -> SpeechController:
    global _speech_controller
    if _speech_controller is None:
        _speech_controller = SpeechController()
    return _speech_controller


def get_google_oauth() -> GoogleCalendarOAuth:
    return GoogleCalendarOAuth()


def get_notion_oauth() -> NotionOAuth:
    return NotionOAuth()


def get_billing_client() -> RevenueCatClient:
    return RevenueCatClient()


def get_state_dir() -> Optional[str]:
    """Directory for key/value slots; None means MINDMESH_STATE_DIR."""
    return None


def get_reconciler(db: Session = Depends(get_db)) -> SyncReconciler:
    return SyncReconciler(db)


# Error rendering: every error body is {"error": ...}

@app.exception_handler(RequestValidationError)
async def _validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "; ".join(messages)})


@app.exception_handler(StarletteHTTPException)
async def _http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


# Timer-triggered integration sync

def run_sync_pass() -> Dict[str, Any]:
    """Reconcile every user with an active integration (one session per pass)."""
    results: Dict[str, Any] = {}
    with session_scope() as db:
        user_ids = IntegrationRepository(db).list_user_ids_with_active()
        for user_id in user_ids:
            try:
                results[user_id] = SyncReconciler(db).sync(user_id)
            except Exception as e:
                db.rollback()
                logger.error(f"Scheduled sync failed for user {user_id}: {type(e).__name__}: {str(e)}")
    logger.info(f"Scheduled sync pass finished for {len(user_ids)} users")
    return results


async def _sync_loop(interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(run_sync_pass)
        except Exception as e:
            logger.error(f"Scheduled sync pass crashed: {type(e).__name__}: {str(e)}")


@app.on_event("startup")
async def _startup() -> None:
    global _sync_loop_task
    init_db()
    if SYNC_INTERVAL_SECONDS > 0 and _sync_loop_task is None:
        logger.info(f"Starting integration sync loop every {SYNC_INTERVAL_SECONDS}s")
        _sync_loop_task = asyncio.create_task(_sync_loop(SYNC_INTERVAL_SECONDS))


@app.on_event("shutdown")
async def _shutdown() -> None:
    global _sync_loop_task
    if _sync_loop_task is not None:
        _sync_loop_task.cancel()
        _sync_loop_task = None


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


# Function endpoints

@app.post("/ai-coach")
def ai_coach(
    request: CoachRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    ai: OpenAIClient = Depends(get_ai_client),
):
    """Coaching, reframing or workload advice for one input."""
    require_same_user(request.context.get("user_id"), user)
    historical = None
    if request.context.get("include_historical_data"):
        try:
            historical = ai_handlers.load_historical_data(db, user.id)
        except Exception as e:
            # Coaching still works without history.
            logger.warning(f"Could not load historical data: {type(e).__name__}")
    return ai_handlers.coach(ai, request.input, request.type, request.context, historical)


@app.post("/contextual-insights")
def contextual_insights(
    request: ContextualInsightsRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    ai: OpenAIClient = Depends(get_ai_client),
):
    require_same_user(request.user_id, user)
    return ai_handlers.contextual_insights(db, ai, user.id, request.timeframe_days)


@app.post("/process-brain-dump")
def process_brain_dump(
    request: ProcessBrainDumpRequest,
    user: CurrentUser = Depends(get_current_user),
    ai: OpenAIClient = Depends(get_ai_client),
):
    require_same_user(request.user_id, user)
    return ai_handlers.process_brain_dump(ai, request.content, request.type)


@app.post("/smart-reminders")
def smart_reminders(
    request: SmartRemindersRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    ai: OpenAIClient = Depends(get_ai_client),
):
    require_same_user(request.user_id, user)
    try:
        return ai_handlers.smart_reminders(db, ai, user.id, request.analysis_type)
    except Exception as e:
        logger.error(f"Failed to generate smart reminders: {type(e).__name__}: {str(e)}")
        return {
            "reminders": [],
            "user_patterns": None,
            "analysis_timestamp": datetime.utcnow().isoformat() + "Z",
            "total_reminders": 0,
            "error": "Failed to generate smart reminders",
        }


@app.post("/text-to-speech")
def text_to_speech(
    request: TextToSpeechRequest,
    user: CurrentUser = Depends(get_current_user),
    speech: SpeechController = Depends(get_speech_controller),
):
    if not request.text or not request.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")
    try:
        audio = speech.speak(request.text, voice_id=request.voice_id, model_id=request.model_id)
    except SpeechError as e:
        return {"error": str(e), "fallback": True}
    if audio is None:
        return {"error": "Speech request was superseded by a newer one", "fallback": True}
    return audio


def _oauth_action(
    request: OAuthActionRequest,
    user: CurrentUser,
    db: Session,
    integration_type: IntegrationType,
    oauth,
) -> Dict[str, Any]:
    require_same_user(request.user_id, user)
    repo = IntegrationRepository(db)

    if request.action not in ("get_auth_url", "exchange_code", "refresh_token"):
        raise HTTPException(status_code=400, detail=f"Unknown action: {request.action}")
    if request.action == "exchange_code" and not request.code:
        raise HTTPException(status_code=400, detail="code is required for exchange_code")
    if request.action == "refresh_token" and integration_type != IntegrationType.GOOGLE_CALENDAR:
        raise HTTPException(status_code=400, detail="Notion tokens do not need refreshing")

    try:
        if request.action == "get_auth_url":
            return {"auth_url": oauth.build_auth_url(state=user.id)}

        if request.action == "exchange_code":
            tokens = oauth.exchange_code(request.code)
            integration = repo.upsert_tokens(
                user.id,
                integration_type.value,
                tokens["access_token"],
                refresh_token=tokens.get("refresh_token"),
                expires_at=tokens.get("expires_at"),
                integration_data=tokens.get("integration_data"),
            )
            return {"success": True, "integration": integration.model_dump(mode="json")}

        row = repo.get_row(user.id, integration_type.value)
        if row is None:
            raise OAuthError("Integration is not connected")
        refresh_token = request.refresh_token or repo.refresh_token(row)
        if not refresh_token:
            raise OAuthError("No refresh token available")
        refreshed = oauth.refresh(refresh_token)
        repo.update_access_token(row, refreshed["access_token"], refreshed["expires_at"])
        return {"success": True, "integration": row.to_pydantic().model_dump(mode="json")}
    except (OAuthError, RuntimeError) as e:
        logger.warning(f"{integration_type.value} OAuth {request.action} failed: {e}")
        return {"success": False, "error": str(e)}


@app.post("/google-calendar-auth")
def google_calendar_auth(
    request: OAuthActionRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    oauth: GoogleCalendarOAuth = Depends(get_google_oauth),
):
    return _oauth_action(request, user, db, IntegrationType.GOOGLE_CALENDAR, oauth)


@app.post("/notion-auth")
def notion_auth(
    request: OAuthActionRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    oauth: NotionOAuth = Depends(get_notion_oauth),
):
    return _oauth_action(request, user, db, IntegrationType.NOTION, oauth)


@app.post("/sync-integrations")
def sync_integrations(
    request: SyncIntegrationsRequest,
    user: CurrentUser = Depends(get_current_user),
    reconciler: SyncReconciler = Depends(get_reconciler),
):
    require_same_user(request.user_id, user)
    return reconciler.sync(user.id, request.integration_type, request.direction)


@app.post("/sync-brain-dumps")
def sync_brain_dumps(
    request: SyncBrainDumpsRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_same_user(request.user_id, user)
    entries = [entry.model_dump() for entry in request.entries]
    return sync_entries(BrainDumpRepository(db), user.id, entries)


@app.post("/workload-breakdown")
def workload_breakdown(
    request: WorkloadBreakdownRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    ai: OpenAIClient = Depends(get_ai_client),
):
    require_same_user(request.user_id, user)
    if len(request.workload_description.strip()) < MIN_WORKLOAD_DESCRIPTION_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Workload description must be at least {MIN_WORKLOAD_DESCRIPTION_LENGTH} characters",
        )
    historical = None
    if request.user_id:
        try:
            historical = ai_handlers.load_historical_data(db, user.id)
        except Exception as e:
            logger.warning(f"Could not load historical data: {type(e).__name__}")
    return ai_handlers.workload_breakdown(
        ai,
        request.workload_description.strip(),
        request.existing_tasks,
        request.context,
        historical,
    )


@app.post("/get-integrations")
def get_integrations(
    request: IntegrationOwnerRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_same_user(request.user_id, user)
    integrations = IntegrationRepository(db).list_for_user(user.id)
    return {"integrations": [i.model_dump(mode="json") for i in integrations]}


@app.post("/disconnect-integration")
def disconnect_integration(
    request: DisconnectIntegrationRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_same_user(request.user_id, user)
    try:
        removed = IntegrationRepository(db).deactivate(user.id, request.integration_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "mappings_removed": removed}


@app.post("/update-sync-rules")
def update_sync_rules(
    request: UpdateSyncRulesRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_same_user(request.user_id, user)
    try:
        integration = IntegrationRepository(db).update_sync_rules(user.id, request.integration_id, request.sync_rules)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "integration": integration.model_dump(mode="json")}


# Tasks

def _task_store(db: Session, user: CurrentUser) -> TaskStore:
    return TaskStore(TaskRepository(db), user.id)


def _require_task(db: Session, user: CurrentUser, task_id: str) -> None:
    if TaskRepository(db).get(user.id, task_id) is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")


@app.get("/tasks")
def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    tasks = TaskRepository(db).get_all(user.id, status_filter)
    return {"tasks": [t.model_dump(mode="json") for t in tasks], "count": len(tasks)}


@app.post("/tasks", status_code=201)
def create_task(
    request: TaskCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = _task_store(db, user)
    task = store.create(**request.model_dump())
    if task is None:
        raise HTTPException(status_code=400, detail=store.error)
    return {"task": task.model_dump(mode="json")}


@app.get("/tasks/tree")
def task_tree(
    expanded: List[str] = Query(default_factory=list),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Task hierarchy as nested JSON; ids in `expanded` render with is_expanded=true."""
    store = _task_store(db, user)
    if not store.load():
        raise HTTPException(status_code=500, detail=store.error)
    for task_id in expanded:
        store.toggle_expansion(task_id)
    return {"tree": store.forest.to_tree(), "count": len(store.forest)}


@app.post("/tasks/bulk-from-suggestions", status_code=201)
def create_tasks_from_suggestions(
    request: SuggestedTasksRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = _task_store(db, user)
    created = store.add_suggested_tasks(request.suggested_tasks)
    return {
        "tasks": [t.model_dump(mode="json") for t in created],
        "count": len(created),
        "error": store.error,
    }


@app.get("/tasks/{task_id}")
def get_task(
    task_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task = TaskRepository(db).get(user.id, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return {"task": task.model_dump(mode="json")}


@app.patch("/tasks/{task_id}")
def update_task(
    task_id: str,
    request: TaskUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_task(db, user, task_id)
    store = _task_store(db, user)
    task = store.update(task_id, request.model_dump(exclude_unset=True))
    if task is None:
        raise HTTPException(status_code=400, detail=store.error)
    return {"task": task.model_dump(mode="json")}


@app.delete("/tasks/{task_id}", status_code=204)
def delete_task(
    task_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_task(db, user, task_id)
    store = _task_store(db, user)
    if not store.delete(task_id):
        raise HTTPException(status_code=500, detail=store.error or f"Task {task_id} could not be deleted")
    return None


@app.post("/tasks/{task_id}/complete")
def complete_task(
    task_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_task(db, user, task_id)
    store = _task_store(db, user)
    result = store.complete(task_id)
    if result is None:
        raise HTTPException(status_code=400, detail=store.error)
    task, successor = result
    return {
        "task": task.model_dump(mode="json"),
        "successor": successor.model_dump(mode="json") if successor else None,
    }


@app.post("/tasks/{task_id}/reorder")
def reorder_task(
    task_id: str,
    request: TaskReorderRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_task(db, user, task_id)
    store = _task_store(db, user)
    task = store.reorder(task_id, request.task_order)
    if task is None:
        raise HTTPException(status_code=400, detail=store.error)
    return {"task": task.model_dump(mode="json")}


# Mood

@app.get("/mood")
def list_mood(
    limit: int = Query(DEFAULT_MOOD_LOAD_LIMIT, ge=1, le=500),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entries = MoodRepository(db).list_recent(user.id, limit)
    return {"entries": [e.model_dump(mode="json") for e in entries]}


@app.post("/mood", status_code=201)
def create_mood(
    request: MoodCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = MoodStore(MoodRepository(db), user.id)
    entry = store.add_entry(request.mood_score, request.energy_level, request.focus_level, request.notes)
    if entry is None:
        raise HTTPException(status_code=500, detail=store.error)
    return {"entry": entry.model_dump(mode="json")}


def _loaded_mood_store(db: Session, user: CurrentUser) -> MoodStore:
    store = MoodStore(MoodRepository(db), user.id)
    if not store.load():
        raise HTTPException(status_code=500, detail=store.error)
    return store


@app.get("/mood/averages")
def mood_averages(
    days: int = Query(DEFAULT_AVERAGE_WINDOW_DAYS, ge=1, le=365),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = MoodStore(MoodRepository(db), user.id)
    if not store.load_window(days):
        raise HTTPException(status_code=500, detail=store.error)
    return {"days": days, "averages": store.get_averages(days)}


@app.get("/mood/trend")
def mood_trend(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"trend": _loaded_mood_store(db, user).get_recent_trend()}


@app.get("/mood/time-of-day")
def mood_time_of_day(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"mood_by_time_of_day": _loaded_mood_store(db, user).get_mood_by_time_of_day()}


@app.patch("/mood/{entry_id}")
def update_mood(
    entry_id: str,
    request: MoodUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = MoodRepository(db)
    if repo.get(user.id, entry_id) is None:
        raise HTTPException(status_code=404, detail=f"Mood entry {entry_id} not found")
    store = MoodStore(repo, user.id)
    entry = store.update_entry(entry_id, request.model_dump(exclude_unset=True))
    if entry is None:
        raise HTTPException(status_code=400, detail=store.error)
    return {"entry": entry.model_dump(mode="json")}


# Reminders

def _loaded_reminder_store(db: Session, user: CurrentUser) -> ReminderStore:
    store = ReminderStore(ReminderRepository(db), user.id)
    if not store.load():
        raise HTTPException(status_code=500, detail=store.error)
    return store


def _require_reminder(db: Session, user: CurrentUser, reminder_id: str) -> None:
    if ReminderRepository(db).get(user.id, reminder_id) is None:
        raise HTTPException(status_code=404, detail=f"Reminder {reminder_id} not found")


@app.get("/reminders")
def list_reminders(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = _loaded_reminder_store(db, user)
    return {"reminders": [r.model_dump(mode="json") for r in store.reminders]}


@app.post("/reminders", status_code=201)
def create_reminder(
    request: ReminderCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = ReminderStore(ReminderRepository(db), user.id)
    reminder = store.add(request.title, request.remind_at, request.description)
    if reminder is None:
        raise HTTPException(status_code=500, detail=store.error)
    return {"reminder": reminder.model_dump(mode="json")}


@app.get("/reminders/active")
def active_reminders(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = _loaded_reminder_store(db, user)
    return {"reminders": [r.model_dump(mode="json") for r in store.get_active_reminders()]}


@app.post("/reminders/{reminder_id}/dismiss")
def dismiss_reminder(
    reminder_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_reminder(db, user, reminder_id)
    store = ReminderStore(ReminderRepository(db), user.id)
    reminder = store.dismiss(reminder_id)
    if reminder is None:
        raise HTTPException(status_code=500, detail=store.error)
    return {"reminder": reminder.model_dump(mode="json")}


@app.post("/reminders/{reminder_id}/snooze")
def snooze_reminder(
    reminder_id: str,
    minutes: int = Query(DEFAULT_SNOOZE_MINUTES, gt=0, le=24 * 60),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_reminder(db, user, reminder_id)
    store = ReminderStore(ReminderRepository(db), user.id)
    reminder = store.snooze(reminder_id, minutes)
    if reminder is None:
        raise HTTPException(status_code=400, detail=store.error)
    return {"reminder": reminder.model_dump(mode="json")}


# Focus sessions

@app.get("/focus-sessions")
def list_focus_sessions(
    limit: int = Query(50, ge=1, le=500),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    sessions = FocusSessionRepository(db).list_recent(user.id, limit)
    return {"sessions": [s.model_dump(mode="json") for s in sessions]}


@app.post("/focus-sessions", status_code=201)
def start_focus_session(
    request: FocusSessionStartRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if request.task_id:
        _require_task(db, user, request.task_id)
    session = FocusSessionRepository(db).start(
        user.id,
        task_id=request.task_id,
        planned_minutes=request.planned_minutes,
    )
    return {"session": session.model_dump(mode="json")}


@app.post("/focus-sessions/{session_id}/end")
def end_focus_session(
    session_id: str,
    request: FocusSessionEndRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        session = FocusSessionRepository(db).end(
            user.id,
            session_id,
            completed=request.completed,
            notes=request.notes,
        )
    except ValueError as e:
        code = 404 if "not found" in str(e) else 400
        raise HTTPException(status_code=code, detail=str(e))
    return {"session": session.model_dump(mode="json")}


# Brain dumps

@app.get("/brain-dumps")
def list_brain_dumps(
    days: int = Query(30, ge=1, le=365),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entries = BrainDumpRepository(db).list_since(user.id, datetime.utcnow() - timedelta(days=days))
    organized = organize_by_category(entries)
    return {
        "entries": [e.model_dump(mode="json") for e in entries],
        "organized": {k: [e.id for e in v] for k, v in organized.items()},
        "stats": entry_stats(entries),
    }


@app.post("/brain-dumps/process")
def process_pending_brain_dumps(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    ai: OpenAIClient = Depends(get_ai_client),
):
    """Classify every unprocessed entry of the caller."""
    return BrainDumpProcessor(BrainDumpRepository(db), ai, user.id).process_unprocessed()


# Settings

@app.get("/settings")
def get_settings(
    user: CurrentUser = Depends(get_current_user),
    state_dir: Optional[str] = Depends(get_state_dir),
):
    return {"settings": SettingsStore.for_user(user.id, state_dir).settings}


@app.patch("/settings")
def update_settings(
    request: SettingsUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    state_dir: Optional[str] = Depends(get_state_dir),
):
    store = SettingsStore.for_user(user.id, state_dir)
    if not store.update(request.model_dump(exclude_none=True)):
        raise HTTPException(status_code=500, detail=store.error)
    return {"settings": store.settings}



@app.patch("/settings/{section}")
def update_settings_section(
    section: str,
    changes: Dict[str, Any] = Body(...),
    user: CurrentUser = Depends(get_current_user),
    state_dir: Optional[str] = Depends(get_state_dir),
):
    """Update one preference section; unknown keys are ignored."""
    store = SettingsStore.for_user(user.id, state_dir)
    setters = {
        "notifications": store.update_notifications,
        "privacy": store.update_privacy,
        "appearance": store.update_appearance,
    }
    if section not in setters:
        raise HTTPException(status_code=404, detail=f"Unknown settings section: {section}")
    if not setters[section](changes):
        raise HTTPException(status_code=500, detail=store.error)
    return {"settings": store.settings}


@app.post("/settings/reset")
def reset_settings(
    user: CurrentUser = Depends(get_current_user),
    state_dir: Optional[str] = Depends(get_state_dir),
):
    store = SettingsStore.for_user(user.id, state_dir)
    if not store.reset_to_defaults():
        raise HTTPException(status_code=500, detail=store.error)
    return {"settings": store.settings}


# Subscription

def _subscription_store(user: CurrentUser, billing: RevenueCatClient, state_dir: Optional[str]) -> SubscriptionStore:
    return SubscriptionStore.for_user(user.id, billing, state_dir)


def _subscription_payload(store: SubscriptionStore) -> Dict[str, Any]:
    subscription = store.load()
    return {
        "subscription": subscription,
        "dev_mode_enabled": store.dev_mode_enabled,
        "is_subscribed": store.is_subscribed(),
        "has_pro": store.has_entitlement(),
        "active_product_id": store.get_active_product_id(),
        "error": store.error,
    }


@app.get("/subscription")
def get_subscription(
    user: CurrentUser = Depends(get_current_user),
    billing: RevenueCatClient = Depends(get_billing_client),
    state_dir: Optional[str] = Depends(get_state_dir),
):
    return _subscription_payload(_subscription_store(user, billing, state_dir))


@app.post("/subscription/dev-mode")
def enable_dev_mode(
    user: CurrentUser = Depends(get_current_user),
    billing: RevenueCatClient = Depends(get_billing_client),
    state_dir: Optional[str] = Depends(get_state_dir),
):
    store = _subscription_store(user, billing, state_dir)
    if not store.set_dev_mode(True):
        raise HTTPException(status_code=500, detail=store.error)
    return _subscription_payload(store)


@app.delete("/subscription/dev-mode")
def disable_dev_mode(
    user: CurrentUser = Depends(get_current_user),
    billing: RevenueCatClient = Depends(get_billing_client),
    state_dir: Optional[str] = Depends(get_state_dir),
):
    store = _subscription_store(user, billing, state_dir)
    if not store.set_dev_mode(False):
        raise HTTPException(status_code=500, detail=store.error)
    return _subscription_payload(store)


@app.get("/subscription/offerings")
def get_offerings(
    user: CurrentUser = Depends(get_current_user),
    billing: RevenueCatClient = Depends(get_billing_client),
    state_dir: Optional[str] = Depends(get_state_dir),
):
    return {"offerings": _subscription_store(user, billing, state_dir).get_offerings()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
