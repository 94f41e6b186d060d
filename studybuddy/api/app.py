"""FastAPI web application for studybuddy."""

import os
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from studybuddy.api.api_models import (
    AuthResponse,
    BoardResponse,
    BulkCompleteResponse,
    BulkDeleteResponse,
    BulkRequest,
    CalendarSyncRequest,
    GoogleLoginRequest,
    KpiResponse,
    ReminderPreference,
    SaveResponse,
    SyllabusParseRequest,
    SyllabusParseResponse,
    SyllabusSaveRequest,
    SyllabusSyncRequest,
    SyncItemResponse,
    SyncResponse,
    TaskCreateRequest,
    TaskMoveRequest,
    TaskMoveResponse,
    TaskResponse,
    TaskStatusRequest,
    TaskUpdateRequest,
)
from studybuddy.auth.dependencies import get_calendar_token, get_current_user
from studybuddy.auth.google_oauth import verify_google_token
from studybuddy.auth.jwt import create_access_token
from studybuddy.database.database import get_db, init_db
from studybuddy.database.datastore import SqlTaskDatastore
from studybuddy.database.user_repository import UserRepository
from studybuddy.engine.batch_sync import BatchSyncEngine, EventDispatcher, SyncReport
from studybuddy.engine.board import DueFilter, SortBy, category_counts, filter_tasks, group_by_status, sort_tasks
from studybuddy.engine.dedup import DeduplicationGate
from studybuddy.engine.event_mapper import map_task_to_event
from studybuddy.engine.kpis import compute_kpis
from studybuddy.engine.state_store import TaskStateStore
from studybuddy.errors import (
    CredentialMissingError,
    LocalValidationError,
    StudyBuddyError,
    TaskNotFoundError,
)
from studybuddy.integrations.google_calendar import GoogleCalendarClient
from studybuddy.integrations.openai_client import OpenAIClient
from studybuddy.models.reminder import REMINDER_OPTIONS
from studybuddy.models.user import User

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="studybuddy API",
    description="Turn a syllabus into tasks and calendar events",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Working copy of each signed-in user's tasks, kept per process. GET /tasks
# reloads it so rows written by another worker or session show up.
task_stores: Dict[str, TaskStateStore] = {}


def error_status(exc: StudyBuddyError) -> int:
    """HTTP status for a studybuddy error."""
    if isinstance(exc, LocalValidationError):
        return 400
    if isinstance(exc, CredentialMissingError):
        return 401
    if isinstance(exc, TaskNotFoundError):
        return 404
    return 502


@app.exception_handler(StudyBuddyError)
async def handle_studybuddy_error(request: Request, exc: StudyBuddyError) -> JSONResponse:
    status_code = error_status(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {str(exc)[:300]}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def get_openai_client() -> OpenAIClient:
    return OpenAIClient()


async def get_calendar_dispatcher(token: str = Depends(get_calendar_token)) -> AsyncIterator[EventDispatcher]:
    """Calendar client bound to the caller's Google access token."""
    client = GoogleCalendarClient(access_token=token)
    try:
        yield client
    finally:
        await client.aclose()


def _bound_task_store(user_id: str, db: Session) -> TaskStateStore:
    datastore = SqlTaskDatastore(db)
    store = task_stores.get(user_id)
    if store is None:
        store = TaskStateStore(datastore, user_id)
        task_stores[user_id] = store
    else:
        store.datastore = datastore
    return store


async def get_task_store(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TaskStateStore:
    """Loaded task working copy for the current user, bound to this request's session."""
    store = _bound_task_store(current_user.id, db)
    if not store.loaded:
        await store.load()
    return store


async def get_fresh_task_store(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TaskStateStore:
    """Task working copy re-read from the database."""
    store = _bound_task_store(current_user.id, db)
    await store.load()
    return store


def _sync_response(report: SyncReport) -> SyncResponse:
    return SyncResponse(
        synced_count=report.synced_count,
        failed_count=report.failed_count,
        message=report.message,
        items=[
            SyncItemResponse(
                index=o.index,
                task_id=o.task_id,
                ok=o.ok,
                event_id=(o.event or {}).get("id"),
                error=o.error_message,
            )
            for o in report.outcomes
        ],
    )


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": APP_VERSION}


@app.post("/auth/google/login", response_model=AuthResponse)
async def google_login(request: GoogleLoginRequest, db: Session = Depends(get_db)):
    """Exchange a Google ID token for a studybuddy session token."""
    user_info = verify_google_token(request.id_token)
    if not user_info:
        raise HTTPException(status_code=401, detail="Invalid Google ID token")

    now = datetime.utcnow()
    user = UserRepository(db).create_or_update(
        User(
            id=user_info["id"],
            email=user_info.get("email") or "",
            name=user_info.get("name"),
            created_at=now,
            updated_at=now,
        )
    )
    return AuthResponse(
        access_token=create_access_token(user.id),
        user={"id": user.id, "email": user.email, "name": user.name},
    )


@app.post("/syllabus/parse", response_model=SyllabusParseResponse)
def parse_syllabus(
    request: SyllabusParseRequest,
    current_user: User = Depends(get_current_user),
    client: OpenAIClient = Depends(get_openai_client),
):
    """Extract graded events from pasted syllabus text."""
    if not request.text.strip():
        raise LocalValidationError("Paste your syllabus first.")
    parsed = client.parse_syllabus(request.text)
    return SyllabusParseResponse(summary=parsed.summary, events=parsed.events, message=parsed.summary_line)


@app.post("/syllabus/save", response_model=SaveResponse)
async def save_syllabus(
    request: SyllabusSaveRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Persist reviewed events, skipping ones that are already saved."""
    result = await DeduplicationGate(SqlTaskDatastore(db)).save_extracted(current_user.id, request.events)
    store = task_stores.get(current_user.id)
    if store is not None and result.inserted:
        store.loaded = False
    return SaveResponse(
        inserted_count=result.inserted_count,
        skipped_count=result.skipped,
        message=result.message,
        tasks=result.inserted,
    )


@app.post("/syllabus/sync", response_model=SyncResponse)
async def sync_syllabus(
    request: SyllabusSyncRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_calendar_dispatcher),
):
    """Push extracted events straight to Google Calendar."""
    reminder = UserRepository(db).get_reminder_minutes(current_user.id)
    try:
        events = [
        map_task_to_event(
            category=e.type,
            title=e.title,
            due=e.date,
            description=e.description,
            time_zone=request.time_zone,
            reminder_minutes=reminder,
        )
        for e in request.events
        ]
    except ValueError as e:
        raise LocalValidationError(f"Invalid event: {e}") from e
    outcomes = await BatchSyncEngine(dispatcher).run(events)
    return _sync_response(SyncReport(outcomes=outcomes))


@app.get("/tasks", response_model=BoardResponse)
async def get_board(
    category: Optional[str] = None,
    due: DueFilter = DueFilter.ALL,
    sort: SortBy = SortBy.DUE,
    store: TaskStateStore = Depends(get_fresh_task_store),
):
    """Board view of the current user's tasks."""
    today = date.today()
    tasks = sort_tasks(filter_tasks(store.tasks, today, category=category, due=due), today, sort)
    return BoardResponse(columns=group_by_status(tasks), counts=category_counts(tasks), total=len(tasks))


@app.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(request: TaskCreateRequest, store: TaskStateStore = Depends(get_task_store)):
    """Manually add a task."""
    task = await store.create(
        title=request.title,
        category=request.category,
        status=request.status,
        due=request.due,
        notes=request.notes,
    )
    return TaskResponse(task=task)


@app.put("/tasks/{task_id}", response_model=TaskResponse)
async def edit_task(task_id: str, request: TaskUpdateRequest, store: TaskStateStore = Depends(get_task_store)):
    """Full edit of a task's title, category, due date and notes."""
    task = await store.edit(task_id, request.title, request.category, request.due, request.notes)
    return TaskResponse(task=task)


@app.patch("/tasks/{task_id}/status", response_model=TaskResponse)
async def set_task_status(task_id: str, request: TaskStatusRequest, store: TaskStateStore = Depends(get_task_store)):
    task = await store.set_status(task_id, request.status)
    return TaskResponse(task=task)


@app.post("/tasks/{task_id}/move", response_model=TaskMoveResponse)
async def move_task(task_id: str, request: TaskMoveRequest, store: TaskStateStore = Depends(get_task_store)):
    """Drag-and-drop a card onto a column; unknown or same columns are ignored."""
    task = await store.move(task_id, request.column)
    return TaskMoveResponse(moved=task is not None, task=task)


@app.post("/tasks/{task_id}/toggle", response_model=TaskResponse)
async def toggle_task(task_id: str, store: TaskStateStore = Depends(get_task_store)):
    task = await store.toggle_complete(task_id)
    return TaskResponse(task=task)


@app.post("/tasks/bulk_complete", response_model=BulkCompleteResponse)
async def bulk_complete(request: BulkRequest, store: TaskStateStore = Depends(get_task_store)):
    tasks = await store.bulk_complete(request.task_ids)
    return BulkCompleteResponse(updated_count=len(tasks), tasks=tasks)


@app.post("/tasks/bulk_delete", response_model=BulkDeleteResponse)
async def bulk_delete(request: BulkRequest, store: TaskStateStore = Depends(get_task_store)):
    """Delete tasks; a failed durable delete is reported, not rolled back."""
    deleted = await store.bulk_delete(request.task_ids)
    return BulkDeleteResponse(deleted_count=deleted, status_message=store.status_message)


@app.post("/tasks/sync-calendar", response_model=SyncResponse)
async def sync_tasks_to_calendar(
    request: Optional[CalendarSyncRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: TaskStateStore = Depends(get_task_store),
    dispatcher: EventDispatcher = Depends(get_calendar_dispatcher),
):
    """Sync every open task to Google Calendar; undated tasks land on today."""
    request = request or CalendarSyncRequest()
    reminder = UserRepository(db).get_reminder_minutes(current_user.id)
    report = await BatchSyncEngine(dispatcher).sync_tasks(
        store.tasks,
        reminder_minutes=reminder,
        time_zone=request.time_zone,
        fallback_due=date.today().isoformat(),
    )
    return _sync_response(report)


@app.get("/preferences/reminder", response_model=ReminderPreference)
async def get_reminder_preference(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return ReminderPreference(minutes=UserRepository(db).get_reminder_minutes(current_user.id))


@app.put("/preferences/reminder", response_model=ReminderPreference)
async def set_reminder_preference(
    request: ReminderPreference,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Store the reminder applied to synced events (one of the offered options)."""
    allowed: List[Optional[int]] = [minutes for _, minutes in REMINDER_OPTIONS]
    if request.minutes not in allowed:
        raise LocalValidationError(f"Unsupported reminder '{request.minutes}'")
    minutes = UserRepository(db).set_reminder_minutes(current_user.id, request.minutes)
    return ReminderPreference(minutes=minutes)


@app.get("/dashboard/kpis", response_model=KpiResponse)
async def dashboard_kpis(store: TaskStateStore = Depends(get_task_store)):
    kpis = compute_kpis(store.tasks, date.today())
    return KpiResponse(
        due_today=kpis.due_today,
        streak_days=kpis.streak_days,
        weekly_completed=kpis.weekly_completed,
        weekly_total=kpis.weekly_total,
        weekly_progress=kpis.weekly_progress,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
