"""Request/response models for the studybuddy API."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from studybuddy.models.task import Task
from studybuddy.models.syllabus import ParsedEvent, SyllabusSummary
from studybuddy.models.constants import DEFAULT_TIME_ZONE


class GoogleLoginRequest(BaseModel):
    """Request model for Google sign-in."""
    id_token: str = Field(..., description="Google ID token from Google Identity Services")


class AuthResponse(BaseModel):
    """Response model for authentication."""
    access_token: str
    token_type: str = "bearer"
    user: dict


class SyllabusParseRequest(BaseModel):
    text: str = Field("", description="Pasted syllabus text")


class SyllabusParseResponse(BaseModel):
    summary: SyllabusSummary
    events: List[ParsedEvent]
    message: str


class SyllabusSaveRequest(BaseModel):
    events: List[ParsedEvent] = Field(default_factory=list, description="Reviewed events to persist")


class SaveResponse(BaseModel):
    inserted_count: int
    skipped_count: int
    message: str
    tasks: List[Task]


class CalendarSyncRequest(BaseModel):
    """Optional knobs for a calendar sync pass."""
    time_zone: str = Field(DEFAULT_TIME_ZONE, description="IANA zone attached to timed events")


class SyllabusSyncRequest(CalendarSyncRequest):
    events: List[ParsedEvent] = Field(default_factory=list, description="Events to push to the calendar")


class SyncItemResponse(BaseModel):
    index: int
    task_id: Optional[str] = None
    ok: bool
    event_id: Optional[str] = None
    error: Optional[str] = None


class SyncResponse(BaseModel):
    """Response for calendar sync; one item per dispatched event, in input order."""
    synced_count: int
    failed_count: int
    message: str
    items: List[SyncItemResponse]


class TaskCreateRequest(BaseModel):
    title: str = ""
    category: str = "assignment"
    status: str = "upcoming"
    due: Optional[str] = None
    notes: Optional[str] = None


class TaskUpdateRequest(BaseModel):
    title: str = ""
    category: str = "assignment"
    due: Optional[str] = None
    notes: Optional[str] = None


class TaskStatusRequest(BaseModel):
    status: str


class TaskMoveRequest(BaseModel):
    column: Optional[str] = Field(None, description="Target column id; null when dropped outside the board")


class TaskResponse(BaseModel):
    task: Task


class TaskMoveResponse(BaseModel):
    moved: bool
    task: Optional[Task] = None


class BulkRequest(BaseModel):
    task_ids: List[str] = Field(default_factory=list)


class BulkCompleteResponse(BaseModel):
    updated_count: int
    tasks: List[Task]


class BulkDeleteResponse(BaseModel):
    deleted_count: int
    status_message: Optional[str] = None


class BoardResponse(BaseModel):
    """Board view: tasks grouped by status column."""
    columns: Dict[str, List[Task]]
    counts: Dict[str, int]
    total: int


class ReminderPreference(BaseModel):
    minutes: Optional[int] = Field(..., description="Minutes before start, or null for no reminder")


class KpiResponse(BaseModel):
    due_today: int
    streak_days: int
    weekly_completed: int
    weekly_total: int
    weekly_progress: float
