"""Error taxonomy for studybuddy.

Upstream and datastore failures are normalized into these types at the
boundary where they are received; nothing downstream inspects raw error
objects.
"""

import json
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError


class StudyBuddyError(RuntimeError):
    """Base class for all studybuddy errors."""


class UpstreamError(StudyBuddyError):
    """A remote service rejected or failed a request."""


class CalendarInsertError(UpstreamError):
    """Google Calendar event insert failed.

    The message embeds the HTTP status and response body verbatim so the
    upstream diagnostic can be shown to the user as-is.
    """

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Google Calendar insert failed ({status_code}): {body}")


class ExtractionError(UpstreamError):
    """Syllabus extraction failed or returned unusable output."""


class LocalValidationError(StudyBuddyError, ValueError):
    """Input rejected before any network call (e.g. empty title)."""


class CredentialMissingError(StudyBuddyError):
    """No calendar access credential is available for this session."""

    def __init__(self, message: str = "Sign in with Google to enable calendar sync."):
        super().__init__(message)


class TaskNotFoundError(StudyBuddyError, LookupError):
    """A task id is not present in the working copy or the datastore."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class DatastoreError(StudyBuddyError):
    """A durable read or write against the task datastore failed."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


def to_error_message(err: Any, default: str = "Unknown error") -> str:
    """Best human-readable message for an arbitrary error object.

    Prefers the deepest message available: exception text, a ``message`` or
    ``error`` entry of a mapping or attribute, then a JSON dump.
    """
    if err is None:
        return default
    if isinstance(err, str):
        return err or default
    if isinstance(err, (int, float, bool)):
        return str(err)
    if isinstance(err, BaseException):
        text = str(err)
        if text:
            return text
        return to_error_message(err.__cause__, default) if err.__cause__ else type(err).__name__
    if isinstance(err, dict):
        for key in ("message", "error"):
            value = err.get(key)
            if isinstance(value, str) and value:
                return value
        try:
            return json.dumps(err)
        except (TypeError, ValueError):
            return default
    for attr in ("message", "error"):
        value = getattr(err, attr, None)
        if isinstance(value, str) and value:
            return value
    return default


def normalize_datastore_error(err: Any) -> DatastoreError:
    """Convert whatever the datastore raised into a DatastoreError."""
    if isinstance(err, DatastoreError):
        return err
    if isinstance(err, SQLAlchemyError):
        # DBAPI errors carry the driver message in .orig; prefer it over the SQL echo.
        orig = getattr(err, "orig", None)
        code = getattr(err, "code", None)
        return DatastoreError(to_error_message(orig if orig is not None else err), code=code)
    code = None
    if isinstance(err, dict):
        code = err.get("code")
    else:
        code = getattr(err, "code", None)
    return DatastoreError(to_error_message(err, default="Datastore request failed."), code=str(code) if code else None)
