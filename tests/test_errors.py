"""Tests for error normalization."""

from sqlalchemy.exc import IntegrityError

from studybuddy.errors import (
    CalendarInsertError,
    DatastoreError,
    normalize_datastore_error,
    to_error_message,
)


def test_calendar_error_message_embeds_status_and_body():
    err = CalendarInsertError(503, "backend error")
    assert str(err) == "Google Calendar insert failed (503): backend error"
    assert err.status_code == 503


def test_to_error_message_prefers_message_fields():
    assert to_error_message({"message": "row level security"}) == "row level security"
    assert to_error_message({"error": "bad"}) == "bad"
    assert to_error_message({"hint": "x"}) == '{"hint": "x"}'
    assert to_error_message(None, "fallback") == "fallback"
    assert to_error_message(ValueError("boom")) == "boom"


def test_normalize_sqlalchemy_error_uses_driver_message():
    err = IntegrityError("INSERT INTO tasks ...", {}, Exception("FOREIGN KEY constraint failed"))
    normalized = normalize_datastore_error(err)
    assert isinstance(normalized, DatastoreError)
    assert str(normalized) == "FOREIGN KEY constraint failed"


def test_normalize_dict_error_keeps_code():
    normalized = normalize_datastore_error({"message": "permission denied", "code": "42501"})
    assert str(normalized) == "permission denied"
    assert normalized.code == "42501"


def test_normalize_is_idempotent():
    err = DatastoreError("x")
    assert normalize_datastore_error(err) is err
