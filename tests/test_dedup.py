"""Tests for idempotent saving of extracted events."""

import pytest
from pydantic import ValidationError

from studybuddy.engine.dedup import DeduplicationGate, SaveResult, natural_key
from studybuddy.errors import LocalValidationError
from studybuddy.models.syllabus import ParsedEvent
from studybuddy.models.task_factory import task_from_parsed_event


@pytest.fixture
def events():
    return [
        ParsedEvent(title="Quiz 1", type="quiz", date="2026-03-12"),
        ParsedEvent(title="Essay", type="assignment", date="2026-03-20T23:59:00Z", description="1500 words"),
        ParsedEvent(title="Midterm", type="exam", date="2026-04-02"),
    ]


def test_natural_key_reduces_datetime_to_date():
    assert natural_key("Essay", "2026-03-20T23:59:00Z", "assignment") == ("Essay", "2026-03-20", "assignment")


@pytest.mark.asyncio
async def test_second_save_inserts_nothing(fake_datastore, events, test_user_id):
    gate = DeduplicationGate(fake_datastore)

    first = await gate.save_extracted(test_user_id, events)
    second = await gate.save_extracted(test_user_id, events)

    assert first.inserted_count == 3
    assert first.message == "Saved 3 tasks."
    assert second.inserted_count == 0
    assert second.skipped == 3
    assert second.message == "Nothing new to save (3 already saved)."
    assert len(fake_datastore.rows) == 3


@pytest.mark.asyncio
async def test_saved_tasks_keep_date_part_and_source(fake_datastore, events, test_user_id):
    result = await DeduplicationGate(fake_datastore).save_extracted(test_user_id, events)
    essay = next(t for t in result.inserted if t.title == "Essay")

    assert essay.due == "2026-03-20"
    assert essay.source == "syllabus"
    assert essay.notes == "1500 words"


@pytest.mark.asyncio
async def test_duplicates_within_batch_are_skipped(fake_datastore, test_user_id):
    event = ParsedEvent(title="Quiz 1", type="quiz", date="2026-03-12")
    result = await DeduplicationGate(fake_datastore).save_extracted(test_user_id, [event, event])

    assert result.inserted_count == 1
    assert result.skipped == 1
    assert result.message == "Saved 1 tasks (1 duplicates skipped)."


@pytest.mark.asyncio
async def test_other_users_tasks_do_not_collide(fake_datastore, events, test_user_id):
    gate = DeduplicationGate(fake_datastore)
    await gate.save_extracted("someone-else", events)
    result = await gate.save_extracted(test_user_id, events)
    assert result.inserted_count == 3


@pytest.mark.asyncio
async def test_reworded_title_is_a_new_task(fake_datastore, test_user_id):
    gate = DeduplicationGate(fake_datastore)
    await gate.save_extracted(test_user_id, [ParsedEvent(title="Quiz 1", type="quiz", date="2026-03-12")])
    result = await gate.save_extracted(test_user_id, [ParsedEvent(title="Quiz #1", type="quiz", date="2026-03-12")])
    assert result.inserted_count == 1


@pytest.mark.asyncio
async def test_empty_input_does_not_insert(fake_datastore, test_user_id):
    result = await DeduplicationGate(fake_datastore).save_extracted(test_user_id, [])
    assert result == SaveResult()
    assert "insert_many" not in fake_datastore.calls


@pytest.mark.parametrize("value", ["2026-02-30", "TBD", "2026-03-12T09:00:00", "  "])
def test_event_date_must_be_a_real_date_or_offset_instant(value):
    with pytest.raises(ValidationError):
        ParsedEvent(title="Quiz 1", type="quiz", date=value)


def test_event_date_accepts_offset_instant():
    event = ParsedEvent(title="Essay", type="assignment", date=" 2026-03-20T23:59:00-05:00 ")
    assert event.date == "2026-03-20T23:59:00-05:00"


def test_task_from_event_rejects_word_containing_t(test_user_id):
    event = ParsedEvent.model_construct(title="Quiz 1", type="quiz", date="TBD", description="")
    with pytest.raises(ValueError):
        task_from_parsed_event(test_user_id, event)


@pytest.mark.asyncio
async def test_unparseable_date_is_rejected_before_any_datastore_call(fake_datastore, test_user_id):
    events = [
        ParsedEvent(title="Quiz 1", type="quiz", date="2026-03-12"),
        ParsedEvent.model_construct(title="Quiz 2", type="quiz", date="2026-02-30", description=""),
    ]
    with pytest.raises(LocalValidationError, match="Invalid event"):
        await DeduplicationGate(fake_datastore).save_extracted(test_user_id, events)

    assert fake_datastore.calls == []
    assert fake_datastore.rows == {}
