"""Tests for the bounded-concurrency batch sync engine."""

import asyncio
import json

import httpx
import pytest

from studybuddy.engine.batch_sync import BatchSyncEngine, SyncReport
from studybuddy.errors import CalendarInsertError, CredentialMissingError, UpstreamError
from studybuddy.integrations.google_calendar import GoogleCalendarClient


class SlowDispatcher:
    """Dispatcher whose latency depends on the event, tracking peak concurrency."""

    def __init__(self, delays, fail_indices=()):
        self.delays = delays
        self.fail_indices = set(fail_indices)
        self.in_flight = 0
        self.peak = 0
        self.completion_order = []

    async def create_event(self, event_body):
        index = event_body["index"]
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delays[index])
        finally:
            self.in_flight -= 1
        self.completion_order.append(index)
        if index in self.fail_indices:
            raise CalendarInsertError(400, f"bad event {index}")
        return {"id": f"evt-{index}"}


def _events(n):
    return [{"index": i, "summary": f"QUIZ: Quiz {i}"} for i in range(n)]


@pytest.mark.asyncio
async def test_results_follow_input_order_regardless_of_latency():
    dispatcher = SlowDispatcher([0.03, 0.0, 0.02, 0.01, 0.0])
    outcomes = await BatchSyncEngine(dispatcher, concurrency=3).run(_events(5))

    assert [o.event["id"] for o in outcomes] == [f"evt-{i}" for i in range(5)]
    assert dispatcher.completion_order != list(range(5))


@pytest.mark.asyncio
async def test_at_most_three_requests_in_flight():
    dispatcher = SlowDispatcher([0.01] * 10)
    await BatchSyncEngine(dispatcher).run(_events(10))
    assert dispatcher.peak == 3


@pytest.mark.asyncio
async def test_worker_count_capped_by_batch_size():
    dispatcher = SlowDispatcher([0.01, 0.01])
    await BatchSyncEngine(dispatcher, concurrency=3).run(_events(2))
    assert dispatcher.peak == 2


@pytest.mark.asyncio
async def test_failure_does_not_stop_siblings():
    dispatcher = SlowDispatcher([0.0] * 4, fail_indices={1})
    outcomes = await BatchSyncEngine(dispatcher).run(_events(4))
    report = SyncReport(outcomes=outcomes)

    assert report.synced_count == 3
    assert report.failed_count == 1
    assert outcomes[1].error_message == "Google Calendar insert failed (400): bad event 1"
    assert report.message.startswith("Synced 3 of 4 events to Google Calendar.")
    with pytest.raises(CalendarInsertError):
        report.raise_for_failures()


@pytest.mark.asyncio
async def test_empty_input_short_circuits():
    dispatcher = SlowDispatcher([])
    assert await BatchSyncEngine(dispatcher).run([]) == []
    assert SyncReport().message == "No events to sync."


@pytest.mark.asyncio
async def test_missing_credential_raises_before_dispatch():
    with pytest.raises(CredentialMissingError):
        await BatchSyncEngine(None).run(_events(1))


@pytest.mark.asyncio
async def test_sync_tasks_skips_completed(make_task, fake_dispatcher):
    tasks = [
        make_task(title="Open", status="upcoming"),
        make_task(title="Done", status="completed"),
        make_task(title="Late", status="in-progress"),
    ]
    report = await BatchSyncEngine(fake_dispatcher).sync_tasks(tasks, reminder_minutes=60)

    assert report.total == 2
    assert report.synced_count == 2
    assert [e["summary"] for e in fake_dispatcher.events] == ["ASSIGNMENT: Open", "ASSIGNMENT: Late"]
    assert report.outcomes[0].task_id == tasks[0].id
    assert report.message == "Synced 2 events to Google Calendar."
    assert all(e["reminders"]["overrides"][0]["minutes"] == 60 for e in fake_dispatcher.events)


@pytest.mark.asyncio
async def test_non_json_success_body_fails_only_that_item():
    def handler(request: httpx.Request) -> httpx.Response:
        summary = json.loads(request.content)["summary"]
        if summary == "QUIZ: Quiz 1":
            return httpx.Response(200, text="<html>proxy</html>")
        return httpx.Response(200, json={"id": summary})

    client = GoogleCalendarClient(
        access_token="test-access-token",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    outcomes = await BatchSyncEngine(client).run(_events(3))

    assert [o.ok for o in outcomes] == [True, False, True]
    assert isinstance(outcomes[1].error, CalendarInsertError)
    assert outcomes[1].error.status_code == 200


class BrokenDispatcher:
    async def create_event(self, event_body):
        if event_body["index"] == 0:
            raise RuntimeError("socket closed")
        return {"id": f"evt-{event_body['index']}"}


@pytest.mark.asyncio
async def test_unexpected_exception_is_stored_as_upstream_error():
    outcomes = await BatchSyncEngine(BrokenDispatcher()).run(_events(2))
    report = SyncReport(outcomes=outcomes)

    assert [o.ok for o in outcomes] == [False, True]
    assert isinstance(outcomes[0].error, UpstreamError)
    assert isinstance(outcomes[0].error.__cause__, RuntimeError)
    assert outcomes[0].error_message == "socket closed"
    assert report.message == "Synced 1 of 2 events to Google Calendar. First error: socket closed"
