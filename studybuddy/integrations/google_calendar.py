"""Google Calendar integration for studybuddy.

Creates events with the Calendar v3 REST API over httpx. Each insert is
retried with exponential backoff and jitter while Google reports a transient
condition (rate limit or server error).
"""

import asyncio
import json
import logging
import os
import random
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

import httpx
from dotenv import load_dotenv

from studybuddy.errors import CalendarInsertError, CredentialMissingError
from studybuddy.models.constants import (
    DEFAULT_CALENDAR_ID,
    GOOGLE_CALENDAR_API_BASE_URL,
    RATE_LIMIT_REASONS,
    SYNC_BASE_DELAY_SECONDS,
    SYNC_JITTER_MAX,
    SYNC_JITTER_MIN,
    SYNC_MAX_RETRIES,
)

load_dotenv()

logger = logging.getLogger(__name__)


class ResponseClass(str, Enum):
    """Outcome class of one insert attempt."""
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


def is_rate_limit_error(body: str) -> bool:
    """Check a Google error body for a rate-limit reason code."""
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        return False
    if not isinstance(payload, dict):
        return False
    error = payload.get("error")
    if not isinstance(error, dict):
        return False
    errors = error.get("errors")
    if not isinstance(errors, list) or not errors or not isinstance(errors[0], dict):
        return False
    return errors[0].get("reason") in RATE_LIMIT_REASONS


def classify_response(status_code: int, body: str) -> ResponseClass:
    """Classify a Calendar API response.

    429, any 5xx, and a 403 carrying a rate-limit reason are retryable.
    Every other non-2xx response is fatal.
    """
    if 200 <= status_code < 300:
        return ResponseClass.SUCCESS
    if status_code == 429 or status_code >= 500:
        return ResponseClass.RETRYABLE
    if status_code == 403 and is_rate_limit_error(body):
        return ResponseClass.RETRYABLE
    return ResponseClass.FATAL


def backoff_delay(
    attempt: int,
    base_delay: float = SYNC_BASE_DELAY_SECONDS,
    rng: Callable[[float, float], float] = random.uniform,
) -> float:
    """Delay before retry number ``attempt + 1``: base * 2**attempt * jitter."""
    jitter = rng(SYNC_JITTER_MIN, SYNC_JITTER_MAX)
    return base_delay * (2 ** attempt) * jitter


class GoogleCalendarClient:
    """Client for creating Google Calendar events with retry."""

    def __init__(
        self,
        access_token: Optional[str],
        calendar_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        max_retries: int = SYNC_MAX_RETRIES,
        base_delay: float = SYNC_BASE_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Callable[[float, float], float] = random.uniform,
    ):
        """Initialize Google Calendar client.

        Args:
            access_token: OAuth2 access token with Calendar scope, supplied by the caller.
            calendar_id: Google Calendar ID to use.
                        If None, reads from GOOGLE_CALENDAR_ID env var (defaults to 'primary').
            http_client: Shared httpx client; a private one is created if omitted.
            max_retries: Retries allowed after the first attempt.
            base_delay: Base backoff delay in seconds.
            sleep: Awaitable delay function (injectable for tests).
            rng: Uniform random source for jitter (injectable for tests).

        Raises:
            CredentialMissingError: If no access token is available
        """
        if not access_token or not access_token.strip():
            raise CredentialMissingError()
        self.access_token = access_token.strip()
        self.calendar_id = calendar_id or os.getenv("GOOGLE_CALENDAR_ID", DEFAULT_CALENDAR_ID)
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep
        self._rng = rng
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient()

    @property
    def events_url(self) -> str:
        return f"{GOOGLE_CALENDAR_API_BASE_URL}/calendars/{quote(self.calendar_id, safe='')}/events"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "GoogleCalendarClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def create_event(self, event_body: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one event, retrying transient failures.

        Args:
            event_body: Calendar v3 event payload (see engine.event_mapper)

        Returns:
            Created event dictionary from Google Calendar API

        Raises:
            CalendarInsertError: On a fatal response, an exhausted retry
                budget, a transport failure (status 0) or a 2xx body that
                is not JSON
        """
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        attempt = 0
        while True:
            try:
                response = await self._http_client.post(self.events_url, json=event_body, headers=headers)
            except httpx.HTTPError as e:
                logger.error(f"Calendar insert transport failure: {type(e).__name__}")
                raise CalendarInsertError(0, str(e)) from e

            body = response.text
            outcome = classify_response(response.status_code, body)
            if outcome == ResponseClass.SUCCESS:
                logger.debug(f"Created calendar event after {attempt + 1} attempt(s)")
                try:
                    return response.json()
                except ValueError as e:
                    logger.error(f"Calendar API returned {response.status_code} with a non-JSON body: {body[:200]}")
                    raise CalendarInsertError(response.status_code, body) from e

            if outcome == ResponseClass.FATAL or attempt >= self.max_retries:
                logger.error(
                    f"Calendar insert failed with status {response.status_code} "
                    f"({outcome.value}, attempt {attempt + 1}/{self.max_retries + 1})"
                )
                raise CalendarInsertError(response.status_code, body)

            delay = backoff_delay(attempt, self.base_delay, self._rng)
            logger.warning(
                f"Calendar API returned {response.status_code}, retrying in {delay:.2f}s "
                f"(attempt {attempt + 1}/{self.max_retries})"
            )
            await self._sleep(delay)
            attempt += 1
