"""OpenAI API integration for studybuddy.

Turns pasted syllabus text into a validated ParsedSyllabus (graded events plus
per-type counts). The model output is treated as untrusted: it is reduced to
the outermost JSON object and validated with pydantic before anything else
sees it.
"""

import os
import json
import logging
from typing import Any, Optional

from openai import OpenAI, APIError, APIStatusError
from pydantic import ValidationError
from dotenv import load_dotenv

from studybuddy.errors import ExtractionError
from studybuddy.models.syllabus import ParsedSyllabus

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"

SYSTEM_PROMPT = (
    "You are a parser. Return ONLY valid JSON that matches the requested schema. "
    "Dates must be ISO-8601 strings; date-times must carry a UTC offset. "
    "If only a day is known, use YYYY-MM-DD."
)

SYLLABUS_PROMPT_TEMPLATE = (
    "Parse this syllabus into JSON with shape: "
    '{{"summary":{{"quizzes":3,"assignments":5,"exams":2}},"events":[{{"title":"...",'
    '"type":"quiz|assignment|exam","date":"YYYY-MM-DD or ISO datetime with offset","description":"..."}}]}}.\n\n'
    "SYLLABUS:\n{syllabus}"
)


def extract_json(content: str) -> str:
    """Slice from the first '{' to the last '}', tolerating text around the object."""
    first = content.find("{")
    last = content.rfind("}")
    if first >= 0 and last > first:
        return content[first:last + 1]
    return content


class OpenAIClient:
    """Client for OpenAI syllabus extraction."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Any = None):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY environment variable.
            model: Chat model. If None, reads OPENAI_MODEL (default gpt-4o-mini).
            client: Pre-built OpenAI client (tests inject a mock here).

        Note:
            Without an API key the client still initializes; parse_syllabus then
            raises ExtractionError instead of calling the API.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL
        self.client = client

        if self.client is None and self.api_key:
            self.client = OpenAI(api_key=self.api_key)
        elif self.client is None:
            logger.warning("OPENAI_API_KEY not found in environment. Syllabus parsing will not be available.")

    def parse_syllabus(self, text: str) -> ParsedSyllabus:
        """Extract graded events from syllabus text.

        Args:
            text: Raw pasted syllabus

        Returns:
            Validated ParsedSyllabus

        Raises:
            ExtractionError: Empty input, missing key, API failure, or output
                that is empty, not JSON, or does not match the schema
        """
        syllabus = (text or "").strip()
        if not syllabus:
            raise ExtractionError("Paste your syllabus first.")
        if not self.client:
            raise ExtractionError("Missing OPENAI_API_KEY on the server.")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                temperature=0.2,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": SYLLABUS_PROMPT_TEMPLATE.format(syllabus=syllabus)},
                ],
            )
        except APIStatusError as e:
            logger.error(f"OpenAI syllabus request failed: {type(e).__name__}: {str(e)}")
            raise ExtractionError(f"LLM request failed ({e.status_code}). {e.response.text}") from e
        except APIError as e:
            logger.error(f"OpenAI syllabus request failed: {type(e).__name__}: {str(e)}")
            raise ExtractionError(f"LLM request failed (0). {str(e)}") from e

        content = None
        if response.choices:
            content = response.choices[0].message.content
        if not content:
            raise ExtractionError("LLM returned empty output.")

        try:
            payload = json.loads(extract_json(content))
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse OpenAI syllabus response as JSON: {content[:200]}")
            raise ExtractionError("LLM returned invalid JSON.") from e

        try:
            parsed = ParsedSyllabus.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"OpenAI syllabus response did not match schema: {e.error_count()} errors")
            raise ExtractionError("Parsed JSON did not match schema.") from e

        logger.debug(f"Parsed syllabus into {len(parsed.events)} events")
        return parsed
