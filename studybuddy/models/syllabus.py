"""Structured result of syllabus extraction."""

from typing import List
from enum import Enum
from pydantic import BaseModel, Field, field_validator

from studybuddy.models.task import validate_due


class ParsedEventType(str, Enum):
    """Graded event types the extractor may emit."""
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    EXAM = "exam"


class ParsedEvent(BaseModel):
    """One graded event found in a syllabus."""

    title: str = Field(..., min_length=1, description="Event title")
    type: ParsedEventType = Field(..., description="Event type")
    date: str = Field(..., min_length=1, description="YYYY-MM-DD, or an ISO-8601 date-time with an explicit offset")
    description: str = Field("", description="Free-text details")

    @field_validator("date")
    @classmethod
    def _date_unambiguous(cls, value: str) -> str:
        due = validate_due(value)
        if due is None:
            raise ValueError("Event date is required")
        return due

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class SyllabusSummary(BaseModel):
    """Per-type counts reported by the extractor."""

    quizzes: int = Field(..., ge=0)
    assignments: int = Field(..., ge=0)
    exams: int = Field(..., ge=0)


class ParsedSyllabus(BaseModel):
    """Validated extraction output."""

    summary: SyllabusSummary
    events: List[ParsedEvent] = Field(default_factory=list)

    @property
    def summary_line(self) -> str:
        s = self.summary
        return f"You have {s.quizzes} quizzes, {s.assignments} assignments, {s.exams} exams."
