"""Report records produced by the weekly query."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class ReportWindow:
    """Half-open reporting interval ``[start, end)`` in UTC."""

    start: datetime
    end: datetime

    @classmethod
    def trailing(cls, now: datetime, days: int) -> "ReportWindow":
        if days <= 0:
            raise ValueError("days must be > 0")
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        end = now.astimezone(timezone.utc)
        return cls(start=end - timedelta(days=days), end=end)


class WeeklyCourseReport(BaseModel):
    """One course's activity summary for the reporting window."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    course_id: int
    course_title: str
    teacher_name: str = ""
    teacher_email: str
    period_start: datetime
    period_end: datetime
    total_enrollments: int = Field(default=0, ge=0)
    new_enrollments: int = Field(default=0, ge=0)
    completions: int = Field(default=0, ge=0)
    active_students: int = Field(default=0, ge=0)
    activity_events: int = Field(default=0, ge=0)

    @field_validator("course_title", "teacher_name", mode="before")
    @classmethod
    def _ensure_str(cls, value: object) -> str:
        if value is None:
            return ""
        return str(value).strip()
