"""Turns course activity rows into weekly reports."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Mapping, Protocol, Sequence

from pydantic import ValidationError
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from ..common.results import ErrorKind, ReportQueryResult, StepError
from .models import ReportWindow, WeeklyCourseReport

LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7


class ActivitySource(Protocol):
    def fetch_course_activity(self, window: ReportWindow) -> Sequence[Mapping[str, object]]:
        ...


def assemble_report(row: Mapping[str, object], window: ReportWindow) -> WeeklyCourseReport:
    """Map one activity row onto a report record."""
    return WeeklyCourseReport(
        course_id=row["course_id"],
        course_title=row["course_title"],
        teacher_name=row.get("teacher_name"),
        teacher_email=row["teacher_email"],
        period_start=window.start,
        period_end=window.end,
        total_enrollments=row.get("total_enrollments") or 0,
        new_enrollments=row.get("new_enrollments") or 0,
        completions=row.get("completions") or 0,
        active_students=row.get("active_students") or 0,
        activity_events=row.get("activity_events") or 0,
    )


class WeeklyReportService:
    """Computes every course report for the trailing window in one query."""

    def __init__(self, repository: ActivitySource, window_days: int = DEFAULT_WINDOW_DAYS) -> None:
        if window_days <= 0:
            raise ValueError("window_days must be > 0")
        self.repository = repository
        self.window_days = window_days

    def generate_weekly_reports(self, now: datetime) -> ReportQueryResult:
        window = ReportWindow.trailing(now, self.window_days)
        try:
            rows = self.repository.fetch_course_activity(window)
        except (OperationalError, InterfaceError) as exc:
            return ReportQueryResult(error=StepError.from_exception(ErrorKind.CONNECTIVITY, exc))
        except SQLAlchemyError as exc:
            return ReportQueryResult(error=StepError.from_exception(ErrorKind.QUERY, exc))

        reports: List[WeeklyCourseReport] = []
        for row in rows:
            try:
                reports.append(assemble_report(row, window))
            except (ValidationError, KeyError) as exc:
                # One malformed row invalidates the whole run.
                return ReportQueryResult(error=StepError.from_exception(ErrorKind.QUERY, exc))

        LOGGER.debug("Assembled %s weekly reports for window %s - %s.", len(reports), window.start, window.end)
        return ReportQueryResult(reports=reports)
