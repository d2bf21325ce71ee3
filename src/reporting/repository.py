"""
Read-only access to the course activity tables.
"""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy import ColumnElement, Select, Table, distinct, func, or_, select, true
from sqlalchemy.engine import Engine, RowMapping

from .models import ReportWindow
from .schema import activity_events, courses, enrollments, teachers

LOGGER = logging.getLogger(__name__)


def _per_course_count(table: Table, *criteria: ColumnElement[bool], distinct_column=None):
    """Correlated ``COUNT`` over ``table`` for the enclosing course row."""
    counted = func.count(distinct(distinct_column)) if distinct_column is not None else func.count()
    return (
        select(counted)
        .select_from(table)
        .where(table.c.course_id == courses.c.id, *criteria)
        .scalar_subquery()
    )


def build_weekly_activity_query(window: ReportWindow) -> Select:
    """
    Build the per-course activity query for ``window``.

    Only active courses with at least one new enrollment, completion or
    activity event inside the window are returned, ordered by course id.
    """
    start, end = window.start, window.end
    in_window_events = (activity_events.c.occurred_at >= start, activity_events.c.occurred_at < end)

    per_course = (
        select(
            courses.c.id.label("course_id"),
            courses.c.title.label("course_title"),
            teachers.c.name.label("teacher_name"),
            teachers.c.email.label("teacher_email"),
            _per_course_count(enrollments).label("total_enrollments"),
            _per_course_count(
                enrollments, enrollments.c.enrolled_at >= start, enrollments.c.enrolled_at < end
            ).label("new_enrollments"),
            _per_course_count(
                enrollments, enrollments.c.completed_at >= start, enrollments.c.completed_at < end
            ).label("completions"),
            _per_course_count(
                activity_events, *in_window_events, distinct_column=activity_events.c.student_id
            ).label("active_students"),
            _per_course_count(activity_events, *in_window_events).label("activity_events"),
        )
        .join_from(courses, teachers, courses.c.teacher_id == teachers.c.id)
        .where(courses.c.active.is_(true()))
        .subquery("per_course")
    )

    return (
        select(per_course)
        .where(
            or_(
                per_course.c.new_enrollments > 0,
                per_course.c.completions > 0,
                per_course.c.activity_events > 0,
            )
        )
        .order_by(per_course.c.course_id)
    )


class CourseActivityRepository:
    """Runs the weekly activity query against the course database."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def fetch_course_activity(self, window: ReportWindow) -> List[RowMapping]:
        stmt = build_weekly_activity_query(window)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        LOGGER.debug("Fetched activity for %s courses between %s and %s.", len(rows), window.start, window.end)
        return list(rows)
