from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock
import sys

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError, ProgrammingError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.common.results import ErrorKind
from src.reporting.models import ReportWindow
from src.reporting.report_service import WeeklyReportService
from src.reporting.repository import CourseActivityRepository
from src.reporting.run_lock import AdvisoryRunLock
from src.reporting.schema import activity_events, courses, enrollments, metadata, teachers

NOW = datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc)


def _at(day: int, month: int = 10, hour: int = 12) -> datetime:
    return datetime(2026, month, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://")
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(
            teachers.insert(),
            [
                {"id": 1, "name": "Ana Souza", "email": "ana@school.edu"},
                {"id": 2, "name": "Bruno Lima", "email": "bruno@school.edu"},
            ],
        )
        conn.execute(
            courses.insert(),
            [
                {"id": 10, "title": "Algebra I", "teacher_id": 1, "active": True},
                {"id": 20, "title": "Chemistry", "teacher_id": 2, "active": True},
                {"id": 30, "title": "Physics", "teacher_id": 2, "active": False},
                {"id": 5, "title": "Biology", "teacher_id": 2, "active": True},
            ],
        )
        conn.execute(
            enrollments.insert(),
            [
                {"id": 1, "course_id": 10, "student_id": 1, "enrolled_at": _at(1, month=9), "completed_at": _at(15)},
                {"id": 2, "course_id": 10, "student_id": 2, "enrolled_at": _at(12), "completed_at": None},
                {"id": 3, "course_id": 10, "student_id": 3, "enrolled_at": _at(1), "completed_at": None},
                {"id": 4, "course_id": 20, "student_id": 4, "enrolled_at": _at(1, month=8), "completed_at": None},
                {"id": 5, "course_id": 30, "student_id": 5, "enrolled_at": _at(14), "completed_at": None},
            ],
        )
        conn.execute(
            activity_events.insert(),
            [
                {"id": 1, "course_id": 10, "student_id": 1, "occurred_at": _at(13)},
                {"id": 2, "course_id": 10, "student_id": 1, "occurred_at": _at(16)},
                {"id": 3, "course_id": 10, "student_id": 2, "occurred_at": _at(17)},
                {"id": 4, "course_id": 10, "student_id": 3, "occurred_at": _at(5)},
                # exactly at the window end: excluded
                {"id": 5, "course_id": 20, "student_id": 4, "occurred_at": NOW},
                # exactly at the window start: included
                {"id": 6, "course_id": 5, "student_id": 7, "occurred_at": _at(11, hour=8)},
            ],
        )
    yield engine
    engine.dispose()


class FakeRepository:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.windows = []

    def fetch_course_activity(self, window):
        self.windows.append(window)
        if self.error:
            raise self.error
        return self.rows


def test_trailing_window_is_seven_days_ending_now():
    window = ReportWindow.trailing(NOW, 7)
    assert window.end == NOW
    assert window.start == datetime(2026, 10, 11, 8, 0, tzinfo=timezone.utc)


def test_trailing_window_treats_naive_now_as_utc():
    window = ReportWindow.trailing(datetime(2026, 10, 18, 8, 0), 7)
    assert window.end == NOW


def test_repository_returns_active_courses_with_activity_in_course_order(engine):
    rows = CourseActivityRepository(engine).fetch_course_activity(ReportWindow.trailing(NOW, 7))

    assert [row["course_id"] for row in rows] == [5, 10]

    biology, algebra = rows
    assert biology["activity_events"] == 1
    assert biology["active_students"] == 1
    assert biology["total_enrollments"] == 0

    assert algebra["course_title"] == "Algebra I"
    assert algebra["teacher_email"] == "ana@school.edu"
    assert algebra["total_enrollments"] == 3
    assert algebra["new_enrollments"] == 1
    assert algebra["completions"] == 1
    assert algebra["active_students"] == 2
    assert algebra["activity_events"] == 3


def test_service_builds_reports_for_the_trailing_window(engine):
    service = WeeklyReportService(CourseActivityRepository(engine))

    result = service.generate_weekly_reports(now=NOW)

    assert result.ok
    assert [report.course_id for report in result.reports] == [5, 10]
    algebra = result.reports[1]
    assert algebra.teacher_name == "Ana Souza"
    assert algebra.teacher_email == "ana@school.edu"
    assert algebra.period_start == datetime(2026, 10, 11, 8, 0, tzinfo=timezone.utc)
    assert algebra.period_end == NOW


def test_service_returns_no_reports_when_nothing_happened(engine):
    result = WeeklyReportService(CourseActivityRepository(engine)).generate_weekly_reports(
        now=datetime(2025, 1, 5, 8, 0, tzinfo=timezone.utc)
    )
    assert result.ok
    assert result.reports == []


def test_service_respects_window_days():
    repository = FakeRepository()
    WeeklyReportService(repository, window_days=14).generate_weekly_reports(now=NOW)
    assert repository.windows[0].start == datetime(2026, 10, 4, 8, 0, tzinfo=timezone.utc)


def test_service_classifies_connectivity_errors():
    error = OperationalError("SELECT 1", {}, Exception("connection refused"))
    result = WeeklyReportService(FakeRepository(error=error)).generate_weekly_reports(now=NOW)

    assert not result.ok
    assert result.reports == []
    assert result.error.kind is ErrorKind.CONNECTIVITY
    assert result.error.cause is error


def test_service_classifies_query_errors():
    error = ProgrammingError("SELECT nope", {}, Exception("relation does not exist"))
    result = WeeklyReportService(FakeRepository(error=error)).generate_weekly_reports(now=NOW)

    assert result.error.kind is ErrorKind.QUERY


def test_malformed_row_fails_the_whole_query():
    rows = [
        {"course_id": 1, "course_title": "Algebra", "teacher_email": "a@school.edu", "activity_events": 2},
        {"course_id": 2, "course_title": "Broken", "teacher_email": "b@school.edu", "activity_events": -1},
    ]
    result = WeeklyReportService(FakeRepository(rows=rows)).generate_weekly_reports(now=NOW)

    assert result.reports == []
    assert result.error.kind is ErrorKind.QUERY


def test_service_rejects_non_positive_window():
    with pytest.raises(ValueError):
        WeeklyReportService(FakeRepository(), window_days=0)


def test_run_lock_is_a_no_op_on_sqlite(engine):
    with AdvisoryRunLock(engine).acquire() as acquired:
        assert acquired


def _postgres_engine(lock_granted: bool):
    engine = MagicMock()
    engine.dialect.name = "postgresql"
    conn = engine.connect.return_value.execution_options.return_value.__enter__.return_value
    conn.execute.return_value.scalar.return_value = lock_granted
    return engine, conn


def test_run_lock_releases_advisory_lock_after_run():
    engine, conn = _postgres_engine(lock_granted=True)

    with AdvisoryRunLock(engine, key=42).acquire() as acquired:
        assert acquired

    statements = [str(call.args[0]) for call in conn.execute.call_args_list]
    assert statements == ["SELECT pg_try_advisory_lock(:key)", "SELECT pg_advisory_unlock(:key)"]
    assert conn.execute.call_args_list[0].args[1] == {"key": 42}


def test_run_lock_reports_contention_without_unlocking():
    engine, conn = _postgres_engine(lock_granted=False)

    with AdvisoryRunLock(engine).acquire() as acquired:
        assert not acquired

    assert conn.execute.call_count == 1


def test_run_lock_session_runs_in_autocommit():
    engine, _ = _postgres_engine(lock_granted=True)

    with AdvisoryRunLock(engine).acquire():
        pass

    engine.connect.return_value.execution_options.assert_called_once_with(isolation_level="AUTOCOMMIT")


def test_run_lock_release_failure_does_not_mask_the_run(caplog):
    engine, conn = _postgres_engine(lock_granted=True)
    granted = conn.execute.return_value
    conn.execute.side_effect = [granted, OperationalError("SELECT pg_advisory_unlock", {}, Exception("server closed"))]

    with AdvisoryRunLock(engine, key=42).acquire() as acquired:
        assert acquired

    assert any("advisory lock 42" in record.getMessage() for record in caplog.records)
