#!/usr/bin/env python3
"""
Weekly course report job.

Queries the course database once, then builds and enqueues one notification
envelope per course report, strictly in order.

Usage:
    python -m src.job.weekly_report_job
    python -m src.job.weekly_report_job --trigger-context "backfill"

Environment variables: see ``JobConfig.from_env``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import ExitStack, contextmanager
from datetime import datetime
from typing import Callable, Iterator, List, Optional, Protocol

from sqlalchemy import create_engine
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from ..common.results import (
    ConfigurationError,
    ErrorKind,
    JobResult,
    JobStatus,
    PublishResult,
    ReportQueryResult,
    StepError,
)
from ..delivery.envelope import NotificationEnvelope, build_envelope
from ..delivery.queue_publisher import QueuePublisher
from ..reporting.models import utc_now
from ..reporting.report_service import WeeklyReportService
from ..reporting.repository import CourseActivityRepository
from ..reporting.run_lock import AdvisoryRunLock, NullRunLock
from .config import JobConfig, PublishFailurePolicy

LOGGER = logging.getLogger(__name__)

# Sunday 08:00 in the host scheduler's timezone (sec min hour day month weekday).
WEEKLY_SCHEDULE = "0 0 8 * * 0"
LOG_FORMAT = "%(levelname)s | %(name)s | %(message)s"


class ReportSource(Protocol):
    def generate_weekly_reports(self, now: datetime) -> ReportQueryResult:
        ...


class EnvelopePublisher(Protocol):
    def publish(self, envelope: NotificationEnvelope) -> PublishResult:
        ...


class WeeklyReportJob:
    """Query -> envelope -> publish, one report at a time."""

    def __init__(
        self,
        report_service: ReportSource,
        publisher: EnvelopePublisher,
        *,
        failure_policy: PublishFailurePolicy = PublishFailurePolicy.ABORT,
        run_lock: AdvisoryRunLock | NullRunLock | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.report_service = report_service
        self.publisher = publisher
        self.failure_policy = failure_policy
        self.run_lock = run_lock or NullRunLock()
        self.clock = clock

    def run(self, trigger_context: str = "manual") -> JobResult:
        LOGGER.info("Timer triggered: %s", trigger_context)
        with ExitStack() as stack:
            try:
                acquired = stack.enter_context(self.run_lock.acquire())
            except (OperationalError, InterfaceError) as exc:
                return self._lock_failed(StepError.from_exception(ErrorKind.CONNECTIVITY, exc))
            except SQLAlchemyError as exc:
                return self._lock_failed(StepError.from_exception(ErrorKind.QUERY, exc))
            if not acquired:
                LOGGER.warning("Another weekly report run holds the lock; skipping this invocation.")
                return JobResult(status=JobStatus.SKIPPED)
            return self._run_locked()

    @staticmethod
    def _lock_failed(error: StepError) -> JobResult:
        LOGGER.error("Could not acquire the weekly report run lock: %s", error)
        return JobResult(status=JobStatus.FAILED, error=error)

    def _run_locked(self) -> JobResult:
        query = self.report_service.generate_weekly_reports(now=self.clock())
        if not query.ok:
            LOGGER.error("Weekly report query failed: %s", query.error)
            return JobResult(status=JobStatus.FAILED, error=query.error)

        result = JobResult(status=JobStatus.COMPLETED)
        for report in query.reports:
            outcome = self.publisher.publish(build_envelope(report, clock=self.clock))
            if outcome.ok:
                result.sent.append(outcome)
                LOGGER.info("Sent weekly report for course: %s", report.course_title)
                continue

            result.failures.append(outcome)
            LOGGER.error(
                "Failed to send weekly report for course %s (%s): %s",
                report.course_id,
                report.course_title,
                outcome.error,
            )
            if self.failure_policy is PublishFailurePolicy.ABORT:
                result.status = JobStatus.FAILED
                result.error = outcome.error
                return result

        if result.failures:
            result.status = JobStatus.PARTIAL
            result.error = result.failures[0].error
            LOGGER.warning("%s of %s weekly reports failed to send.", len(result.failures), len(query.reports))
        LOGGER.info("DONE.")
        return result


@contextmanager
def open_job(config: JobConfig) -> Iterator[WeeklyReportJob]:
    """Wire the job from ``config`` and release the engine and queue client afterwards."""
    try:
        publisher = QueuePublisher.from_config(config.queue)
    except ValueError as exc:
        raise ConfigurationError(f"QUEUE_CONNECTION_STRING was rejected by the queue client: {exc}") from exc
    engine = create_engine(config.database.sqlalchemy_url(), pool_pre_ping=True)
    run_lock = AdvisoryRunLock(engine, config.run_lock_key) if config.run_lock_enabled else NullRunLock()
    service = WeeklyReportService(CourseActivityRepository(engine), window_days=config.window_days)
    try:
        yield WeeklyReportJob(
            service,
            publisher,
            failure_policy=config.failure_policy,
            run_lock=run_lock,
        )
    finally:
        publisher.close()
        engine.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the job once outside the scheduler.

    Returns:
        Exit code (0 for completed or skipped runs, 1 otherwise)
    """
    parser = argparse.ArgumentParser(description="Publish weekly course reports to the notification queue")
    parser.add_argument(
        "--trigger-context",
        type=str,
        default="manual",
        help="Label echoed in the start log line (default: manual)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    try:
        config = JobConfig.from_env()
        logging.getLogger().setLevel(config.log_level)
        with open_job(config) as job:
            result = job.run(trigger_context=args.trigger_context)
    except ConfigurationError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1

    return 0 if result.status in (JobStatus.COMPLETED, JobStatus.SKIPPED) else 1


if __name__ == "__main__":
    sys.exit(main())
