"""Shared configuration helpers and step result types."""

from .results import (
    ConfigurationError,
    ErrorKind,
    JobResult,
    JobStatus,
    PublishResult,
    ReportQueryResult,
    StepError,
    WeeklyReportJobError,
)

__all__ = [
    "ConfigurationError",
    "ErrorKind",
    "JobResult",
    "JobStatus",
    "PublishResult",
    "ReportQueryResult",
    "StepError",
    "WeeklyReportJobError",
]
