"""Result values returned by each pipeline step.

Steps report failures as data instead of raising, so the job can decide
whether to abort or continue. Only :meth:`JobResult.raise_for_status` turns a
failed run back into an exception for the hosting trigger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from ..reporting.models import WeeklyCourseReport


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    CONNECTIVITY = "connectivity"
    QUERY = "query"
    SERIALIZATION = "serialization"
    PUBLISH = "publish"


class JobStatus(str, Enum):
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


class ConfigurationError(RuntimeError):
    """Raised when required environment configuration is missing or malformed."""

    kind = ErrorKind.CONFIGURATION


@dataclass(slots=True, frozen=True)
class StepError:
    """A classified failure of one pipeline step."""

    kind: ErrorKind
    message: str
    cause: Optional[BaseException] = None

    @classmethod
    def from_exception(cls, kind: ErrorKind, exc: BaseException) -> "StepError":
        return cls(kind=kind, message=f"{type(exc).__name__}: {exc}", cause=exc)

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class WeeklyReportJobError(RuntimeError):
    """Raised at the host seam when a run ends in ``JobStatus.FAILED``."""

    def __init__(self, error: StepError) -> None:
        super().__init__(str(error))
        self.error = error
        self.kind = error.kind


@dataclass(slots=True)
class ReportQueryResult:
    """Outcome of computing the weekly reports; all or nothing."""

    reports: List["WeeklyCourseReport"] = field(default_factory=list)
    error: Optional[StepError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True, frozen=True)
class PublishResult:
    """Outcome of enqueueing one envelope."""

    course_id: int
    message_id: Optional[str] = None
    error: Optional[StepError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class JobResult:
    """Summary of one job invocation."""

    status: JobStatus
    sent: List[PublishResult] = field(default_factory=list)
    failures: List[PublishResult] = field(default_factory=list)
    error: Optional[StepError] = None

    @property
    def sent_count(self) -> int:
        return len(self.sent)

    def raise_for_status(self) -> None:
        if self.status is not JobStatus.FAILED:
            return
        error = self.error or StepError(ErrorKind.PUBLISH, "weekly report run failed")
        raise WeeklyReportJobError(error) from error.cause
