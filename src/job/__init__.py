"""Weekly report job: configuration and orchestration."""

from .config import JobConfig, PublishFailurePolicy
from .weekly_report_job import WEEKLY_SCHEDULE, WeeklyReportJob, open_job

__all__ = ["JobConfig", "PublishFailurePolicy", "WEEKLY_SCHEDULE", "WeeklyReportJob", "open_job"]
