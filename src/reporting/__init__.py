"""
Weekly course report query and assembly.
"""

from .config import DatabaseConfig
from .models import ReportWindow, WeeklyCourseReport
from .report_service import WeeklyReportService

__all__ = ["DatabaseConfig", "ReportWindow", "WeeklyCourseReport", "WeeklyReportService"]
