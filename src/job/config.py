"""Configuration for the weekly report job, read once per process."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from ..common.env import env_bool, env_int, env_or_default
from ..common.results import ConfigurationError
from ..delivery.config import QueueConfig
from ..reporting.config import DatabaseConfig
from ..reporting.report_service import DEFAULT_WINDOW_DAYS
from ..reporting.run_lock import DEFAULT_LOCK_KEY


class PublishFailurePolicy(str, Enum):
    """What the job does after a message fails to publish."""

    ABORT = "abort"
    CONTINUE = "continue"

    @classmethod
    def parse(cls, value: str) -> "PublishFailurePolicy":
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            choices = ", ".join(policy.value for policy in cls)
            raise ConfigurationError(f"PUBLISH_FAILURE_POLICY must be one of: {choices}; got {value!r}") from exc


@dataclass(slots=True, frozen=True)
class JobConfig:
    """Everything the job needs, passed explicitly to the components."""

    database: DatabaseConfig
    queue: QueueConfig
    window_days: int = DEFAULT_WINDOW_DAYS
    failure_policy: PublishFailurePolicy = PublishFailurePolicy.ABORT
    run_lock_enabled: bool = True
    run_lock_key: int = DEFAULT_LOCK_KEY
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "JobConfig":
        window_days = env_int("REPORT_WINDOW_DAYS", DEFAULT_WINDOW_DAYS, environ)
        if window_days <= 0:
            raise ConfigurationError("REPORT_WINDOW_DAYS must be > 0")

        return cls(
            database=DatabaseConfig.from_env(environ),
            queue=QueueConfig.from_env(environ),
            window_days=window_days,
            failure_policy=PublishFailurePolicy.parse(env_or_default("PUBLISH_FAILURE_POLICY", "abort", environ)),
            run_lock_enabled=env_bool("REPORT_RUN_LOCK_ENABLED", True, environ),
            run_lock_key=env_int("REPORT_RUN_LOCK_KEY", DEFAULT_LOCK_KEY, environ),
            log_level=_parse_log_level(env_or_default("LOG_LEVEL", "INFO", environ)),
        )


LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _parse_log_level(value: str) -> str:
    level = value.strip().upper()
    if level not in LOG_LEVELS:
        raise ConfigurationError(f"LOG_LEVEL must be one of: {', '.join(LOG_LEVELS)}; got {value!r}")
    return level
