"""Queue settings for report delivery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

from ..common.env import require_env
from ..common.results import ConfigurationError


def _connection_settings(connection_string: str) -> Dict[str, str]:
    settings: Dict[str, str] = {}
    for segment in connection_string.split(";"):
        if not segment.strip():
            continue
        key, sep, value = segment.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError("QUEUE_CONNECTION_STRING is malformed: expected key=value pairs separated by ';'")
        settings[key.strip().lower()] = value.strip()
    return settings


def validate_connection_string(connection_string: str) -> str:
    """Reject connection strings the storage client cannot build a queue endpoint from."""
    settings = _connection_settings(connection_string)
    if settings.get("usedevelopmentstorage", "").lower() == "true":
        return connection_string
    if "queueendpoint" in settings:
        return connection_string
    has_credential = "accountkey" in settings or "sharedaccesssignature" in settings
    if "accountname" in settings and has_credential:
        return connection_string
    raise ConfigurationError(
        "QUEUE_CONNECTION_STRING must name AccountName with AccountKey or SharedAccessSignature, or a QueueEndpoint"
    )


@dataclass(slots=True, frozen=True)
class QueueConfig:
    """Storage queue that receives the weekly report envelopes."""

    connection_string: str = field(repr=False)
    queue_name: str

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "QueueConfig":
        return cls(
            connection_string=validate_connection_string(require_env("QUEUE_CONNECTION_STRING", environ)),
            queue_name=require_env("QUEUE_NAME", environ),
        )
