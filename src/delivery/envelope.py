"""Notification envelope wrapped around every queued report."""

from __future__ import annotations

import base64
import json
from datetime import datetime
from typing import Any, Callable, Dict, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..reporting.models import WeeklyCourseReport, utc_now

WEEKLY_REPORT_TYPE = "WEEKLY_REPORT"


class NotificationEnvelope(BaseModel):
    """Generic queue message: type tag, recipient, payload and generation time."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    type: Literal["WEEKLY_REPORT"] = WEEKLY_REPORT_TYPE
    recipient_email: str
    payload: WeeklyCourseReport
    timestamp: datetime


def build_envelope(
    report: WeeklyCourseReport,
    clock: Callable[[], datetime] = utc_now,
) -> NotificationEnvelope:
    """Wrap ``report`` for its teacher; the timestamp is taken now, not at job start."""
    return NotificationEnvelope(
        recipient_email=report.teacher_email,
        payload=report,
        timestamp=clock(),
    )


def encode_envelope(envelope: NotificationEnvelope) -> str:
    """JSON (camelCase, ISO-8601 datetimes) -> UTF-8 -> base64 text."""
    message_json = envelope.model_dump_json(by_alias=True)
    return base64.b64encode(message_json.encode("utf-8")).decode("ascii")


def decode_message(body: str) -> Dict[str, Any]:
    """Inverse of :func:`encode_envelope` for queue consumers."""
    return json.loads(base64.b64decode(body).decode("utf-8"))
