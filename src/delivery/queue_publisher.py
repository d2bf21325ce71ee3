"""Publishes encoded envelopes to the storage queue."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from azure.core.exceptions import AzureError
from azure.storage.queue import QueueClient

from ..common.results import ErrorKind, PublishResult, StepError
from .config import QueueConfig
from .envelope import NotificationEnvelope, encode_envelope

LOGGER = logging.getLogger(__name__)


class MessageSender(Protocol):
    def send_message(self, content: Any, **kwargs: Any) -> Any:
        ...


class QueuePublisher:
    """Sends one queue message per envelope. Failures are returned, never retried."""

    def __init__(self, queue_client: MessageSender) -> None:
        self.queue_client = queue_client

    @classmethod
    def from_config(cls, config: QueueConfig) -> "QueuePublisher":
        client = QueueClient.from_connection_string(config.connection_string, config.queue_name)
        return cls(client)

    def publish(self, envelope: NotificationEnvelope) -> PublishResult:
        course_id = envelope.payload.course_id
        try:
            body = encode_envelope(envelope)
        except (ValueError, TypeError) as exc:
            return PublishResult(course_id=course_id, error=StepError.from_exception(ErrorKind.SERIALIZATION, exc))

        try:
            receipt = self.queue_client.send_message(body)
        except AzureError as exc:
            return PublishResult(course_id=course_id, error=StepError.from_exception(ErrorKind.PUBLISH, exc))

        message_id = getattr(receipt, "id", None)
        LOGGER.debug("Queued message %s for course %s (%s bytes).", message_id, course_id, len(body))
        return PublishResult(course_id=course_id, message_id=message_id)

    def close(self) -> None:
        close = getattr(self.queue_client, "close", None)
        if callable(close):
            close()
