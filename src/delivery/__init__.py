"""Envelope building and queue publishing for weekly reports."""

from .config import QueueConfig
from .envelope import NotificationEnvelope, build_envelope, decode_message, encode_envelope
from .queue_publisher import QueuePublisher

__all__ = [
    "NotificationEnvelope",
    "QueueConfig",
    "QueuePublisher",
    "build_envelope",
    "decode_message",
    "encode_envelope",
]
