"""Core models and timing primitives for hookpack."""

from hookpack.core.models import (
    RESULT_FORMAT_VERSION,
    BufferedEvent,
    ResultAttachment,
    ResultRecord,
    ResultStep,
    RuntimeMessage,
    StatusDetails,
    iter_steps,
)
from hookpack.core.timing import TimeBounds, buffered_time_bounds, now_ms
from hookpack.core.types import (
    CONTAINER_KINDS,
    EVENT_TYPES,
    RESULT_STATUSES,
    ContainerKind,
    EventType,
    ResultStatus,
)

__all__ = [
    "RESULT_FORMAT_VERSION",
    "BufferedEvent",
    "ResultAttachment",
    "ResultRecord",
    "ResultStep",
    "RuntimeMessage",
    "StatusDetails",
    "iter_steps",
    "TimeBounds",
    "buffered_time_bounds",
    "now_ms",
    "CONTAINER_KINDS",
    "EVENT_TYPES",
    "RESULT_STATUSES",
    "ContainerKind",
    "EventType",
    "ResultStatus",
]
