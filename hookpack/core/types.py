"""Type definitions for hookpack core models."""

from typing import Literal

EventType = Literal[
    "step.start",
    "step.stop",
    "attachment.content",
    "metadata",
    "container.start",
    "container.end",
]

EVENT_TYPES: tuple[str, ...] = (
    "step.start",
    "step.stop",
    "attachment.content",
    "metadata",
    "container.start",
    "container.end",
)

ResultStatus = Literal["passed", "broken", "failed", "skipped"]

RESULT_STATUSES: tuple[str, ...] = ("passed", "broken", "failed", "skipped")

ContainerKind = Literal["result", "fixture"]

CONTAINER_KINDS: tuple[str, ...] = ("result", "fixture")
