"""Core data models for buffered evidence and persisted results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from hookpack.core.types import EVENT_TYPES, RESULT_STATUSES

RESULT_FORMAT_VERSION = "1.0"


@dataclass(frozen=True, slots=True)
class RuntimeMessage:
    """A tagged message travelling on the structured event channel."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.type not in EVENT_TYPES:
            raise ValueError(f"Unsupported event type: {self.type}")

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": dict(self.data)}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RuntimeMessage":
        return cls(type=raw["type"], data=dict(raw.get("data") or {}))


@dataclass(frozen=True, slots=True)
class BufferedEvent:
    """A runtime message held back until it has a container to live in."""

    message: RuntimeMessage
    captured_at: int

    @property
    def kind(self) -> str:
        return self.message.type

    @property
    def payload(self) -> dict[str, Any]:
        return self.message.data


@dataclass(slots=True)
class StatusDetails:
    message: str | None = None
    trace: str | None = None

    def is_empty(self) -> bool:
        return self.message is None and self.trace is None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.message is not None:
            payload["message"] = self.message
        if self.trace is not None:
            payload["trace"] = self.trace
        return payload

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "StatusDetails":
        raw = raw or {}
        return cls(message=raw.get("message"), trace=raw.get("trace"))


@dataclass(slots=True)
class ResultAttachment:
    """Reference to an attachment file stored next to its result."""

    name: str
    source: str
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "source": self.source, "type": self.type}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ResultAttachment":
        return cls(name=raw["name"], source=raw["source"], type=raw["type"])


@dataclass(slots=True)
class ResultStep:
    """A step (or fixture) node in a result's step tree."""

    name: str
    status: str = "passed"
    start: int = 0
    stop: int = 0
    steps: list["ResultStep"] = field(default_factory=list)
    attachments: list[ResultAttachment] = field(default_factory=list)
    status_details: StatusDetails | None = None

    def __post_init__(self) -> None:
        if self.status not in RESULT_STATUSES:
            raise ValueError(f"Unsupported step status: {self.status}")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "status": self.status,
            "start": self.start,
            "stop": self.stop,
            "steps": [step.to_dict() for step in self.steps],
            "attachments": [attachment.to_dict() for attachment in self.attachments],
        }
        if self.status_details is not None and not self.status_details.is_empty():
            payload["status_details"] = self.status_details.to_dict()
        return payload

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ResultStep":
        details = raw.get("status_details")
        return cls(
            name=raw["name"],
            status=raw.get("status", "passed"),
            start=int(raw.get("start", 0)),
            stop=int(raw.get("stop", 0)),
            steps=[cls.from_dict(step) for step in raw.get("steps", [])],
            attachments=[ResultAttachment.from_dict(item) for item in raw.get("attachments", [])],
            status_details=StatusDetails.from_dict(details) if details is not None else None,
        )


@dataclass(slots=True)
class ResultRecord:
    """A finished result container, either reported normally or synthesized."""

    id: str
    name: str
    status: str
    start: int
    stop: int
    history_id: str | None = None
    stage: str = "finished"
    status_details: StatusDetails = field(default_factory=StatusDetails)
    labels: dict[str, str] = field(default_factory=dict)
    steps: list[ResultStep] = field(default_factory=list)
    attachments: list[ResultAttachment] = field(default_factory=list)
    fixtures: list[ResultStep] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.status not in RESULT_STATUSES:
            raise ValueError(f"Unsupported result status: {self.status}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "format_version": RESULT_FORMAT_VERSION,
            "id": self.id,
            "history_id": self.history_id or self.id,
            "name": self.name,
            "status": self.status,
            "stage": self.stage,
            "start": self.start,
            "stop": self.stop,
            "status_details": self.status_details.to_dict(),
            "labels": [{"name": key, "value": value} for key, value in self.labels.items()],
            "steps": [step.to_dict() for step in self.steps],
            "attachments": [attachment.to_dict() for attachment in self.attachments],
            "fixtures": [fixture.to_dict() for fixture in self.fixtures],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ResultRecord":
        labels: dict[str, str] = {}
        for label in raw.get("labels", []):
            labels[str(label["name"])] = str(label["value"])
        return cls(
            id=raw["id"],
            name=raw["name"],
            status=raw["status"],
            start=int(raw["start"]),
            stop=int(raw["stop"]),
            history_id=raw.get("history_id"),
            stage=raw.get("stage", "finished"),
            status_details=StatusDetails.from_dict(raw.get("status_details")),
            labels=labels,
            steps=[ResultStep.from_dict(step) for step in raw.get("steps", [])],
            attachments=[ResultAttachment.from_dict(item) for item in raw.get("attachments", [])],
            fixtures=[ResultStep.from_dict(item) for item in raw.get("fixtures", [])],
        )


def iter_steps(steps: list[ResultStep]) -> list[ResultStep]:
    """Flatten a step forest in depth-first order."""
    flat: list[ResultStep] = []
    for step in steps:
        flat.append(step)
        flat.extend(iter_steps(step.steps))
    return flat
