"""Builds result records directly from buffered events.

Used by the process-exit fallback, where no further events can be emitted,
and shared with the filesystem sink for incremental step trees.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
import uuid

from hookpack.core.models import (
    BufferedEvent,
    ResultAttachment,
    ResultRecord,
    ResultStep,
    StatusDetails,
)
from hookpack.core.timing import buffered_time_bounds
from hookpack.replay.exceptions import ReplayError, ReplayPersistenceError
from hookpack.results.exceptions import AttachmentEncodingError
from hookpack.results.io import ResultWriter, attachment_source_name, decode_attachment_content

UNCLOSED_STEP_STATUS = "broken"


class StepTreeBuilder:
    """Replays step start/stop pairs onto an explicit open-step stack."""

    def __init__(self) -> None:
        self.roots: list[ResultStep] = []
        self._stack: list[ResultStep] = []
        self.last_timestamp: int | None = None

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def current(self) -> ResultStep | None:
        return self._stack[-1] if self._stack else None

    def _touch(self, at: int) -> None:
        if self.last_timestamp is None or at > self.last_timestamp:
            self.last_timestamp = at

    def start(self, name: str, at: int) -> ResultStep:
        self._touch(at)
        step = ResultStep(name=name, status="passed", start=at, stop=at)
        if self._stack:
            self._stack[-1].steps.append(step)
        else:
            self.roots.append(step)
        self._stack.append(step)
        return step

    def stop(
        self,
        at: int,
        *,
        status: str = "passed",
        details: StatusDetails | None = None,
    ) -> ResultStep | None:
        self._touch(at)
        if not self._stack:
            return None
        step = self._stack.pop()
        step.stop = max(at, step.start)
        step.status = status
        if details is not None and not details.is_empty():
            step.status_details = details
        return step

    def attach(self, attachment: ResultAttachment, at: int) -> None:
        self._touch(at)
        if self._stack:
            self._stack[-1].attachments.append(attachment)
            return
        self.roots.append(
            ResultStep(
                name=attachment.name,
                status="passed",
                start=at,
                stop=at,
                attachments=[attachment],
            )
        )

    def close_all(self, at: int | None = None, *, status: str = UNCLOSED_STEP_STATUS) -> int:
        """Close every open step at ``at`` (default: last seen timestamp)."""
        closed = 0
        close_at = at if at is not None else self.last_timestamp
        while self._stack:
            step = self._stack.pop()
            step.stop = max(close_at if close_at is not None else step.start, step.start)
            step.status = status
            closed += 1
        return closed


class AttachmentSequence:
    """Writes attachment files with a per-record, monotonically increasing index."""

    def __init__(self, record_id: str, writer: ResultWriter | None) -> None:
        self.record_id = record_id
        self.writer = writer
        self.next_index = 1
        self.dropped = 0
        self.written: list[str] = []

    def store(self, data: Mapping[str, Any], *, default_name: str = "Attachment") -> ResultAttachment | None:
        content_type = str(data.get("content_type") or "application/octet-stream")
        try:
            content = decode_attachment_content(data.get("content"), data.get("encoding", "base64"))
        except AttachmentEncodingError:
            self.dropped += 1
            return None

        source = attachment_source_name(self.record_id, self.next_index, content_type)
        self.next_index += 1
        if self.writer is not None:
            self.writer.write_attachment(source, content)
            self.written.append(source)
        return ResultAttachment(
            name=str(data.get("name") or default_name),
            source=source,
            type=content_type,
        )

    def discard(self) -> None:
        """Remove every attachment file this sequence wrote."""
        if self.writer is None:
            return
        for source in self.written:
            self.writer.remove_attachment(source)
        self.written = []


@dataclass(slots=True)
class StepForest:
    steps: list[ResultStep] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    dropped_attachments: int = 0


def labels_from_metadata(data: Mapping[str, Any]) -> dict[str, str]:
    """Accept ``{"labels": [{"name", "value"}]}`` or ``{"labels": {name: value}}``."""
    raw = data.get("labels")
    labels: dict[str, str] = {}
    if isinstance(raw, Mapping):
        for key, value in raw.items():
            labels[str(key)] = str(value)
    elif isinstance(raw, list):
        for item in raw:
            if isinstance(item, Mapping) and "name" in item and "value" in item:
                labels[str(item["name"])] = str(item["value"])
    return labels


def status_from_payload(data: Mapping[str, Any], default: str = "passed") -> str:
    status = data.get("status")
    if status in {"passed", "broken", "failed", "skipped"}:
        return str(status)
    return default


def build_step_forest(
    events: Iterable[BufferedEvent],
    *,
    attachments: AttachmentSequence,
) -> StepForest:
    """Rebuild the nested step forest implied by a flat buffered event list."""
    builder = StepTreeBuilder()
    forest = StepForest()

    for event in events:
        data = event.payload
        if event.kind == "step.start":
            at = _timestamp(data.get("start"), event.captured_at)
            builder.start(str(data.get("name") or "Step"), at)
        elif event.kind == "step.stop":
            at = _timestamp(data.get("stop"), event.captured_at)
            details = data.get("status_details")
            builder.stop(
                at,
                status=status_from_payload(data),
                details=StatusDetails.from_dict(details) if isinstance(details, Mapping) else None,
            )
        elif event.kind == "attachment.content":
            attachment = attachments.store(data)
            if attachment is not None:
                builder.attach(attachment, event.captured_at)
        elif event.kind == "metadata":
            forest.labels.update(labels_from_metadata(data))
        elif event.kind in {"container.start", "container.end"}:
            # The record being built is the container; nested markers carry nothing.
            continue
        else:
            raise ReplayError(f"Unsupported event type: {event.kind}")

    builder.close_all()
    forest.steps = builder.roots
    forest.dropped_attachments = attachments.dropped
    return forest


def materialize_result(
    events: list[BufferedEvent],
    *,
    name: str,
    status: str,
    status_details: StatusDetails,
    writer: ResultWriter,
    labels: Mapping[str, str] | None = None,
    history_id: str | None = None,
    record_id: str | None = None,
    console_text: str = "",
    console_attachment_name: str = "Console Output",
    now: int | None = None,
) -> ResultRecord:
    """Build a self-contained record from buffered events and write it synchronously."""
    resolved_id = record_id or str(uuid.uuid4())
    bounds = buffered_time_bounds(events, now=now)
    sequence = AttachmentSequence(resolved_id, writer)
    forest = build_step_forest(events, attachments=sequence)

    record_labels = dict(forest.labels)
    record_labels.update(labels or {})

    record = ResultRecord(
        id=resolved_id,
        history_id=history_id,
        name=name,
        status=status,
        start=bounds.start,
        stop=bounds.stop,
        status_details=status_details,
        labels=record_labels,
        steps=forest.steps,
    )

    if console_text.strip():
        attachment = sequence.store(
            {
                "name": console_attachment_name,
                "content": console_text,
                "encoding": "utf-8",
                "content_type": "text/plain",
            }
        )
        if attachment is not None:
            record.attachments.append(attachment)

    try:
        writer.write_result(record)
    except OSError as error:
        raise ReplayPersistenceError(f"Could not write result {resolved_id}: {error}") from error
    return record


def _timestamp(value: Any, fallback: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    return int(value)
