"""Reference sink that persists results as JSON files in a directory."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
import uuid

from hookpack.capture.lifecycle import hook_error, hook_title, parse_hook_title
from hookpack.capture.monitor import status_details_from_error
from hookpack.core.models import ResultRecord, ResultStep, RuntimeMessage, StatusDetails
from hookpack.core.timing import now_ms
from hookpack.replay.materializer import (
    AttachmentSequence,
    StepTreeBuilder,
    labels_from_metadata,
    status_from_payload,
)
from hookpack.results.io import ResultWriter
from hookpack.sink.base import ReportingSink


@dataclass(slots=True)
class _OpenContainer:
    kind: str
    id: str
    name: str
    start: int
    attachments: AttachmentSequence
    handle: Any = None
    builder: StepTreeBuilder = field(default_factory=StepTreeBuilder)
    labels: dict[str, str] = field(default_factory=dict)
    fixtures: list[ResultStep] = field(default_factory=list)


class FileSystemSink(ReportingSink):
    """Records results, fixtures, steps and attachments under ``output_dir``.

    Fixtures that finish while no result is open are attached to the next
    result that starts. After-all fixtures are appended to the most recently
    written result, which is rewritten in place.
    """

    name = "filesystem"

    def __init__(self, output_dir: str | Path, *, clock: Callable[[], int] = now_ms) -> None:
        self.writer = ResultWriter(output_dir)
        self.written: list[ResultRecord] = []
        self.dropped_messages = 0
        self._clock = clock
        self._stack: list[_OpenContainer] = []
        self._pending_fixtures: list[ResultStep] = []
        self._suites: list[str] = []

    @property
    def output_dir(self) -> Path:
        return self.writer.output_dir

    @property
    def pending_fixtures(self) -> tuple[ResultStep, ...]:
        return tuple(self._pending_fixtures)

    def open_containers(self) -> tuple[str, ...]:
        return tuple(container.name for container in self._stack)

    def handle(self, message: RuntimeMessage) -> None:
        data = message.data
        if message.type == "container.start":
            kind = "fixture" if data.get("kind") == "fixture" else "result"
            container = self._open(
                kind,
                str(data.get("name") or "Unnamed"),
                start=_int_or(data.get("start"), self._clock()),
            )
            container.labels.update(labels_from_metadata(data))
        elif message.type == "container.end":
            if not self._stack:
                self.dropped_messages += 1
                return
            details = data.get("status_details")
            self._close(
                self._stack[-1],
                status=status_from_payload(data),
                details=StatusDetails.from_dict(details) if isinstance(details, Mapping) else None,
                stop=_int_or(data.get("stop"), self._clock()),
            )
        elif not self._stack:
            self.dropped_messages += 1
        elif message.type == "step.start":
            self._stack[-1].builder.start(
                str(data.get("name") or "Step"),
                _int_or(data.get("start"), self._clock()),
            )
        elif message.type == "step.stop":
            details = data.get("status_details")
            self._stack[-1].builder.stop(
                _int_or(data.get("stop"), self._clock()),
                status=status_from_payload(data),
                details=StatusDetails.from_dict(details) if isinstance(details, Mapping) else None,
            )
        elif message.type == "attachment.content":
            container = self._stack[-1]
            attachment = container.attachments.store(data)
            if attachment is not None:
                container.builder.attach(attachment, self._clock())
        elif message.type == "metadata":
            self._stack[-1].labels.update(labels_from_metadata(data))
        else:
            raise ValueError(f"Unsupported event type: {message.type}")

    def on_suite_start(self, suite: Any) -> None:
        self._suites.append(_title(suite) or "(root)")

    def on_suite_end(self, suite: Any) -> None:
        if self._suites:
            self._suites.pop()

    def on_hook_start(self, hook: Any) -> None:
        scope = parse_hook_title(hook_title(hook))
        if not scope.is_setup:
            return
        self._open("fixture", hook_title(hook) or scope.hook_type, start=self._clock(), handle=hook)

    def on_hook_end(self, hook: Any) -> None:
        container = self._find(hook)
        if container is None:
            return
        error = hook_error(hook)
        self._close(
            container,
            status="passed" if not error else "broken",
            details=status_details_from_error(error) if error else None,
            stop=self._clock(),
        )

    def discard_hook(self, hook: Any) -> None:
        container = self._find(hook)
        if container is not None:
            self._stack.remove(container)
            container.attachments.discard()

    def on_test_start(self, test: Any) -> None:
        container = self._open("result", _title(test) or "Unnamed", start=self._clock(), handle=test)
        if self._suites:
            container.labels["parentSuite"] = self._suites[0]
            container.labels["suite"] = self._suites[-1]

    def on_test_end(self, test: Any) -> None:
        container = self._find(test)
        if container is None:
            return
        status, details = _test_outcome(test)
        self._close(container, status=status, details=details, stop=self._clock())

    async def on_runner_end(self) -> None:
        # Fixtures still pending belong to the last result of the run.
        if self._pending_fixtures and self.written:
            last = self.written[-1]
            last.fixtures.extend(self._pending_fixtures)
            self._pending_fixtures = []
            self.writer.write_result(last)

    def _open(self, kind: str, name: str, *, start: int, handle: Any = None) -> _OpenContainer:
        record_id = str(uuid.uuid4())
        container = _OpenContainer(
            kind=kind,
            id=record_id,
            name=name,
            start=start,
            attachments=AttachmentSequence(record_id, self.writer),
            handle=handle,
        )
        if kind == "result":
            container.fixtures.extend(self._pending_fixtures)
            self._pending_fixtures = []
        self._stack.append(container)
        return container

    def _find(self, handle: Any) -> _OpenContainer | None:
        for container in reversed(self._stack):
            if container.handle is handle:
                return container
        return None

    def _close(
        self,
        container: _OpenContainer,
        *,
        status: str,
        details: StatusDetails | None,
        stop: int,
    ) -> None:
        self._stack.remove(container)
        container.builder.close_all(stop)
        stop = max(stop, container.start)

        if container.kind == "fixture":
            fixture = ResultStep(
                name=container.name,
                status=status,
                start=container.start,
                stop=stop,
                steps=container.builder.roots,
                attachments=[],
                status_details=details,
            )
            self._place_fixture(fixture, container)
            return

        record = ResultRecord(
            id=container.id,
            name=container.name,
            status=status,
            start=container.start,
            stop=stop,
            status_details=details or StatusDetails(),
            labels=container.labels,
            steps=container.builder.roots,
            fixtures=container.fixtures,
        )
        self.writer.write_result(record)
        self.written.append(record)

    def _place_fixture(self, fixture: ResultStep, container: _OpenContainer) -> None:
        parent = next(
            (item for item in reversed(self._stack) if item.kind == "result"),
            None,
        )
        if parent is not None:
            parent.fixtures.append(fixture)
            return
        scope = parse_hook_title(container.name)
        if scope.kind == "after_all" and self.written:
            last = self.written[-1]
            last.fixtures.append(fixture)
            self.writer.write_result(last)
            return
        self._pending_fixtures.append(fixture)


def _title(handle: Any) -> str:
    if isinstance(handle, Mapping):
        value = handle.get("title") or handle.get("name")
    else:
        value = getattr(handle, "title", None) or getattr(handle, "name", None)
    return value if isinstance(value, str) else ""


_STATE_TO_STATUS = {
    "pass": "passed",
    "passed": "passed",
    "fail": "failed",
    "failed": "failed",
    "broken": "broken",
    "skip": "skipped",
    "skipped": "skipped",
    "pending": "skipped",
}


def _test_outcome(test: Any) -> tuple[str, StatusDetails | None]:
    if isinstance(test, Mapping):
        state = test.get("state") or test.get("status")
        error = test.get("error")
    else:
        state = getattr(test, "state", None) or getattr(test, "status", None)
        error = getattr(test, "error", None)

    if error:
        details = status_details_from_error(error)
        if isinstance(error, BaseException) and not isinstance(error, AssertionError):
            return "broken", details
        return "failed", details
    return _STATE_TO_STATUS.get(str(state or "passed").lower(), "passed"), None


def _int_or(value: Any, fallback: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    return int(value)
