"""Buffer disposition on lifecycle transitions.

Each buffered unit of evidence leaves its buffer exactly once, through the
first of these paths that applies:

1. setup hook end: discard on success, synthetic result on failure;
2. suite start: global buffer replayed as a passing fixture for the next result;
3. runner end: global failure result through the normal emission path;
4. process exit: global failure record written directly via the sink writer.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal

from hookpack.capture.buffers import EventClassifier
from hookpack.capture.lifecycle import HookScope, LifecycleTracker
from hookpack.capture.monitor import ErrorMonitor, derive_failure_details, status_details_from_error
from hookpack.capture.streams import OutputStreamMultiplexer
from hookpack.core.models import BufferedEvent, ResultRecord, RuntimeMessage, StatusDetails
from hookpack.core.timing import buffered_time_bounds, now_ms
from hookpack.replay.materializer import materialize_result
from hookpack.results.io import encode_attachment_content
from hookpack.sink.base import ReportingSink

EngineState = Literal["idle", "capturing", "materializing"]
HookOutcome = Literal["ignored", "discarded", "materialized", "anomaly"]

GLOBAL_FIXTURE_NAME = "Global setup"
GLOBAL_FAILURE_NAME = "Global fixture failure"
GLOBAL_FAILURE_HISTORY_ID = "global-setup"
GLOBAL_FAILURE_LABELS = {"tag": "GlobalFixtureFailure", "parentSuite": "(global)"}
RUNNER_END_FAILURE_MESSAGE = "Global fixture failed before tests could run"
HOOK_CONSOLE_ATTACHMENT = "Hook Console Logs"
GLOBAL_CONSOLE_ATTACHMENT = "Console Output"

AnomalyReporter = Callable[..., None]


def synthetic_hook_name(scope: HookScope) -> str:
    return f"{scope.scope_name}: {scope.hook_type} hook failure"


def synthetic_hook_labels(scope: HookScope) -> dict[str, str]:
    tag = "BeforeAllFailure" if scope.kind == "before_all" else "AfterAllFailure"
    return {"tag": tag, "parentSuite": scope.scope_name}


class ReplayEngine:
    def __init__(
        self,
        tracker: LifecycleTracker,
        classifier: EventClassifier,
        sink: ReportingSink,
        *,
        console: OutputStreamMultiplexer | None = None,
        monitor: ErrorMonitor | None = None,
        report_anomaly: AnomalyReporter | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.tracker = tracker
        self.classifier = classifier
        self.sink = sink
        self.console = console
        self.monitor = monitor
        self.state: EngineState = "idle"
        self.global_replayed = False
        self.exit_ran = False
        self.materialized: list[str] = []
        self._report_anomaly = report_anomaly
        self._clock = clock

    def on_hook_start(self, scope: HookScope) -> None:
        if scope.is_setup:
            self.state = "capturing"

    async def on_hook_end(self, scope: HookScope, error: Any) -> HookOutcome:
        if not scope.is_setup:
            return "ignored"

        if not error:
            self.classifier.hook_buffer.clear()
            self.state = "idle"
            return "discarded"

        if self.tracker.has_real_result_started:
            self.classifier.hook_buffer.clear()
            self.state = "idle"
            self._anomaly(
                "hook-failed-after-results",
                f"{synthetic_hook_name(scope)} reported after results started; evidence discarded",
            )
            return "anomaly"

        self.state = "materializing"
        if self.monitor is not None and isinstance(error, BaseException):
            self.monitor.record(error)
        events = self.classifier.hook_buffer.drain()
        await self._emit_synthetic_result(
            events,
            name=synthetic_hook_name(scope),
            labels=synthetic_hook_labels(scope),
            status_details=status_details_from_error(error),
            console_attachment=HOOK_CONSOLE_ATTACHMENT,
            console_banner=".........Hook Console Logs.........\n\n",
        )
        self.materialized.append(synthetic_hook_name(scope))
        self.state = "idle"
        return "materialized"

    async def on_suite_start(self) -> bool:
        """Replay the global buffer as a passing fixture for the next result."""
        if (
            self.global_replayed
            or self.tracker.has_real_result_started
            or not self.classifier.global_buffer
        ):
            return False

        events = self.classifier.global_buffer.drain()
        bounds = buffered_time_bounds(events, now=self._clock())
        with self.classifier.flushing():
            await self._emit(
                "container.start",
                {"kind": "fixture", "name": GLOBAL_FIXTURE_NAME, "start": bounds.start},
            )
            await self._replay(events)
            await self._emit("container.end", {"status": "passed", "stop": bounds.stop})
        self.global_replayed = True
        return True

    async def on_runner_end(self) -> bool:
        if self.tracker.has_real_result_started or not self.classifier.has_buffered_events():
            return False

        self.state = "materializing"
        events = self.classifier.global_buffer.drain() + self.classifier.hook_buffer.drain()
        await self._emit_synthetic_result(
            events,
            name=GLOBAL_FAILURE_NAME,
            labels=GLOBAL_FAILURE_LABELS,
            status_details=StatusDetails(message=RUNNER_END_FAILURE_MESSAGE),
            console_attachment=GLOBAL_CONSOLE_ATTACHMENT,
            console_banner="",
        )
        self.materialized.append(GLOBAL_FAILURE_NAME)
        self.state = "idle"
        return True

    def on_process_exit(self) -> ResultRecord | None:
        """Last-resort fallback; synchronous, runs at most once, never raises."""
        if self.exit_ran:
            return None
        self.exit_ran = True
        if self.tracker.has_real_result_started:
            return None

        console_text = self.console.captured_text if self.console is not None else ""
        if not self.classifier.has_buffered_events() and not console_text.strip():
            return None

        writer = self.sink.writer
        if writer is None:
            self._anomaly("exit-no-writer", "sink has no writer; exit fallback skipped", warn=False)
            return None

        self.classifier.is_flushing = True
        events = self.classifier.global_buffer.drain() + self.classifier.hook_buffer.drain()
        scope = self.tracker.setup_hook
        if scope is not None:
            name = synthetic_hook_name(scope)
            labels = synthetic_hook_labels(scope)
        else:
            name = GLOBAL_FAILURE_NAME
            labels = dict(GLOBAL_FAILURE_LABELS)

        try:
            record = materialize_result(
                events,
                name=name,
                status="broken",
                status_details=derive_failure_details(self.monitor, console_text),
                writer=writer,
                labels=labels,
                history_id=GLOBAL_FAILURE_HISTORY_ID,
                console_text=console_text,
                console_attachment_name=GLOBAL_CONSOLE_ATTACHMENT,
                now=self._clock(),
            )
        except Exception as error:
            # Never raise from the exit path.
            self._anomaly(
                "exit-persistence-failed",
                f"{error.__class__.__name__}: {error}",
                warn=False,
            )
            return None
        finally:
            if self.console is not None:
                self.console.clear()

        self.materialized.append(name)
        return record

    async def _emit_synthetic_result(
        self,
        events: list[BufferedEvent],
        *,
        name: str,
        labels: dict[str, str],
        status_details: StatusDetails,
        console_attachment: str,
        console_banner: str,
    ) -> None:
        bounds = buffered_time_bounds(events, now=self._clock())
        console_text = self.console.take_captured_text() if self.console is not None else ""

        with self.classifier.flushing():
            await self._emit(
                "container.start",
                {"kind": "result", "name": name, "start": bounds.start},
            )
            await self._emit(
                "metadata",
                {"labels": [{"name": key, "value": value} for key, value in labels.items()]},
            )
            await self._replay(events)
            if console_text.strip():
                await self._emit(
                    "attachment.content",
                    {
                        "name": console_attachment,
                        "content": encode_attachment_content(console_banner + console_text),
                        "encoding": "base64",
                        "content_type": "text/plain",
                    },
                )
            await self._emit(
                "container.end",
                {
                    "status": "broken",
                    "status_details": status_details.to_dict(),
                    "stop": bounds.stop,
                },
            )

    async def _replay(self, events: list[BufferedEvent]) -> None:
        # Nesting depends on emission order.
        for event in events:
            await self.sink.emit(event.message)

    async def _emit(self, event_type: str, data: dict[str, Any]) -> None:
        await self.sink.emit(RuntimeMessage(type=event_type, data=data))

    def _anomaly(self, kind: str, message: str, *, warn: bool = True) -> None:
        if self._report_anomaly is not None:
            self._report_anomaly(kind, message, warn=warn)
