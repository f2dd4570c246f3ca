"""Failing-hook reporter: one instance per worker, wired to the runner lifecycle."""

from __future__ import annotations

import atexit
from collections.abc import Callable
from dataclasses import dataclass
import sys
from typing import Any
import warnings

from hookpack.capture.buffers import Disposition, EventClassifier
from hookpack.capture.lifecycle import LifecycleTracker, hook_error, hook_title, parse_hook_title
from hookpack.capture.monitor import ErrorMonitor
from hookpack.capture.runtime import set_default_channel
from hookpack.capture.screenshots import ScreenshotBridge
from hookpack.capture.streams import OutputStreamMultiplexer
from hookpack.config import ReporterConfig
from hookpack.core.models import ResultRecord, RuntimeMessage
from hookpack.core.timing import now_ms
from hookpack.replay.engine import HookOutcome, ReplayEngine
from hookpack.sink.base import ReportingSink
from hookpack.sink.channel import EventChannel
from hookpack.sink.filesystem import FileSystemSink

ExitRegistrar = Callable[[Callable[[], Any]], Any]


@dataclass(frozen=True, slots=True)
class ReporterDiagnostic:
    kind: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class FailingHookReporter:
    """Keeps setup-hook and global-setup evidence from being lost.

    Events published on ``channel`` are routed through the classifier: idle
    window events are held for a later container, setup-hook events are
    shadow-buffered so a failing hook can be replayed as a synthetic result,
    and everything else reaches the sink unchanged.

    Construction installs the console interceptor, the error monitor and the
    process-exit fallback according to ``config``; ``close`` removes them.
    """

    def __init__(
        self,
        config: ReporterConfig | None = None,
        *,
        sink: ReportingSink | None = None,
        channel: EventChannel | None = None,
        host: Any = sys,
        exit_registrar: ExitRegistrar | None = atexit.register,
        exit_unregistrar: ExitRegistrar | None = atexit.unregister,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.config = config or ReporterConfig()
        self.sink = sink if sink is not None else FileSystemSink(self.config.output_dir, clock=clock)
        self.channel = channel if channel is not None else EventChannel()
        self.tracker = LifecycleTracker()
        self.classifier = EventClassifier(self.tracker, deliver=self.sink.handle, clock=clock)
        self.console = (
            OutputStreamMultiplexer(
                self.tracker,
                diagnostic_marker=self.config.diagnostic_marker,
                host=host,
                stream_names=self.config.console_streams,
            )
            if self.config.capture_console
            else None
        )
        self.monitor = ErrorMonitor(host=host)
        self.screenshots = ScreenshotBridge(
            self.tracker,
            self.classifier,
            command_name=self.config.screenshot_command,
            on_malformed=lambda message: self._diagnose("malformed-screenshot", message),
        )
        self.engine = ReplayEngine(
            self.tracker,
            self.classifier,
            self.sink,
            console=self.console,
            monitor=self.monitor,
            report_anomaly=self._diagnose,
            clock=clock,
        )
        self._diagnostics: list[ReporterDiagnostic] = []
        self._previous_default_channel: EventChannel | None = None
        self._is_default_channel = False
        self._exit_unregistrar = exit_unregistrar
        self._exit_registered = False
        self._closed = False

        self._unsubscribe = self.channel.subscribe(self.on_event)
        if self.console is not None:
            self.console.install()
        if self.config.install_error_monitor:
            self.monitor.install()
        if self.config.register_exit_handler and exit_registrar is not None:
            exit_registrar(self.handle_process_exit)
            self._exit_registered = True

    @property
    def diagnostics(self) -> tuple[ReporterDiagnostic, ...]:
        channel_diagnostics = tuple(
            ReporterDiagnostic(
                kind="channel-subscriber-failed",
                message=(
                    f"{item.subscriber} failed on {item.event_type}: "
                    f"{item.error_type}: {item.message}"
                ),
            )
            for item in self.channel.diagnostics
        )
        return tuple(self._diagnostics) + channel_diagnostics

    def make_default(self) -> "FailingHookReporter":
        """Route the module-level ``step``/``attach``/``label`` helpers here."""
        if not self._is_default_channel:
            self._previous_default_channel = set_default_channel(self.channel)
            self._is_default_channel = True
        return self

    def on_event(self, message: RuntimeMessage) -> Disposition:
        return self.classifier.on_event(message)

    def on_runner_start(self) -> None:
        self.sink.on_runner_start()

    async def on_suite_start(self, suite: Any) -> None:
        await self.engine.on_suite_start()
        self.tracker.on_scope_open("suite", suite)
        self.sink.on_suite_start(suite)

    def on_suite_end(self, suite: Any) -> None:
        self.tracker.on_scope_close("suite", suite)
        self.sink.on_suite_end(suite)

    def on_hook_start(self, hook: Any) -> None:
        scope = parse_hook_title(hook_title(hook))
        self.tracker.on_scope_open("hook", hook)
        if scope.is_setup:
            self.tracker.enter_setup_hook(scope.scope_name, scope.kind)
            self.engine.on_hook_start(scope)
        self.sink.on_hook_start(hook)

    async def on_hook_end(self, hook: Any) -> HookOutcome:
        scope = parse_hook_title(hook_title(hook))
        error = hook_error(hook)
        if not any(item is hook for item in self.tracker.open_hooks):
            self._diagnose("unknown-hook", f"hook end without start: {hook_title(hook)!r}")

        self.tracker.on_scope_close("hook", hook)
        if scope.is_setup:
            self.tracker.exit_setup_hook()

        if scope.is_setup and error and not self.tracker.has_real_result_started:
            self.sink.discard_hook(hook)
        else:
            self.sink.on_hook_end(hook)
        return await self.engine.on_hook_end(scope, error)

    def on_test_start(self, test: Any) -> None:
        self.tracker.on_scope_open("result", test)
        self.sink.on_test_start(test)

    def on_test_end(self, test: Any) -> None:
        self.tracker.on_scope_close("result", test)
        self.sink.on_test_end(test)

    def on_after_command(self, command: str | None, result: Any) -> Disposition | None:
        return self.screenshots.on_driver_command(command, result)

    async def on_runner_end(self) -> bool:
        await self.sink.on_runner_end()
        return await self.engine.on_runner_end()

    def handle_process_exit(self) -> ResultRecord | None:
        return self.engine.on_process_exit()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        if self.console is not None:
            self.console.uninstall()
        self.monitor.uninstall()
        if self._exit_registered and self._exit_unregistrar is not None:
            self._exit_unregistrar(self.handle_process_exit)
            self._exit_registered = False
        if self._is_default_channel:
            replaced = set_default_channel(self._previous_default_channel)
            if replaced is not self.channel:
                # Another reporter took over the default since; leave it in place.
                set_default_channel(replaced)
            self._is_default_channel = False

    def __enter__(self) -> "FailingHookReporter":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _diagnose(self, kind: str, message: str, *, warn: bool = True) -> None:
        self._diagnostics.append(ReporterDiagnostic(kind=kind, message=message))
        if warn:
            warnings.warn(
                f"hookpack reporter anomaly: kind={kind} {message}",
                RuntimeWarning,
                stacklevel=2,
            )
