"""Tracks uncaught errors so late fallbacks can explain what went wrong."""

from __future__ import annotations

from collections.abc import Mapping
import re
import sys
import traceback
from types import TracebackType
from typing import Any

from hookpack.core.models import StatusDetails

GENERIC_FAILURE_MESSAGE = "Setup failed before results could run"

_CONSOLE_ERROR_PATTERN = re.compile(
    r"^\s*((?:[A-Za-z_][\w.]*(?:Error|Exception))|Error):\s*(\S.*)$",
    re.MULTILINE,
)


def format_error(error: BaseException, tb: TracebackType | None = None) -> str:
    return "".join(
        traceback.format_exception(type(error), error, tb or error.__traceback__)
    )


def status_details_from_error(error: Any) -> StatusDetails:
    """Build status details from an exception, string or error-like mapping."""
    if isinstance(error, BaseException):
        text = str(error)
        message = f"{type(error).__name__}: {text}" if text else type(error).__name__
        trace = format_error(error) if error.__traceback__ is not None else None
        return StatusDetails(message=message, trace=trace)
    if isinstance(error, str):
        return StatusDetails(message=error, trace=error)
    if isinstance(error, Mapping):
        message = error.get("message")
        trace = error.get("trace", error.get("stack"))
        return StatusDetails(
            message=message if isinstance(message, str) else None,
            trace=trace if isinstance(trace, str) else None,
        )
    return StatusDetails(message=str(error))


def match_console_error(text: str) -> str | None:
    """Return the last ``SomethingError: message`` line found in console text."""
    matches = list(_CONSOLE_ERROR_PATTERN.finditer(text))
    if not matches:
        return None
    last = matches[-1]
    return f"{last.group(1)}: {last.group(2).strip()}"


class ErrorMonitor:
    """Chains in front of ``sys.excepthook`` and remembers the last error."""

    def __init__(self, host: Any = sys) -> None:
        self.host = host
        self.last_error: BaseException | None = None
        self.last_trace: str | None = None
        self._previous_hook: Any = None
        self._hook = self._excepthook

    @property
    def installed(self) -> bool:
        return self._previous_hook is not None

    def install(self) -> None:
        if self._previous_hook is not None:
            return
        self._previous_hook = self.host.excepthook
        self.host.excepthook = self._hook

    def uninstall(self) -> None:
        if self._previous_hook is None:
            return
        if self.host.excepthook is self._hook:
            self.host.excepthook = self._previous_hook
        self._previous_hook = None

    def record(self, error: BaseException, tb: TracebackType | None = None) -> None:
        self.last_error = error
        self.last_trace = format_error(error, tb)

    def status_details(self) -> StatusDetails | None:
        if self.last_error is None:
            return None
        details = status_details_from_error(self.last_error)
        details.trace = self.last_trace or details.trace
        return details

    def _excepthook(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        self.record(exc, tb)
        previous = self._previous_hook or sys.__excepthook__
        previous(exc_type, exc, tb)


def derive_failure_details(
    monitor: ErrorMonitor | None,
    console_text: str,
) -> StatusDetails:
    """Pick the most specific explanation available for a setup failure."""
    if monitor is not None:
        tracked = monitor.status_details()
        if tracked is not None:
            return tracked

    console_trace = console_text if console_text.strip() else None
    matched = match_console_error(console_text)
    if matched is not None:
        return StatusDetails(message=matched, trace=console_trace)
    return StatusDetails(message=GENERIC_FAILURE_MESSAGE, trace=console_trace)
