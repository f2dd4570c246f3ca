"""Evidence buffers and the classifier that routes inbound events."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Literal

from hookpack.capture.lifecycle import LifecycleTracker
from hookpack.core.models import BufferedEvent, RuntimeMessage
from hookpack.core.timing import now_ms

Disposition = Literal["dropped", "global", "hook", "passed_through"]


class EventBuffer:
    """Ordered sequence of buffered events; insertion order is replay order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._events: list[BufferedEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)

    def __iter__(self) -> Iterator[BufferedEvent]:
        return iter(tuple(self._events))

    @property
    def events(self) -> tuple[BufferedEvent, ...]:
        return tuple(self._events)

    def append(self, event: BufferedEvent) -> None:
        self._events.append(event)

    def drain(self) -> list[BufferedEvent]:
        """Move every event out of the buffer, leaving it empty."""
        drained = self._events
        self._events = []
        return drained

    def clear(self) -> None:
        self._events = []


class EventClassifier:
    """Decides where each inbound event belongs.

    Idle-window events are held exclusively in the global buffer. Setup-hook
    events are copied into the hook buffer and still delivered, so the sink
    can record them under the hook's own fixture. Everything else is
    delivered untouched.
    """

    def __init__(
        self,
        tracker: LifecycleTracker,
        *,
        deliver: Callable[[RuntimeMessage], None],
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.tracker = tracker
        self.global_buffer = EventBuffer("global")
        self.hook_buffer = EventBuffer("hook")
        self.is_flushing = False
        self._deliver = deliver
        self._clock = clock

    def on_event(self, message: RuntimeMessage) -> Disposition:
        if self.is_flushing:
            return "dropped"
        if self.tracker.is_idle_window():
            self.global_buffer.append(BufferedEvent(message=message, captured_at=self._clock()))
            return "global"
        if self.tracker.in_setup_hook:
            self.hook_buffer.append(BufferedEvent(message=message, captured_at=self._clock()))
            self._deliver(message)
            return "hook"
        self._deliver(message)
        return "passed_through"

    def has_buffered_events(self) -> bool:
        return bool(self.global_buffer) or bool(self.hook_buffer)

    @contextmanager
    def flushing(self) -> Iterator[None]:
        """Hold the re-entrancy guard for a whole replay pass."""
        previous = self.is_flushing
        self.is_flushing = True
        try:
            yield
        finally:
            self.is_flushing = previous
