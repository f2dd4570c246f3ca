"""Start/stop reconstruction for buffered evidence."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import time

from hookpack.core.models import BufferedEvent


@dataclass(frozen=True, slots=True)
class TimeBounds:
    start: int
    stop: int

    @property
    def duration_ms(self) -> int:
        return self.stop - self.start


def now_ms() -> int:
    return int(time.time() * 1000)


def buffered_time_bounds(
    events: Iterable[BufferedEvent],
    *,
    now: int | None = None,
) -> TimeBounds:
    """Return the earliest and latest capture time of ``events``.

    An empty sequence collapses to ``now`` (or the current clock) for both
    bounds, so ``start <= stop`` holds for every input.
    """
    timestamps = [event.captured_at for event in events]
    if not timestamps:
        current = now_ms() if now is None else now
        return TimeBounds(start=current, stop=current)
    return TimeBounds(start=min(timestamps), stop=max(timestamps))
