"""Reporting sink interface consumed by the reporter."""

from __future__ import annotations

import asyncio
from typing import Any

from hookpack.core.models import RuntimeMessage
from hookpack.results.io import ResultWriter


class ReportingSink:
    """Base no-op sink.

    ``handle`` receives messages synchronously, ``emit`` is the asynchronous
    emission API used while replaying buffers, and ``writer`` is the
    low-level persistence primitive used by the process-exit fallback.
    """

    name = "reporting-sink"
    writer: ResultWriter | None = None

    def handle(self, message: RuntimeMessage) -> None:
        return None

    async def emit(self, message: RuntimeMessage) -> None:
        self.handle(message)
        await asyncio.sleep(0)

    def on_runner_start(self) -> None:
        return None

    def on_suite_start(self, suite: Any) -> None:
        return None

    def on_suite_end(self, suite: Any) -> None:
        return None

    def on_hook_start(self, hook: Any) -> None:
        return None

    def on_hook_end(self, hook: Any) -> None:
        return None

    def discard_hook(self, hook: Any) -> None:
        """The hook's evidence is being replayed into a synthetic result instead."""
        return None

    def on_test_start(self, test: Any) -> None:
        return None

    def on_test_end(self, test: Any) -> None:
        return None

    async def on_runner_end(self) -> None:
        return None
