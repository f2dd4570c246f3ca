"""Console output multiplexing for the capture window.

The multiplexer replaces ``sys.stdout`` (or any named stream attribute of a
host object) with a proxy whose ``write`` taps the text and then always calls
the stream that was installed before it. Other interceptors already chained
onto the stream keep working, and interceptors installed later simply wrap
the proxy.
"""

from __future__ import annotations

from collections.abc import Sequence
import sys
from typing import Any

from hookpack.capture.exceptions import StreamInstallError
from hookpack.capture.lifecycle import LifecycleTracker

CONSOLE_BLOCK_HEADER = "\n========== Setup Hooks Console Output ==========\n"
CONSOLE_BLOCK_FOOTER = "=================================================\n\n"


def coerce_text(data: Any) -> str:
    if isinstance(data, str):
        return data
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data).decode("utf-8", errors="replace")
    return str(data)


def _like(data: Any, text: str) -> Any:
    # Downstream may be a binary stream, so match the caller's payload type.
    if isinstance(data, (bytes, bytearray, memoryview)):
        return text.encode("utf-8")
    return text


class _MultiplexedStream:
    """Stream proxy; every attribute except ``write`` goes downstream."""

    def __init__(self, multiplexer: "OutputStreamMultiplexer", downstream: Any) -> None:
        self._multiplexer = multiplexer
        self._downstream = downstream
        self._tapping = True

    @property
    def downstream(self) -> Any:
        return self._downstream

    def write(self, data: Any, *args: Any, **kwargs: Any) -> Any:
        if self._tapping:
            self._multiplexer.observe_write(self._downstream, data)
        return self._downstream.write(data, *args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._downstream, name)


class OutputStreamMultiplexer:
    """Accumulates console text written while setup evidence is being captured.

    Text is recorded while a setup hook is open or before any real result has
    started. On the first real write after a result has started, the
    accumulated text is emitted downstream once as a bracketed block.
    """

    def __init__(
        self,
        tracker: LifecycleTracker,
        *,
        diagnostic_marker: str = "[DEBUG]",
        host: Any = sys,
        stream_names: Sequence[str] = ("stdout",),
    ) -> None:
        self.tracker = tracker
        self.diagnostic_marker = diagnostic_marker
        self.host = host
        self.stream_names = tuple(stream_names)
        self.flushed_to_console = False
        self._chunks: list[str] = []
        self._proxies: dict[str, _MultiplexedStream] = {}

    @property
    def installed(self) -> bool:
        return bool(self._proxies)

    def install(self) -> None:
        if self._proxies:
            return
        missing = [name for name in self.stream_names if getattr(self.host, name, None) is None]
        if missing:
            raise StreamInstallError(f"Host has no stream named: {', '.join(missing)}")
        for name in self.stream_names:
            proxy = _MultiplexedStream(self, getattr(self.host, name))
            setattr(self.host, name, proxy)
            self._proxies[name] = proxy

    def uninstall(self) -> None:
        for name, proxy in self._proxies.items():
            proxy._tapping = False
            if getattr(self.host, name, None) is proxy:
                setattr(self.host, name, proxy.downstream)
            # Otherwise a later interceptor wraps the proxy; it stays in the
            # chain as a plain pass-through.
        self._proxies = {}

    @property
    def captured_text(self) -> str:
        return "".join(self._chunks)

    def has_captured_text(self) -> bool:
        return bool(self.captured_text.strip())

    def take_captured_text(self) -> str:
        text = self.captured_text
        self._chunks = []
        return text

    def clear(self) -> None:
        self._chunks = []

    def observe_write(self, downstream: Any, data: Any) -> None:
        text = coerce_text(data)
        if (
            self.tracker.has_real_result_started
            and not self.flushed_to_console
            and self.has_captured_text()
            and self.diagnostic_marker not in text
        ):
            self.flushed_to_console = True
            block = self.take_captured_text()
            downstream.write(_like(data, CONSOLE_BLOCK_HEADER))
            downstream.write(_like(data, block))
            downstream.write(_like(data, CONSOLE_BLOCK_FOOTER))

        if self.tracker.in_setup_hook or not self.tracker.has_real_result_started:
            self._chunks.append(text)
