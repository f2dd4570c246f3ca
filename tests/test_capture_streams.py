import io
from types import SimpleNamespace

import pytest

from hookpack.capture import (
    CONSOLE_BLOCK_FOOTER,
    CONSOLE_BLOCK_HEADER,
    LifecycleTracker,
    OutputStreamMultiplexer,
    StreamInstallError,
)


def _installed(tracker: LifecycleTracker) -> tuple[OutputStreamMultiplexer, SimpleNamespace, io.StringIO]:
    sink = io.StringIO()
    host = SimpleNamespace(stdout=sink)
    multiplexer = OutputStreamMultiplexer(tracker, host=host)
    multiplexer.install()
    return multiplexer, host, sink


def test_writes_before_any_result_are_captured_and_forwarded() -> None:
    tracker = LifecycleTracker()
    multiplexer, host, sink = _installed(tracker)

    host.stdout.write("starting server\n")

    assert multiplexer.captured_text == "starting server\n"
    assert sink.getvalue() == "starting server\n"


def test_first_write_after_result_start_flushes_block_once() -> None:
    tracker = LifecycleTracker()
    multiplexer, host, sink = _installed(tracker)
    host.stdout.write("setup output\n")

    tracker.on_scope_open("result", {"title": "t"})
    host.stdout.write("test output\n")
    host.stdout.write("more output\n")

    expected = (
        "setup output\n"
        + CONSOLE_BLOCK_HEADER
        + "setup output\n"
        + CONSOLE_BLOCK_FOOTER
        + "test output\n"
        + "more output\n"
    )
    assert sink.getvalue() == expected
    assert multiplexer.flushed_to_console is True
    assert multiplexer.captured_text == ""


def test_diagnostic_writes_do_not_trigger_flush() -> None:
    tracker = LifecycleTracker()
    multiplexer, host, sink = _installed(tracker)
    host.stdout.write("setup output\n")
    tracker.on_scope_open("result", {"title": "t"})

    host.stdout.write("[DEBUG] internal detail\n")

    assert CONSOLE_BLOCK_HEADER not in sink.getvalue()
    assert multiplexer.flushed_to_console is False
    assert multiplexer.captured_text == "setup output\n"


def test_setup_hook_writes_after_results_are_still_captured() -> None:
    tracker = LifecycleTracker()
    multiplexer, host, _sink = _installed(tracker)
    tracker.on_scope_open("result", {"title": "t"})
    tracker.enter_setup_hook("Suite", "after_all")

    host.stdout.write("teardown output\n")

    assert multiplexer.captured_text == "teardown output\n"


def test_uninstall_restores_original_stream() -> None:
    tracker = LifecycleTracker()
    multiplexer, host, sink = _installed(tracker)

    multiplexer.uninstall()

    assert host.stdout is sink
    assert multiplexer.installed is False


def test_uninstall_keeps_later_interceptor_chain_intact() -> None:
    tracker = LifecycleTracker()
    multiplexer, host, sink = _installed(tracker)
    seen: list[str] = []
    proxy = host.stdout

    class _Later:
        def write(self, data: str) -> int:
            seen.append(data)
            return proxy.write(data)

    host.stdout = _Later()
    multiplexer.uninstall()
    host.stdout.write("after uninstall\n")

    assert seen == ["after uninstall\n"]
    assert sink.getvalue() == "after uninstall\n"
    assert multiplexer.captured_text == ""


def test_install_is_idempotent_and_delegates_other_attributes() -> None:
    tracker = LifecycleTracker()
    multiplexer, host, sink = _installed(tracker)
    proxy = host.stdout

    multiplexer.install()

    assert host.stdout is proxy
    assert host.stdout.getvalue() == sink.getvalue()


def test_install_rejects_missing_stream() -> None:
    multiplexer = OutputStreamMultiplexer(
        LifecycleTracker(),
        host=SimpleNamespace(),
        stream_names=("stdout",),
    )

    with pytest.raises(StreamInstallError, match="stdout"):
        multiplexer.install()


def test_byte_writes_are_captured_and_flushed_as_bytes() -> None:
    tracker = LifecycleTracker()
    sink = io.BytesIO()
    host = SimpleNamespace(stdout=sink)
    multiplexer = OutputStreamMultiplexer(tracker, host=host)
    multiplexer.install()

    host.stdout.write("booting café\n".encode("utf-8"))
    assert multiplexer.captured_text == "booting café\n"

    tracker.on_scope_open("result", {"title": "t"})
    host.stdout.write(bytearray(b"test output\n"))

    expected = (
        "booting café\n"
        + CONSOLE_BLOCK_HEADER
        + "booting café\n"
        + CONSOLE_BLOCK_FOOTER
        + "test output\n"
    ).encode("utf-8")
    assert sink.getvalue() == expected
    assert multiplexer.flushed_to_console is True
    assert multiplexer.captured_text == ""
