import asyncio
from collections.abc import Callable
import base64
from pathlib import Path

from hookpack.capture import HookInfo
from hookpack.core.models import RuntimeMessage
from hookpack.results import read_result
from hookpack.sink import FileSystemSink, ReportingSink


def _message(event_type: str, **data: object) -> RuntimeMessage:
    return RuntimeMessage(type=event_type, data=dict(data))


def _clock() -> Callable[[], int]:
    ticks = iter(range(1_000, 10_000, 10))
    return lambda: next(ticks)


def test_test_result_is_written_with_steps_and_suite_labels(tmp_path: Path) -> None:
    sink = FileSystemSink(tmp_path, clock=_clock())
    suite = {"title": "Checkout"}
    test = {"title": "pays with card"}

    sink.on_suite_start(suite)
    sink.on_test_start(test)
    sink.handle(_message("step.start", name="Submit", start=1_005))
    sink.handle(
        _message(
            "attachment.content",
            name="receipt.txt",
            content=base64.b64encode(b"paid").decode("ascii"),
            content_type="text/plain",
        )
    )
    sink.handle(_message("step.stop", status="passed", stop=1_006))
    test["state"] = "passed"
    sink.on_test_end(test)

    assert len(sink.written) == 1
    record = read_result(sink.writer.result_path(sink.written[0].id))
    assert record.name == "pays with card"
    assert record.status == "passed"
    assert record.labels == {"parentSuite": "Checkout", "suite": "Checkout"}
    assert record.steps[0].attachments[0].name == "receipt.txt"
    assert (tmp_path / record.steps[0].attachments[0].source).read_bytes() == b"paid"


def test_before_all_fixture_attaches_to_next_result(tmp_path: Path) -> None:
    sink = FileSystemSink(tmp_path, clock=_clock())
    hook = HookInfo(title='"before all" hook for Checkout')
    test = {"title": "t1"}

    sink.on_hook_start(hook)
    sink.handle(_message("step.start", name="Log in", start=1))
    sink.handle(_message("step.stop", stop=2))
    sink.on_hook_end(hook)

    assert [fixture.name for fixture in sink.pending_fixtures] == [hook.title]

    sink.on_test_start(test)
    sink.on_test_end(test)

    record = sink.written[0]
    assert [fixture.name for fixture in record.fixtures] == [hook.title]
    assert record.fixtures[0].steps[0].name == "Log in"
    assert sink.pending_fixtures == ()


def test_after_all_fixture_is_appended_to_previous_result(tmp_path: Path) -> None:
    sink = FileSystemSink(tmp_path, clock=_clock())
    test = {"title": "t1"}
    sink.on_test_start(test)
    sink.on_test_end(test)

    hook = HookInfo(title='"after all" hook for Checkout', error="cleanup failed")
    sink.on_hook_start(hook)
    sink.on_hook_end(hook)

    record = read_result(sink.writer.result_path(sink.written[0].id))
    assert record.fixtures[0].status == "broken"
    assert record.fixtures[0].status_details is not None
    assert record.fixtures[0].status_details.message == "cleanup failed"


def test_failed_test_maps_assertion_to_failed_and_errors_to_broken(tmp_path: Path) -> None:
    sink = FileSystemSink(tmp_path, clock=_clock())
    first = {"title": "assertion", "error": AssertionError("expected 1")}
    second = {"title": "crash", "error": ConnectionError("reset")}
    third = {"title": "skipped", "state": "pending"}

    for test in (first, second, third):
        sink.on_test_start(test)
        sink.on_test_end(test)

    assert [record.status for record in sink.written] == ["failed", "broken", "skipped"]


def test_container_messages_build_synthetic_result(tmp_path: Path) -> None:
    sink = FileSystemSink(tmp_path, clock=_clock())

    sink.handle(_message("container.start", kind="result", name="Synthetic", start=50))
    sink.handle(_message("metadata", labels=[{"name": "tag", "value": "BeforeAllFailure"}]))
    sink.handle(_message("step.start", name="Dangling", start=55))
    sink.handle(
        _message("container.end", status="broken", status_details={"message": "boom"}, stop=60)
    )

    record = sink.written[0]
    assert (record.start, record.stop) == (50, 60)
    assert record.status == "broken"
    assert record.status_details.message == "boom"
    assert record.labels == {"tag": "BeforeAllFailure"}
    assert record.steps[0].status == "broken"


def test_discarded_hook_leaves_no_fixture(tmp_path: Path) -> None:
    sink = FileSystemSink(tmp_path, clock=_clock())
    hook = HookInfo(title='"before all" hook for Checkout', error="boom")

    sink.on_hook_start(hook)
    sink.discard_hook(hook)

    assert sink.open_containers() == ()
    assert sink.pending_fixtures == ()


def test_messages_without_container_are_counted_as_dropped(tmp_path: Path) -> None:
    sink = FileSystemSink(tmp_path, clock=_clock())

    sink.handle(_message("step.start", name="orphan"))
    sink.handle(_message("container.end"))

    assert sink.dropped_messages == 2
    assert sink.written == []


def test_runner_end_hands_pending_fixtures_to_last_result(tmp_path: Path) -> None:
    sink = FileSystemSink(tmp_path, clock=_clock())
    test = {"title": "t1"}
    sink.on_test_start(test)
    sink.on_test_end(test)
    sink.handle(_message("container.start", kind="fixture", name="Late setup"))
    sink.handle(_message("container.end", status="passed"))

    asyncio.run(sink.on_runner_end())

    record = read_result(sink.writer.result_path(sink.written[0].id))
    assert [fixture.name for fixture in record.fixtures] == ["Late setup"]


def test_base_sink_emit_delegates_to_handle() -> None:
    seen: list[str] = []

    class _Sink(ReportingSink):
        def handle(self, message: RuntimeMessage) -> None:
            seen.append(message.type)

    asyncio.run(_Sink().emit(_message("metadata")))

    assert seen == ["metadata"]
