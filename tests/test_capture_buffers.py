from hookpack.capture import EventBuffer, EventClassifier, LifecycleTracker
from hookpack.core.models import BufferedEvent, RuntimeMessage


def _classifier() -> tuple[EventClassifier, LifecycleTracker, list[RuntimeMessage]]:
    tracker = LifecycleTracker()
    delivered: list[RuntimeMessage] = []
    classifier = EventClassifier(tracker, deliver=delivered.append, clock=lambda: 42)
    return classifier, tracker, delivered


def _step(name: str) -> RuntimeMessage:
    return RuntimeMessage(type="step.start", data={"name": name})


def test_event_buffer_drain_moves_events_out_in_order() -> None:
    buffer = EventBuffer("global")
    for name in ("a", "b", "c"):
        buffer.append(BufferedEvent(message=_step(name), captured_at=1))

    drained = buffer.drain()

    assert [event.payload["name"] for event in drained] == ["a", "b", "c"]
    assert len(buffer) == 0
    assert not buffer


def test_idle_window_events_are_buffered_exclusively() -> None:
    classifier, _tracker, delivered = _classifier()

    assert classifier.on_event(_step("global")) == "global"

    assert delivered == []
    assert len(classifier.global_buffer) == 1
    assert classifier.global_buffer.events[0].captured_at == 42


def test_setup_hook_events_are_buffered_and_still_delivered() -> None:
    classifier, tracker, delivered = _classifier()
    suite = {"title": "Suite"}
    tracker.on_scope_open("suite", suite)
    tracker.enter_setup_hook("Suite", "before_all")

    message = _step("login")
    assert classifier.on_event(message) == "hook"

    assert delivered == [message]
    assert len(classifier.hook_buffer) == 1
    assert len(classifier.global_buffer) == 0


def test_events_inside_a_result_pass_through() -> None:
    classifier, tracker, delivered = _classifier()
    tracker.on_scope_open("suite", {"title": "Suite"})
    tracker.on_scope_open("result", {"title": "test"})

    message = _step("click")
    assert classifier.on_event(message) == "passed_through"

    assert delivered == [message]
    assert classifier.has_buffered_events() is False


def test_events_during_flush_are_dropped() -> None:
    classifier, _tracker, delivered = _classifier()

    with classifier.flushing():
        assert classifier.on_event(_step("re-entrant")) == "dropped"
        with classifier.flushing():
            assert classifier.is_flushing is True
        assert classifier.is_flushing is True

    assert classifier.is_flushing is False
    assert delivered == []
    assert classifier.has_buffered_events() is False


def test_no_leakage_between_global_and_hook_buffers() -> None:
    classifier, tracker, _delivered = _classifier()
    classifier.on_event(_step("idle-1"))
    classifier.on_event(_step("idle-2"))

    suite = {"title": "Suite"}
    tracker.on_scope_open("suite", suite)
    tracker.enter_setup_hook("Suite", "before_all")
    classifier.on_event(_step("hook-1"))
    tracker.exit_setup_hook()

    assert [event.payload["name"] for event in classifier.global_buffer] == ["idle-1", "idle-2"]
    assert [event.payload["name"] for event in classifier.hook_buffer] == ["hook-1"]
