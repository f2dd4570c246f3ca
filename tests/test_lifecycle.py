from types import SimpleNamespace

from hookpack.capture import HookInfo, LifecycleTracker, hook_error, hook_title, parse_hook_title


def test_parse_hook_title_reads_kind_and_scope_from_for_form() -> None:
    scope = parse_hook_title('"before all" hook for Checkout flow')

    assert scope.kind == "before_all"
    assert scope.scope_name == "Checkout flow"
    assert scope.is_setup is True
    assert scope.hook_type == "beforeAll"


def test_parse_hook_title_maps_root_placeholder_to_root_scope() -> None:
    scope = parse_hook_title('"after all" hook in "{root}"')

    assert scope.kind == "after_all"
    assert scope.scope_name == "(root)"
    assert scope.hook_type == "afterAll"


def test_parse_hook_title_reads_quoted_in_form() -> None:
    scope = parse_hook_title('"before all" hook in "Billing"')

    assert scope.scope_name == "Billing"


def test_parse_hook_title_each_hooks_are_not_setup_hooks() -> None:
    assert parse_hook_title('"before each" hook for Cart').is_setup is False
    assert parse_hook_title('"after each" hook for Cart').hook_type == "afterEach"


def test_parse_hook_title_unknown_title_falls_back_to_root() -> None:
    scope = parse_hook_title("something else entirely")

    assert scope.kind == "unknown"
    assert scope.scope_name == "(root)"
    assert scope.is_setup is False


def test_hook_title_and_error_accept_mapping_and_attribute_handles() -> None:
    error = RuntimeError("boom")

    assert hook_title({"title": "a", "error": error}) == "a"
    assert hook_error({"title": "a", "error": error}) is error
    assert hook_title(HookInfo(title="b")) == "b"
    assert hook_error(HookInfo(title="b")) is None
    assert hook_title(SimpleNamespace(title=None)) == ""


def test_tracker_idle_window_closes_once_any_scope_opens() -> None:
    tracker = LifecycleTracker()
    suite = {"title": "Suite"}

    assert tracker.is_idle_window() is True
    tracker.on_scope_open("suite", suite)
    assert tracker.is_idle_window() is False
    assert tracker.is_capture_window() is False
    tracker.on_scope_close("suite", suite)
    assert tracker.is_idle_window() is True


def test_tracker_tracks_unhashable_handles_by_identity() -> None:
    tracker = LifecycleTracker()
    first = {"title": "same"}
    second = {"title": "same"}

    tracker.on_scope_open("hook", first)
    tracker.on_scope_open("hook", second)
    tracker.on_scope_close("hook", first)

    assert len(tracker.open_hooks) == 1
    assert tracker.open_hooks[0] is second


def test_tracker_real_result_flag_is_monotonic() -> None:
    tracker = LifecycleTracker()
    test = {"title": "t"}

    tracker.on_scope_open("result", test)
    tracker.on_scope_close("result", test)

    assert tracker.has_real_result_started is True
    assert tracker.nothing_open() is True
    assert tracker.is_idle_window() is False


def test_tracker_setup_hook_enter_and_exit() -> None:
    tracker = LifecycleTracker()

    tracker.enter_setup_hook("Checkout", "before_all")
    assert tracker.in_setup_hook is True
    assert tracker.is_capture_window() is True
    assert tracker.current_hook_scope_name == "Checkout"

    scope = tracker.exit_setup_hook()
    assert scope is not None
    assert scope.scope_name == "Checkout"
    assert tracker.in_setup_hook is False
    assert tracker.exit_setup_hook() is None
    assert tracker.snapshot()["current_hook_scope_name"] == "Checkout"
