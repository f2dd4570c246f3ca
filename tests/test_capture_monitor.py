from types import SimpleNamespace

from hookpack.capture import (
    GENERIC_FAILURE_MESSAGE,
    ErrorMonitor,
    derive_failure_details,
    match_console_error,
    status_details_from_error,
)


def _raised(error: Exception) -> Exception:
    try:
        raise error
    except Exception as caught:
        return caught


def test_status_details_from_exception_includes_type_and_trace() -> None:
    details = status_details_from_error(_raised(ValueError("bad input")))

    assert details.message == "ValueError: bad input"
    assert details.trace is not None
    assert "ValueError: bad input" in details.trace


def test_status_details_from_string_and_mapping() -> None:
    assert status_details_from_error("plain failure").message == "plain failure"

    details = status_details_from_error({"message": "boom", "stack": "at line 1"})
    assert details.message == "boom"
    assert details.trace == "at line 1"


def test_match_console_error_returns_last_error_line() -> None:
    text = "booting\nTypeError: first\nretrying\nConnectionError: refused by host\n"

    assert match_console_error(text) == "ConnectionError: refused by host"
    assert match_console_error("all good\n") is None


def test_error_monitor_chains_previous_excepthook() -> None:
    calls: list[str] = []
    host = SimpleNamespace(excepthook=lambda exc_type, exc, tb: calls.append(exc_type.__name__))
    previous = host.excepthook
    monitor = ErrorMonitor(host=host)

    monitor.install()
    monitor.install()
    error = _raised(RuntimeError("uncaught"))
    host.excepthook(RuntimeError, error, error.__traceback__)

    assert calls == ["RuntimeError"]
    assert monitor.last_error is error
    details = monitor.status_details()
    assert details is not None
    assert details.message == "RuntimeError: uncaught"

    monitor.uninstall()
    assert host.excepthook is previous


def test_error_monitor_leaves_later_hook_in_place_on_uninstall() -> None:
    host = SimpleNamespace(excepthook=lambda *args: None)
    monitor = ErrorMonitor(host=host)
    monitor.install()

    def later(*args: object) -> None:
        return None

    host.excepthook = later
    monitor.uninstall()

    assert host.excepthook is later
    assert monitor.installed is False


def test_derive_failure_details_prefers_tracked_error() -> None:
    monitor = ErrorMonitor(host=SimpleNamespace(excepthook=None))
    monitor.record(_raised(KeyError("token")))

    details = derive_failure_details(monitor, "Error: something printed\n")

    assert details.message == "KeyError: 'token'"


def test_derive_failure_details_falls_back_to_console_then_generic() -> None:
    monitor = ErrorMonitor(host=SimpleNamespace(excepthook=None))
    console = "connecting\nError: ECONNREFUSED 127.0.0.1:5432\n"

    from_console = derive_failure_details(monitor, console)
    generic = derive_failure_details(None, "")

    assert from_console.message == "Error: ECONNREFUSED 127.0.0.1:5432"
    assert from_console.trace == console
    assert generic.message == GENERIC_FAILURE_MESSAGE
    assert generic.trace is None
