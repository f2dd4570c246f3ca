"""Producer helpers that publish steps, attachments and labels onto a channel.

With no active channel every helper is a no-op, so instrumented code runs
unchanged outside a reporter.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from hookpack.capture.monitor import status_details_from_error
from hookpack.core.timing import now_ms
from hookpack.results.io import encode_attachment_content
from hookpack.sink.channel import EventChannel

_ACTIVE_CHANNEL: ContextVar[EventChannel | None] = ContextVar(
    "hookpack_active_channel",
    default=None,
)
_DEFAULT_CHANNEL: EventChannel | None = None


def get_current_channel() -> EventChannel | None:
    """Resolve the channel from context override, then the installed default."""
    channel = _ACTIVE_CHANNEL.get()
    if channel is not None:
        return channel
    return _DEFAULT_CHANNEL


def set_default_channel(channel: EventChannel | None) -> EventChannel | None:
    """Install the process-wide channel; returns the previous one."""
    global _DEFAULT_CHANNEL
    previous = _DEFAULT_CHANNEL
    _DEFAULT_CHANNEL = channel
    return previous


@contextmanager
def use_channel(channel: EventChannel) -> Iterator[EventChannel]:
    """Activate a channel for current context."""
    token = _ACTIVE_CHANNEL.set(channel)
    try:
        yield channel
    finally:
        _ACTIVE_CHANNEL.reset(token)


@contextmanager
def step(name: str) -> Iterator[None]:
    """Publish a step around the block.

    Assertion failures close the step as ``failed``, any other exception as
    ``broken``; the exception is re-raised either way.
    """
    channel = get_current_channel()
    if channel is None:
        yield
        return

    channel.emit("step.start", {"name": name, "start": now_ms()})
    try:
        yield
    except AssertionError as error:
        channel.emit(
            "step.stop",
            {
                "status": "failed",
                "stop": now_ms(),
                "status_details": status_details_from_error(error).to_dict(),
            },
        )
        raise
    except Exception as error:
        channel.emit(
            "step.stop",
            {
                "status": "broken",
                "stop": now_ms(),
                "status_details": status_details_from_error(error).to_dict(),
            },
        )
        raise
    channel.emit("step.stop", {"status": "passed", "stop": now_ms()})


def attach(
    name: str,
    content: str | bytes,
    *,
    content_type: str = "text/plain",
) -> None:
    channel = get_current_channel()
    if channel is None:
        return
    channel.emit(
        "attachment.content",
        {
            "name": name,
            "content": encode_attachment_content(content),
            "encoding": "base64",
            "content_type": content_type,
        },
    )


def label(name: str | Mapping[str, Any], value: Any = None) -> None:
    channel = get_current_channel()
    if channel is None:
        return
    if isinstance(name, Mapping):
        labels = [{"name": str(key), "value": str(item)} for key, item in name.items()]
    else:
        labels = [{"name": name, "value": str(value)}]
    channel.emit("metadata", {"labels": labels})
