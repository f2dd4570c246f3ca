"""Turns driver screenshot commands into buffered attachment events.

Drivers do not emit attachment events for screenshots taken outside a test,
so the bridge synthesizes one from the command result.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from hookpack.capture.buffers import Disposition, EventClassifier
from hookpack.capture.lifecycle import LifecycleTracker
from hookpack.core.models import RuntimeMessage
from hookpack.results.io import encode_attachment_content

DEFAULT_SCREENSHOT_COMMAND = "takeScreenshot"
SCREENSHOT_ATTACHMENT_NAME = "Screenshot"


def extract_screenshot_payload(result: Any) -> str | None:
    """Return base64 screenshot content from a bare or ``{"value": ...}`` result."""
    if isinstance(result, Mapping):
        value = result.get("value")
    elif isinstance(result, (str, bytes, bytearray)):
        value = result
    else:
        value = getattr(result, "value", None)

    if isinstance(value, str):
        return value or None
    if isinstance(value, (bytes, bytearray)):
        return encode_attachment_content(bytes(value)) if value else None
    return None


class ScreenshotBridge:
    def __init__(
        self,
        tracker: LifecycleTracker,
        classifier: EventClassifier,
        *,
        command_name: str = DEFAULT_SCREENSHOT_COMMAND,
        on_malformed: Callable[[str], None] | None = None,
    ) -> None:
        self.tracker = tracker
        self.classifier = classifier
        self.command_name = command_name
        self._on_malformed = on_malformed

    def on_driver_command(self, command: str | None, result: Any) -> Disposition | None:
        """Buffer a screenshot attachment; ``None`` when the command is ignored."""
        if not self.tracker.is_capture_window():
            return None
        if command != self.command_name:
            return None

        content = extract_screenshot_payload(result)
        if content is None:
            if self._on_malformed is not None:
                self._on_malformed(
                    f"{self.command_name} result has no screenshot payload "
                    f"(got {type(result).__name__}); dropped"
                )
            return None

        message = RuntimeMessage(
            type="attachment.content",
            data={
                "name": SCREENSHOT_ATTACHMENT_NAME,
                "content": content,
                "content_type": "image/png",
                "encoding": "base64",
            },
        )
        return self.classifier.on_event(message)
