"""Capture subsystem for hookpack."""

from hookpack.capture.lifecycle import (
    ROOT_SCOPE_NAME,
    HookInfo,
    HookKind,
    HookScope,
    LifecycleTracker,
    hook_error,
    hook_title,
    parse_hook_title,
)
from hookpack.capture.buffers import Disposition, EventBuffer, EventClassifier
from hookpack.capture.monitor import (
    GENERIC_FAILURE_MESSAGE,
    ErrorMonitor,
    derive_failure_details,
    match_console_error,
    status_details_from_error,
)
from hookpack.capture.streams import (
    CONSOLE_BLOCK_FOOTER,
    CONSOLE_BLOCK_HEADER,
    OutputStreamMultiplexer,
)
from hookpack.capture.screenshots import (
    DEFAULT_SCREENSHOT_COMMAND,
    SCREENSHOT_ATTACHMENT_NAME,
    ScreenshotBridge,
    extract_screenshot_payload,
)
from hookpack.capture.exceptions import CaptureError, StreamInstallError
from hookpack.capture.runtime import (
    attach,
    get_current_channel,
    label,
    set_default_channel,
    step,
    use_channel,
)

__all__ = [
    "ROOT_SCOPE_NAME",
    "HookInfo",
    "HookKind",
    "HookScope",
    "LifecycleTracker",
    "hook_error",
    "hook_title",
    "parse_hook_title",
    "Disposition",
    "EventBuffer",
    "EventClassifier",
    "GENERIC_FAILURE_MESSAGE",
    "ErrorMonitor",
    "derive_failure_details",
    "match_console_error",
    "status_details_from_error",
    "CONSOLE_BLOCK_FOOTER",
    "CONSOLE_BLOCK_HEADER",
    "OutputStreamMultiplexer",
    "DEFAULT_SCREENSHOT_COMMAND",
    "SCREENSHOT_ATTACHMENT_NAME",
    "ScreenshotBridge",
    "extract_screenshot_payload",
    "CaptureError",
    "StreamInstallError",
    "attach",
    "get_current_channel",
    "label",
    "set_default_channel",
    "step",
    "use_channel",
]
