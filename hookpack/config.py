"""Reporter configuration and environment overrides."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
import os
from pathlib import Path
from typing import Any

from hookpack.capture.screenshots import DEFAULT_SCREENSHOT_COMMAND

RESULTS_DIR_ENV_VAR = "HOOKPACK_RESULTS_DIR"
SCREENSHOT_COMMAND_ENV_VAR = "HOOKPACK_SCREENSHOT_COMMAND"
DIAGNOSTIC_MARKER_ENV_VAR = "HOOKPACK_DIAGNOSTIC_MARKER"
CAPTURE_CONSOLE_ENV_VAR = "HOOKPACK_CAPTURE_CONSOLE"
CONSOLE_STREAMS_ENV_VAR = "HOOKPACK_CONSOLE_STREAMS"
EXIT_HANDLER_ENV_VAR = "HOOKPACK_EXIT_HANDLER"
ERROR_MONITOR_ENV_VAR = "HOOKPACK_ERROR_MONITOR"

DEFAULT_RESULTS_DIR = "hookpack-results"
DEFAULT_DIAGNOSTIC_MARKER = "[DEBUG]"
SUPPORTED_CONSOLE_STREAMS = ("stdout", "stderr")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ReporterConfigError(ValueError):
    """Invalid reporter configuration."""


def _default_output_dir() -> Path:
    raw = os.environ.get(RESULTS_DIR_ENV_VAR, "").strip()
    return Path(raw or DEFAULT_RESULTS_DIR)


@dataclass(frozen=True, slots=True)
class ReporterConfig:
    output_dir: Path = field(default_factory=_default_output_dir)
    screenshot_command: str = DEFAULT_SCREENSHOT_COMMAND
    diagnostic_marker: str = DEFAULT_DIAGNOSTIC_MARKER
    capture_console: bool = True
    console_streams: tuple[str, ...] = ("stdout",)
    register_exit_handler: bool = True
    install_error_monitor: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "output_dir", Path(self.output_dir))
        object.__setattr__(self, "console_streams", tuple(self.console_streams))
        if not self.screenshot_command:
            raise ReporterConfigError("screenshot_command must be a non-empty string.")
        if not self.diagnostic_marker:
            raise ReporterConfigError("diagnostic_marker must be a non-empty string.")
        if self.capture_console and not self.console_streams:
            raise ReporterConfigError("console_streams must name at least one stream.")
        unknown = sorted(set(self.console_streams) - set(SUPPORTED_CONSOLE_STREAMS))
        if unknown:
            raise ReporterConfigError(
                "Unsupported console streams: " + ", ".join(unknown)
            )

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "ReporterConfig":
        """Build config from ``HOOKPACK_*`` variables; keyword overrides win."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        output_dir = env.get(RESULTS_DIR_ENV_VAR, "").strip()
        values["output_dir"] = Path(output_dir or DEFAULT_RESULTS_DIR)

        screenshot_command = env.get(SCREENSHOT_COMMAND_ENV_VAR, "").strip()
        if screenshot_command:
            values["screenshot_command"] = screenshot_command

        marker = env.get(DIAGNOSTIC_MARKER_ENV_VAR)
        if marker:
            values["diagnostic_marker"] = marker

        streams = env.get(CONSOLE_STREAMS_ENV_VAR)
        if streams is not None:
            values["console_streams"] = tuple(
                part.strip() for part in streams.split(",") if part.strip()
            )

        for env_name, key in (
            (CAPTURE_CONSOLE_ENV_VAR, "capture_console"),
            (EXIT_HANDLER_ENV_VAR, "register_exit_handler"),
            (ERROR_MONITOR_ENV_VAR, "install_error_monitor"),
        ):
            parsed = _parse_bool(env, env_name)
            if parsed is not None:
                values[key] = parsed

        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **changes: Any) -> "ReporterConfig":
        return replace(self, **changes)


def _parse_bool(env: Mapping[str, str], name: str) -> bool | None:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    normalized = raw.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ReporterConfigError(f"{name} must be a boolean flag, got {raw!r}.")
