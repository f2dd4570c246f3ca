"""Stable public API surface for hookkit.

This module is the supported import path for library users.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from hookpack.capture import HookInfo, attach, label, step, use_channel
from hookpack.config import ReporterConfig, ReporterConfigError
from hookpack.core.models import ResultRecord
from hookpack.reporter import FailingHookReporter, ReporterDiagnostic
from hookpack.results import iter_results
from hookpack.sink import EventChannel, FileSystemSink, ReportingSink

__version__ = "0.1.0"


def install_reporter(
    config: ReporterConfig | None = None,
    *,
    output_dir: str | Path | None = None,
    sink: ReportingSink | None = None,
    **options: Any,
) -> FailingHookReporter:
    """Create a reporter for this worker and make its channel the default.

    ``output_dir`` is a shortcut for ``ReporterConfig(output_dir=...)``;
    remaining keyword options go to ``FailingHookReporter``.
    """
    resolved = config or ReporterConfig.from_env()
    if output_dir is not None:
        resolved = resolved.with_overrides(output_dir=Path(output_dir))
    reporter = FailingHookReporter(resolved, sink=sink, **options)
    return reporter.make_default()


def read_results(results_dir: str | Path) -> list[ResultRecord]:
    """Load every valid result in ``results_dir`` ordered by start time."""
    return list(iter_results(results_dir))


__all__ = [
    "__version__",
    "EventChannel",
    "FailingHookReporter",
    "FileSystemSink",
    "HookInfo",
    "ReporterConfig",
    "ReporterConfigError",
    "ReporterDiagnostic",
    "ReportingSink",
    "ResultRecord",
    "attach",
    "install_reporter",
    "label",
    "read_results",
    "step",
    "use_channel",
]
