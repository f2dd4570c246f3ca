"""Replay subsystem for hookpack."""

from hookpack.replay.engine import (
    GLOBAL_FAILURE_NAME,
    GLOBAL_FIXTURE_NAME,
    EngineState,
    HookOutcome,
    ReplayEngine,
    synthetic_hook_labels,
    synthetic_hook_name,
)
from hookpack.replay.exceptions import ReplayError, ReplayPersistenceError
from hookpack.replay.materializer import (
    UNCLOSED_STEP_STATUS,
    AttachmentSequence,
    StepTreeBuilder,
    build_step_forest,
    materialize_result,
)

__all__ = [
    "ReplayError",
    "ReplayPersistenceError",
    "GLOBAL_FAILURE_NAME",
    "GLOBAL_FIXTURE_NAME",
    "EngineState",
    "HookOutcome",
    "ReplayEngine",
    "synthetic_hook_labels",
    "synthetic_hook_name",
    "UNCLOSED_STEP_STATUS",
    "AttachmentSequence",
    "StepTreeBuilder",
    "build_step_forest",
    "materialize_result",
]
