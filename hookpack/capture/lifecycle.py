"""Lifecycle bookkeeping for suites, hooks and results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import re
from typing import Any, Literal

HookKind = Literal["before_all", "after_all", "before_each", "after_each", "unknown"]
ScopeCategory = Literal["suite", "hook", "result"]

ROOT_SCOPE_NAME = "(root)"
SETUP_HOOK_KINDS: tuple[str, ...] = ("before_all", "after_all")

_HOOK_KIND_MARKERS: tuple[tuple[str, HookKind], ...] = (
    ('"before all" hook', "before_all"),
    ('"after all" hook', "after_all"),
    ('"before each" hook', "before_each"),
    ('"after each" hook', "after_each"),
)
_FOR_PATTERN = re.compile(r"hook for (.+)")
_IN_PATTERN = re.compile(r'hook in "(.+)"')


@dataclass(frozen=True, slots=True)
class HookScope:
    """Kind and owning scope decoded from a hook title."""

    kind: HookKind
    scope_name: str

    @property
    def is_setup(self) -> bool:
        return self.kind in SETUP_HOOK_KINDS

    @property
    def hook_type(self) -> str:
        if self.kind == "before_all":
            return "beforeAll"
        if self.kind == "after_all":
            return "afterAll"
        if self.kind == "before_each":
            return "beforeEach"
        if self.kind == "after_each":
            return "afterEach"
        return "hook"


@dataclass(slots=True)
class HookInfo:
    """Hook notification payload for hosts without their own hook objects."""

    title: str
    error: Any = None


def parse_hook_title(title: str) -> HookScope:
    """Decode ``"before all" hook for Suite``-style titles.

    ``{root}`` and titles without a recognizable scope map to ``(root)``.
    """
    kind: HookKind = "unknown"
    for marker, marker_kind in _HOOK_KIND_MARKERS:
        if marker in title:
            kind = marker_kind
            break

    scope_name = ROOT_SCOPE_NAME
    for_match = _FOR_PATTERN.search(title)
    in_match = _IN_PATTERN.search(title)
    if for_match and for_match.group(1):
        scope_name = for_match.group(1)
    elif in_match and in_match.group(1):
        scope_name = ROOT_SCOPE_NAME if in_match.group(1) == "{root}" else in_match.group(1)
    return HookScope(kind=kind, scope_name=scope_name)


def hook_title(hook: Any) -> str:
    title = hook.get("title") if isinstance(hook, Mapping) else getattr(hook, "title", None)
    return title if isinstance(title, str) else ""


def hook_error(hook: Any) -> Any:
    if isinstance(hook, Mapping):
        return hook.get("error")
    return getattr(hook, "error", None)


class LifecycleTracker:
    """Tracks open suites, hooks and results plus the two capture mode flags.

    Handles are tracked by identity so unhashable host objects work too.
    """

    def __init__(self) -> None:
        self._open: dict[str, dict[int, Any]] = {"suite": {}, "hook": {}, "result": {}}
        self._setup_hook: HookScope | None = None
        self._has_real_result_started = False
        self.current_hook_scope_name = ""

    @property
    def open_suites(self) -> tuple[Any, ...]:
        return tuple(self._open["suite"].values())

    @property
    def open_hooks(self) -> tuple[Any, ...]:
        return tuple(self._open["hook"].values())

    @property
    def open_results(self) -> tuple[Any, ...]:
        return tuple(self._open["result"].values())

    @property
    def in_setup_hook(self) -> bool:
        return self._setup_hook is not None

    @property
    def setup_hook(self) -> HookScope | None:
        return self._setup_hook

    @property
    def has_real_result_started(self) -> bool:
        return self._has_real_result_started

    def on_scope_open(self, category: ScopeCategory, handle: Any) -> None:
        self._open[category][id(handle)] = handle
        if category == "result":
            self._has_real_result_started = True

    def on_scope_close(self, category: ScopeCategory, handle: Any) -> None:
        self._open[category].pop(id(handle), None)

    def enter_setup_hook(self, name: str, kind: HookKind = "before_all") -> None:
        self._setup_hook = HookScope(kind=kind, scope_name=name)
        self.current_hook_scope_name = name

    def exit_setup_hook(self) -> HookScope | None:
        scope = self._setup_hook
        self._setup_hook = None
        return scope

    def nothing_open(self) -> bool:
        return not any(self._open.values())

    def is_idle_window(self) -> bool:
        return self.nothing_open() and not self._has_real_result_started

    def is_capture_window(self) -> bool:
        return self.in_setup_hook or self.is_idle_window()

    def snapshot(self) -> dict[str, Any]:
        return {
            "open_suites": len(self._open["suite"]),
            "open_hooks": len(self._open["hook"]),
            "open_results": len(self._open["result"]),
            "in_setup_hook": self.in_setup_hook,
            "has_real_result_started": self._has_real_result_started,
            "current_hook_scope_name": self.current_hook_scope_name,
        }
