"""The hook-lifecycle engine: contexts, examples, hook chains and run state."""

from .context import Context
from .example import Example, ExampleRecord, ExampleStatus
from .filtering import TagsFilter
from .hooks import (
    ActChain,
    AfterAllChain,
    AfterChain,
    BeforeAllChain,
    BeforeChain,
    HookChain,
    HookOutcome,
    HookResult,
    TraversingHookChain,
)
from .resolver import Conventions, ResolvedHooks, class_hierarchy, resolve
from .state import Capture, ChainState, FailureKind, RunState

__all__ = [
    "ActChain",
    "AfterAllChain",
    "AfterChain",
    "BeforeAllChain",
    "BeforeChain",
    "Capture",
    "ChainState",
    "Context",
    "Conventions",
    "Example",
    "ExampleRecord",
    "ExampleStatus",
    "FailureKind",
    "HookChain",
    "HookOutcome",
    "HookResult",
    "ResolvedHooks",
    "RunState",
    "TagsFilter",
    "TraversingHookChain",
    "class_hierarchy",
    "resolve",
]
