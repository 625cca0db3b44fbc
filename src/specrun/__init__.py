"""A hierarchical spec runner with before/after hooks at every level."""

from .builder import ClassContext, Spec, build_tree
from .configuration import Configuration
from .constants import VERSION
from .domain import Context, Example, ExampleStatus, FailureKind, HookOutcome, HookResult, RunState, TagsFilter
from .exceptions import AsyncMismatchError, ExampleFailureError, HookResolutionError, SpecrunError
from .runner import RunResult, SpecRunner, run_specs

__version__ = VERSION

__all__ = [
    "AsyncMismatchError",
    "ClassContext",
    "Configuration",
    "Context",
    "Example",
    "ExampleFailureError",
    "ExampleStatus",
    "FailureKind",
    "HookOutcome",
    "HookResolutionError",
    "HookResult",
    "RunResult",
    "RunState",
    "Spec",
    "SpecRunner",
    "SpecrunError",
    "TagsFilter",
    "build_tree",
    "run_specs",
]
