"""Hook chains: resolution, sequencing and execution of setup/teardown hooks.

Every context owns one chain per hook category. A chain holds two hook levels:

- the context level, assigned while the context is declared (``hook`` or ``async_hook``);
- the class level, resolved from the spec class ancestry (``class_hook`` or
  ``async_class_hook``).

Each level may be synchronous or asynchronous, never both. Mixing them is an
``AsyncMismatchError``, captured like any other hook failure.

Chains never raise hook failures to their caller. ``run`` returns a
``HookResult`` and keeps the first capture of the run in the chain's
``ChainState``.
"""

import inspect
import logging
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Optional

from ..exceptions import AsyncMismatchError
from ..types import AsyncHook, ClassHierarchy, ClassHook, Hook, override
from .resolver import Conventions, resolve
from .state import Capture, FailureKind, RunState

if TYPE_CHECKING:
    from .context import Context

__all__ = [
    "HookOutcome",
    "HookResult",
    "HookChain",
    "TraversingHookChain",
    "BeforeChain",
    "ActChain",
    "AfterChain",
    "BeforeAllChain",
    "AfterAllChain",
]

logger = logging.getLogger(__name__)


class HookOutcome(Enum):
    """What happened when a chain was asked to run."""

    RAN = "ran"
    """All hooks ran without failure."""

    CAPTURED = "captured"
    """Hooks ran and at least one failure was captured."""

    SKIPPED = "skipped"
    """The chain's guard refused to run; no hook executed."""

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class HookResult:
    outcome: HookOutcome
    capture: Optional[Capture] = None

    @property
    def exception(self) -> Optional[BaseException]:
        return self.capture.exception if self.capture is not None else None

    @classmethod
    def ran(cls) -> "HookResult":
        return cls(HookOutcome.RAN)

    @classmethod
    def skipped(cls) -> "HookResult":
        return cls(HookOutcome.SKIPPED)

    @classmethod
    def captured(cls, capture: Capture) -> "HookResult":
        return cls(HookOutcome.CAPTURED, capture)


def first_capture(captures: Iterable[Optional[Capture]]) -> Optional[Capture]:
    return next((capture for capture in captures if capture is not None), None)


def close_awaitable(awaitable: Any) -> None:
    """Close a coroutine that will never be awaited, avoiding a 'never awaited' warning."""
    close = getattr(awaitable, "close", None)
    if callable(close):
        close()


class HookChain:
    """Base class of all hook chains.

    Subclasses set the category names and override ``can_run``.
    """

    hook_name: str = ""
    """Name of the synchronous context-level hook (e.g. 'before')."""

    async_hook_name: str = ""
    """Name of the asynchronous context-level hook (e.g. 'before_async')."""

    class_hook_name: str = ""
    """Name of the class-level hook method (e.g. 'before_each')."""

    kind: FailureKind = FailureKind.BODY

    reversed: bool = False
    """After-family chains run inside-out and resolve class hooks most-derived first."""

    def __init__(self, context: "Context"):
        self._context = weakref.ref(context)

        self.hook: Optional[Hook] = None
        self.async_hook: Optional[AsyncHook] = None

        self.class_hook: Optional[ClassHook] = None
        self.async_class_hook: Optional[Callable[[Any], Any]] = None

    def __repr__(self) -> str:
        context = self.context
        return f"<{type(self).__name__} {context.name if context is not None else None!r}>"

    @property
    def context(self) -> "Context":
        return self._context()

    def build_class_level(self, class_hierarchy: ClassHierarchy, conventions: Optional[Conventions] = None) -> None:
        """Resolve the class-level hooks from a root-to-leaf class hierarchy.

        Args:
            class_hierarchy (ClassHierarchy): Spec classes, outermost base class first.
            conventions (Optional[Conventions]): Method naming conventions.
        """
        conventions = conventions or Conventions()
        select_sync, select_async = conventions.selectors(self.class_hook_name)

        resolved = resolve(class_hierarchy, select_sync, select_async, reversed=self.reversed)

        self.class_hook = resolved.sync
        self.async_class_hook = resolved.async_

    def exception(self, run: RunState) -> Optional[BaseException]:
        """The first exception captured by this chain during ``run``."""
        return run.chain_state(self).exception

    def can_run(self, instance: Any, run: RunState) -> bool:
        return True

    def enter(self, run: RunState) -> None:
        """Called once the guard allowed the chain to run, before any hook executes."""

    def run(self, instance: Any, run: RunState) -> HookResult:
        """Run the chain for one spec instance.

        Args:
            instance (Any): The spec instance class-level hooks are invoked on.
            run (RunState): The active run.

        Returns:
            HookResult: SKIPPED when the guard refused, CAPTURED with the first
            failure, RAN otherwise.
        """
        if not self.can_run(instance, run):
            return HookResult.skipped()

        self.enter(run)

        capture = self.run_hooks(instance, run)
        if capture is None:
            return HookResult.ran()

        state = run.chain_state(self)
        if state.capture is None:
            state.capture = capture

        return HookResult.captured(capture)

    def run_hooks(self, instance: Any, run: RunState) -> Optional[Capture]:
        """Run both hook levels of this context, returning the first failure."""
        levels: List[Callable[[], None]] = [
            lambda: self.run_class_hooks(instance, run),
            lambda: self.run_context_hooks(run),
        ]
        if self.reversed:
            levels.reverse()

        # Every level is attempted, the first failure wins.
        return first_capture([self.guard(level) for level in levels])

    def guard(self, action: Callable[[], None]) -> Optional[Capture]:
        try:
            action()
        except AsyncMismatchError as e:
            logger.warning("%r: %s", self, e)
            return Capture(e, FailureKind.MISMATCH)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.debug("%r: hook failed with %s: %s", self, type(e).__name__, e)
            return Capture(e, self.kind)
        return None

    def run_class_hooks(self, instance: Any, run: RunState) -> None:
        if self.class_hook is not None and self.async_class_hook is not None:
            raise AsyncMismatchError(
                "A spec class with all its ancestors cannot set both sync and async "
                f"class-level '{self.class_hook_name}' hooks, they should either be all sync or all async"
            )

        if self.class_hook is not None:
            self.class_hook(instance)

        if self.async_class_hook is not None:
            run.wait(self.async_class_hook(instance))

    def run_context_hooks(self, run: RunState) -> None:
        if self.hook is not None and self.async_hook is not None:
            raise AsyncMismatchError(
                f"A single context cannot set both a '{self.hook_name}' and a '{self.async_hook_name}', "
                "please pick one of the two"
            )

        if self.hook is not None:
            if inspect.iscoroutinefunction(self.hook):
                raise self.async_assigned_to_sync()

            result = self.hook()
            if inspect.isawaitable(result):
                close_awaitable(result)
                raise self.async_assigned_to_sync()

        if self.async_hook is not None:
            result = self.async_hook()
            if not inspect.isawaitable(result):
                raise AsyncMismatchError(
                    f"'{self.async_hook_name}' must be set to an async function, "
                    f"please use '{self.hook_name}' for a sync one instead"
                )
            run.wait(result)

    def async_assigned_to_sync(self) -> AsyncMismatchError:
        return AsyncMismatchError(
            f"'{self.hook_name}' cannot be set to an async function, please use '{self.async_hook_name}' instead"
        )


class TraversingHookChain(HookChain):
    """A chain that also runs the same chain of every ancestor context.

    Not reversed: ancestors first (outside-in). Reversed: ancestors last (inside-out).
    """

    chain_attribute: str = ""
    """Attribute holding the same-category chain on a context."""

    @override
    def run_hooks(self, instance: Any, run: RunState) -> Optional[Capture]:
        captures = []

        if not self.reversed:
            captures.append(self.run_ancestors(instance, run))

        captures.append(super().run_hooks(instance, run))

        if self.reversed:
            captures.append(self.run_ancestors(instance, run))

        return first_capture(captures)

    def run_ancestors(self, instance: Any, run: RunState) -> Optional[Capture]:
        parent = self.context.parent
        if parent is None:
            return None
        return getattr(parent, self.chain_attribute).run_hooks(instance, run)


class BeforeChain(TraversingHookChain):
    hook_name = "before"
    async_hook_name = "before_async"
    class_hook_name = "before_each"
    chain_attribute = "before_chain"
    kind = FailureKind.BEFORE


class ActChain(TraversingHookChain):
    hook_name = "act"
    async_hook_name = "act_async"
    class_hook_name = "act_each"
    chain_attribute = "act_chain"
    kind = FailureKind.ACT


class AfterChain(TraversingHookChain):
    hook_name = "after"
    async_hook_name = "after_async"
    class_hook_name = "after_each"
    chain_attribute = "after_chain"
    kind = FailureKind.AFTER
    reversed = True

    @override
    def can_run(self, instance: Any, run: RunState) -> bool:
        return not self.context.before_all_chain.any_before_alls_threw(run)


class OneShotHookChain(HookChain):
    """A group-level chain: runs at most once per context per run and never traverses ancestors."""

    @override
    def can_run(self, instance: Any, run: RunState) -> bool:
        if run.chain_state(self).has_run:
            return False

        if self.context.before_all_chain.ancestor_before_alls_threw(run):
            return False

        return self.context.any_unfiltered_example_in_subtree(run)

    @override
    def enter(self, run: RunState) -> None:
        run.chain_state(self).has_run = True

    def has_run(self, run: RunState) -> bool:
        return run.chain_state(self).has_run


class BeforeAllChain(OneShotHookChain):
    hook_name = "before_all"
    async_hook_name = "before_all_async"
    class_hook_name = "before_all"
    kind = FailureKind.BEFORE_ALL

    def any_before_alls_threw(self, run: RunState) -> bool:
        """Whether this context's or any ancestor's BeforeAll failed during ``run``."""
        return self.exception(run) is not None or self.ancestor_before_alls_threw(run)

    def ancestor_before_alls_threw(self, run: RunState) -> bool:
        parent = self.context.parent
        if parent is None:
            return False
        return parent.before_all_chain.any_before_alls_threw(run)


class AfterAllChain(OneShotHookChain):
    hook_name = "after_all"
    async_hook_name = "after_all_async"
    class_hook_name = "after_all"
    kind = FailureKind.AFTER_ALL
    reversed = True

    @override
    def can_run(self, instance: Any, run: RunState) -> bool:
        # A group whose setup failed gets no teardown.
        if self.context.before_all_chain.exception(run) is not None:
            return False
        return super().can_run(instance, run)
