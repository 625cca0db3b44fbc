"""Per-run mutable state.

The spec tree and its hook chains are built once and never mutated by a run.
Everything a run writes (captured hook exceptions, one-shot flags, the event
loop used to await asynchronous hooks) lives in a ``RunState`` so repeated
runs of the same tree start clean.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Dict, Optional

if TYPE_CHECKING:
    from .example import Example
    from .filtering import TagsFilter

__all__ = ["FailureKind", "Capture", "ChainState", "RunState"]


class FailureKind(Enum):
    """Where an exception recorded for an example was captured."""

    BODY = "body"
    BEFORE_ALL = "before_all"
    BEFORE = "before"
    ACT = "act"
    AFTER = "after"
    AFTER_ALL = "after_all"
    MISMATCH = "mismatch"

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class Capture:
    """An exception together with the stage that captured it."""

    exception: BaseException
    kind: FailureKind


@dataclass
class ChainState:
    """Run-scoped state of one hook chain."""

    capture: Optional[Capture] = None
    """First failure captured by the chain during the run."""

    has_run: bool = False
    """One-shot flag for group-level chains."""

    @property
    def exception(self) -> Optional[BaseException]:
        return self.capture.exception if self.capture is not None else None


class RunState:
    """Holds everything a single run of a spec tree mutates."""

    def __init__(self, tags_filter: Optional["TagsFilter"] = None):
        self.tags_filter = tags_filter
        self._chains: Dict[Any, ChainState] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def __enter__(self) -> "RunState":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def chain_state(self, chain: Any) -> ChainState:
        """Return the state of ``chain`` for this run, creating it on first access."""
        state = self._chains.get(chain)
        if state is None:
            state = self._chains[chain] = ChainState()
        return state

    def includes(self, example: "Example") -> bool:
        """Whether the active filter selects ``example`` to run."""
        if self.tags_filter is None:
            return True
        return self.tags_filter.includes(example)

    def wait(self, awaitable: Awaitable[Any]) -> Any:
        """Block until ``awaitable`` completes and return its result.

        Hooks are awaited one at a time on a loop owned by the run, so their order is
        preserved even when a hook body yields internally.
        """
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop.run_until_complete(awaitable)

    def close(self) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.run_until_complete(self._loop.shutdown_asyncgens())
            self._loop.close()
        self._loop = None
