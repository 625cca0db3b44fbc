"""Examples: the leaf test cases of a spec tree."""

import inspect
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Set

from ..exceptions import ExampleFailureError
from .state import Capture, FailureKind, RunState

if TYPE_CHECKING:
    from .context import Context
    from .hooks import HookResult

__all__ = ["Example", "ExampleStatus", "ExampleRecord", "normalize_tags"]


def normalize_tags(tags: Optional[Iterable[str]]) -> Set[str]:
    """Normalize tag names by dropping empty entries and a leading '@'.

    Args:
        tags (Optional[Iterable[str]]): Tag names, or a single space/comma separated string.

    Returns:
        Set[str]: The normalized tag names.
    """
    if tags is None:
        return set()

    if isinstance(tags, str):
        tags = tags.replace(",", " ").split()

    return {tag.strip().lstrip("@") for tag in tags if tag and tag.strip().lstrip("@")}


class ExampleStatus(Enum):
    """The final outcome of an example."""

    NOT_RUN = "not_run"
    """The example was filtered out or never scheduled."""

    PASSED = "passed"
    """The example ran without any recorded exception."""

    FAILED = "failed"
    """The example has a recorded exception."""

    PENDING = "pending"
    """The example is declared without a body or explicitly skipped."""

    def __str__(self):
        return self.name


@dataclass
class ExampleRecord:
    """Captures collected while exercising one example."""

    before: Optional["HookResult"] = None
    act: Optional["HookResult"] = None
    body: Optional[Capture] = None
    after: Optional["HookResult"] = None

    def setup_capture(self) -> Optional[Capture]:
        """Return the first Before or Act capture, if any."""
        for result in (self.before, self.act):
            if result is not None and result.capture is not None:
                return result.capture
        return None

    def teardown_capture(self) -> Optional[Capture]:
        if self.after is not None:
            return self.after.capture
        return None

    def any_failure(self) -> bool:
        return any(capture is not None for capture in (self.setup_capture(), self.body, self.teardown_capture()))


class Example:
    """A single example (leaf test case) inside a context."""

    def __init__(
        self,
        name: str,
        body: Optional[Callable[[], Any]] = None,
        tags: Optional[Iterable[str]] = None,
        pending: bool = False,
    ):
        self.name = name
        self.body = body
        self.tags: Set[str] = normalize_tags(tags)
        self.pending = pending or body is None

        self._context: Optional[weakref.ReferenceType] = None

        self.status = ExampleStatus.NOT_RUN
        self.exception: Optional[BaseException] = None
        self.failure_kind: Optional[FailureKind] = None
        self.has_run = False
        self.record = ExampleRecord()

    def __repr__(self) -> str:
        return f"<Example {self.full_name()!r} {self.status}>"

    @property
    def context(self) -> Optional["Context"]:
        """The context owning this example (non-owning reference)."""
        return self._context() if self._context is not None else None

    @context.setter
    def context(self, context: Optional["Context"]) -> None:
        self._context = weakref.ref(context) if context is not None else None

    @property
    def failed(self) -> bool:
        return self.status is ExampleStatus.FAILED

    def all_tags(self) -> Set[str]:
        """Return the example's own tags together with the tags of all enclosing contexts."""
        tags = set(self.tags)
        if self.context is not None:
            tags.update(self.context.all_tags())
        return tags

    def full_name(self) -> str:
        if self.context is None:
            return self.name
        return f"{self.context.full_name()}. {self.name}."

    def reset(self) -> None:
        """Clear everything recorded by a previous run."""
        self.status = ExampleStatus.NOT_RUN
        self.exception = None
        self.failure_kind = None
        self.has_run = False
        self.record = ExampleRecord()

    def run(self, run: RunState) -> Optional[Capture]:
        """Execute the example body, awaiting it when asynchronous.

        Args:
            run (RunState): The active run.

        Returns:
            Optional[Capture]: The exception raised by the body, if any.
        """
        try:
            result = self.body()
            if inspect.isawaitable(result):
                run.wait(result)
        except Exception as e:  # pylint: disable=broad-exception-caught
            return Capture(e, FailureKind.BODY)
        return None

    def assign_exception(self, previous: Optional[Capture], following: Optional[Capture]) -> None:
        """Decide the final exception and status of an executed example.

        A setup-side failure (``previous``) wins over everything, a teardown-side failure
        (``following``) wins over the body's own exception.

        Args:
            previous (Optional[Capture]): BeforeAll, Before or Act failure.
            following (Optional[Capture]): After or AfterAll failure.
        """
        context_capture = previous if previous is not None else following

        if context_capture is not None:
            self.exception = ExampleFailureError(context_capture.exception, context_capture.kind.value)
            self.failure_kind = context_capture.kind
        elif self.record.body is not None:
            self.exception = self.record.body.exception
            self.failure_kind = FailureKind.BODY

        self.status = ExampleStatus.FAILED if self.exception is not None else ExampleStatus.PASSED
