"""Contexts: the group nodes of a spec tree."""

import weakref
from typing import Any, Callable, Iterable, Iterator, List, Optional, Set

from ..constants import FOCUS_TAG
from ..types import ClassHierarchy
from .example import Example, normalize_tags
from .hooks import ActChain, AfterAllChain, AfterChain, BeforeAllChain, BeforeChain, HookChain
from .resolver import Conventions
from .state import RunState

__all__ = ["Context"]


def hook_slot(chain_attribute: str, slot: str, doc: str) -> property:
    """Expose a hook slot of a chain as a context attribute (e.g. ``context.before``)."""

    def getter(self: "Context"):
        return getattr(getattr(self, chain_attribute), slot)

    def setter(self: "Context", value) -> None:
        setattr(getattr(self, chain_attribute), slot, value)

    return property(getter, setter, doc=doc)


class Context:
    """A named group of examples and nested contexts.

    A context owns its children. The reference to its parent is non-owning, so
    a tree is kept alive by holding its root.

    Hooks are declared by assignment::

        stack = root.describe("a stack")
        stack.before_all = open_connection
        stack.before = lambda: items.clear()
        stack.it("starts empty", lambda: expect(items) == [])
        stack.after_all_async = close_connection
    """

    before = hook_slot("before_chain", "hook", "Runs before each example, outside-in.")
    before_async = hook_slot("before_chain", "async_hook", "Async variant of ``before``.")
    act = hook_slot("act_chain", "hook", "Runs after all befores, before each example body.")
    act_async = hook_slot("act_chain", "async_hook", "Async variant of ``act``.")
    after = hook_slot("after_chain", "hook", "Runs after each example, inside-out.")
    after_async = hook_slot("after_chain", "async_hook", "Async variant of ``after``.")
    before_all = hook_slot("before_all_chain", "hook", "Runs once before the first example of this context.")
    before_all_async = hook_slot("before_all_chain", "async_hook", "Async variant of ``before_all``.")
    after_all = hook_slot("after_all_chain", "hook", "Runs once after the whole subtree has run.")
    after_all_async = hook_slot("after_all_chain", "async_hook", "Async variant of ``after_all``.")

    def __init__(self, name: str, tags: Optional[Iterable[str]] = None, parent: Optional["Context"] = None):
        self.name = name
        self.tags: Set[str] = normalize_tags(tags)
        self.contexts: List["Context"] = []
        self.examples: List[Example] = []
        self.instance: Any = None

        self._parent: Optional[weakref.ReferenceType] = None

        self.before_chain = BeforeChain(self)
        self.act_chain = ActChain(self)
        self.after_chain = AfterChain(self)
        self.before_all_chain = BeforeAllChain(self)
        self.after_all_chain = AfterAllChain(self)

        if parent is not None:
            parent.add_context(self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.full_name()!r}>"

    @property
    def parent(self) -> Optional["Context"]:
        return self._parent() if self._parent is not None else None

    @property
    def level(self) -> int:
        return len(self.ancestry())

    def chains(self) -> List[HookChain]:
        return [self.before_all_chain, self.before_chain, self.act_chain, self.after_chain, self.after_all_chain]

    def build_class_level(self, hierarchy: ClassHierarchy, conventions: Optional[Conventions] = None) -> None:
        """Resolve class-level hooks of every chain from a root-to-leaf class hierarchy."""
        for chain in self.chains():
            chain.build_class_level(hierarchy, conventions)

    # --- Tree construction ---

    def add_context(self, context: "Context") -> "Context":
        if context.parent is not None:
            raise ValueError(f"{context!r} already belongs to {context.parent!r}")
        if context is self or context in self.ancestry():
            raise ValueError(f"Adding {context!r} to {self!r} would create a cycle")

        context._parent = weakref.ref(self)
        self.contexts.append(context)
        return context

    def add_example(self, example: Example) -> Example:
        example.context = self
        self.examples.append(example)
        return example

    def context(
        self,
        name: str,
        build: Optional[Callable[["Context"], Any]] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> "Context":
        """Declare a nested context.

        Args:
            name (str): Display name.
            build (Optional[Callable[[Context], Any]]): Called with the new context to declare its content.
            tags (Optional[Iterable[str]]): Tags of the context.

        Returns:
            Context: The nested context.
        """
        child = self.add_context(Context(name, tags))
        if build is not None:
            build(child)
        return child

    describe = context

    def fdescribe(
        self,
        name: str,
        build: Optional[Callable[["Context"], Any]] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> "Context":
        """Declare a focused nested context."""
        return self.context(name, build, normalize_tags(tags) | {FOCUS_TAG})

    fcontext = fdescribe

    def it(self, name: str, body: Optional[Callable[[], Any]] = None, tags: Optional[Iterable[str]] = None) -> Example:
        """Declare an example. An example without a body is pending."""
        return self.add_example(Example(name, body, tags))

    specify = it

    def fit(self, name: str, body: Optional[Callable[[], Any]] = None, tags: Optional[Iterable[str]] = None) -> Example:
        """Declare a focused example."""
        return self.it(name, body, normalize_tags(tags) | {FOCUS_TAG})

    def xit(self, name: str, body: Optional[Callable[[], Any]] = None, tags: Optional[Iterable[str]] = None) -> Example:
        """Declare a pending example; its body never runs."""
        return self.add_example(Example(name, body, tags, pending=True))

    # --- Queries ---

    def ancestry(self) -> List["Context"]:
        """Return the contexts from the root down to this one (inclusive)."""
        path = []
        context: Optional[Context] = self
        while context is not None:
            path.append(context)
            context = context.parent
        path.reverse()
        return path

    def full_name(self) -> str:
        return ". ".join(context.name for context in self.ancestry())

    def all_tags(self) -> Set[str]:
        tags = set(self.tags)
        if self.parent is not None:
            tags.update(self.parent.all_tags())
        return tags

    def spec_instance(self) -> Any:
        """The spec instance hooks of this context are invoked on (nearest one up the tree)."""
        context: Optional[Context] = self
        while context is not None:
            if context.instance is not None:
                return context.instance
            context = context.parent
        return None

    def all_contexts(self) -> Iterator["Context"]:
        yield self
        for child in self.contexts:
            yield from child.all_contexts()

    def all_examples(self) -> Iterator[Example]:
        for context in self.all_contexts():
            yield from context.examples

    def any_unfiltered_example_in_subtree(self, run: RunState) -> bool:
        """Whether at least one non-pending example in this subtree is selected to run."""
        return any(not example.pending and run.includes(example) for example in self.all_examples())
