"""Resolution of class-level hooks from a spec class hierarchy.

Hook methods are discovered by name: a class defining ``before_each`` (or
``before_all``, ``act_each``, ``after_each``, ``after_all``) in its own body
contributes that method for its hierarchy level. An ``async def`` method is an
asynchronous hook, anything else callable a synchronous one.
"""

import inspect
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from ..constants import ACT_EACH_METHOD, AFTER_ALL_METHOD, AFTER_EACH_METHOD, BEFORE_ALL_METHOD, BEFORE_EACH_METHOD
from ..exceptions import HookResolutionError
from ..types import ClassHierarchy, ClassHook, MethodSelector

__all__ = ["Conventions", "ResolvedHooks", "class_hierarchy", "get_methods_from_hierarchy", "resolve"]


class ResolvedHooks(NamedTuple):
    sync: Optional[ClassHook] = None
    async_: Optional[Callable[[Any], Any]] = None


class Conventions:
    """Maps hook categories to the method names looked up on spec classes."""

    def __init__(
        self,
        before_all: str = BEFORE_ALL_METHOD,
        before_each: str = BEFORE_EACH_METHOD,
        act_each: str = ACT_EACH_METHOD,
        after_each: str = AFTER_EACH_METHOD,
        after_all: str = AFTER_ALL_METHOD,
    ):
        self.method_names = {
            BEFORE_ALL_METHOD: before_all,
            BEFORE_EACH_METHOD: before_each,
            ACT_EACH_METHOD: act_each,
            AFTER_EACH_METHOD: after_each,
            AFTER_ALL_METHOD: after_all,
        }

    def method_name(self, category: str) -> str:
        try:
            return self.method_names[category]
        except KeyError as e:
            raise HookResolutionError(f"Unknown hook category: {category!r}") from e

    def is_hook_name(self, name: str) -> bool:
        return name in self.method_names.values()

    def selectors(self, category: str) -> Tuple[MethodSelector, MethodSelector]:
        """Return the (sync, async) method selectors of a hook category."""
        name = self.method_name(category)
        return self.select(name, is_async=False), self.select(name, is_async=True)

    @staticmethod
    def select(name: str, is_async: bool) -> MethodSelector:
        def selector(cls: type) -> Optional[Callable[..., Any]]:
            # Only the class's own body counts, inherited methods belong to their own level.
            member = vars(cls).get(name)
            if member is None or not callable(member):
                return None
            if inspect.iscoroutinefunction(member) != is_async:
                return None
            return member

        return selector


def class_hierarchy(spec_class: type, base: Optional[type] = None) -> ClassHierarchy:
    """List the classes of ``spec_class``'s ancestry, outermost base class first.

    Args:
        spec_class (type): The most derived spec class.
        base (Optional[type]): Common base class; it and everything above it are left out.

    Returns:
        ClassHierarchy: Root-to-leaf list of classes.
    """
    hierarchy = []
    for cls in reversed(spec_class.__mro__):
        if cls is object or cls is base:
            continue
        if base is not None and not issubclass(cls, base):
            continue
        hierarchy.append(cls)
    return hierarchy


def get_methods_from_hierarchy(hierarchy: ClassHierarchy, select_method: MethodSelector) -> List[Callable[..., Any]]:
    return [method for method in map(select_method, hierarchy) if method is not None]


def resolve(
    hierarchy: ClassHierarchy,
    select_sync: MethodSelector,
    select_async: MethodSelector,
    reversed: bool = False,  # pylint: disable=redefined-builtin
) -> ResolvedHooks:
    """Combine the hook methods found along a class hierarchy into composite hooks.

    Args:
        hierarchy (ClassHierarchy): Classes, outermost base class first.
        select_sync (MethodSelector): Picks the synchronous hook method of a class, or None.
        select_async (MethodSelector): Picks the asynchronous hook method of a class, or None.
        reversed (bool): Invoke the most derived class's method first.

    Raises:
        HookResolutionError: If a single class yields both a sync and an async method.

    Returns:
        ResolvedHooks: Composite hooks invoking each method on the given instance, in order.
    """
    for cls in hierarchy:
        if select_sync(cls) is not None and select_async(cls) is not None:
            raise HookResolutionError(f"Class {cls.__name__!r} defines both a sync and an async hook for one category")

    methods = get_methods_from_hierarchy(hierarchy, select_sync)
    async_methods = get_methods_from_hierarchy(hierarchy, select_async)

    if reversed:
        methods.reverse()
        async_methods.reverse()

    sync_hook = None
    if methods:

        def sync_hook(instance: Any) -> None:
            for method in methods:
                method(instance)

    async_hook = None
    if async_methods:

        async def async_hook(instance: Any) -> None:
            for method in async_methods:
                await method(instance)

    return ResolvedHooks(sync_hook, async_hook)
