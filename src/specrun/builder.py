"""Build spec trees from spec classes.

A spec class declares class-level hooks, method examples and method contexts::

    class DescribeStack(Spec):
        def before_each(self):
            self.items = []

        def it_starts_empty(self):
            assert self.items == []

        def describe_pushing(self, context):
            context.before = lambda: self.items.append(1)
            context.it("holds one item", lambda: ...)

Every concrete spec class becomes a class context, nested under the class
context of its nearest concrete spec ancestor. A class declaring
``abstract = True`` gets no context of its own: its members are merged into
the class context of each concrete subclass.
"""

import functools
import logging
from typing import Dict, Iterable, List, Optional, Type

from .constants import ABSTRACT_ATTRIBUTE, CONTEXT_METHOD_PREFIXES, EXAMPLE_METHOD_PREFIX
from .domain.context import Context
from .domain.resolver import Conventions, class_hierarchy
from .types import ClassHierarchy, override

__all__ = ["Spec", "ClassContext", "build_tree", "is_abstract"]

logger = logging.getLogger(__name__)


class Spec:
    """Base class of all spec classes."""

    tags: Iterable[str] = ()
    """Tags of the class context; only the class's own declaration applies."""


def is_abstract(spec_class: type) -> bool:
    return bool(vars(spec_class).get(ABSTRACT_ATTRIBUTE, False))


def display_name(name: str) -> str:
    return name.replace("_", " ")


class ClassContext(Context):
    """The context of a concrete spec class, holding the spec instance examples run on."""

    def __init__(self, spec_class: Type[Spec], hierarchy: ClassHierarchy, parent: Optional[Context] = None):
        super().__init__(spec_class.__name__, vars(spec_class).get("tags", ()), parent)
        self.spec_class = spec_class
        self.hierarchy = hierarchy
        self.instance = spec_class()

    @override
    def __repr__(self) -> str:
        return f"<ClassContext {self.spec_class.__name__!r}>"

    def build(self, conventions: Conventions) -> None:
        """Resolve class-level hooks and declare method examples and method contexts."""
        self.build_class_level(self.hierarchy, conventions)

        for cls in self.hierarchy:
            for name, member in vars(cls).items():
                if not callable(member) or conventions.is_hook_name(name):
                    continue

                if name.startswith(CONTEXT_METHOD_PREFIXES):
                    # Each level's own method is called, even when a subclass redefines it.
                    member(self.instance, self.context(display_name(name)))
                elif name.startswith(EXAMPLE_METHOD_PREFIX):
                    self.it(display_name(name), functools.partial(member, self.instance))


def build_tree(*spec_classes: Type[Spec], conventions: Optional[Conventions] = None) -> List[Context]:
    """Build the class contexts of ``spec_classes`` and their concrete spec ancestors.

    Args:
        *spec_classes (Type[Spec]): Spec classes to run.
        conventions (Optional[Conventions]): Hook method naming conventions.

    Raises:
        HookResolutionError: If class-level hooks cannot be resolved.

    Returns:
        List[Context]: Root contexts, in declaration order.
    """
    conventions = conventions or Conventions()

    concrete: List[type] = []
    for spec_class in spec_classes:
        for cls in class_hierarchy(spec_class, Spec):
            if not is_abstract(cls) and cls not in concrete:
                concrete.append(cls)

    contexts: Dict[type, ClassContext] = {}
    roots: List[Context] = []

    for spec_class in concrete:
        hierarchy = class_hierarchy(spec_class, Spec)
        ancestors = [cls for cls in hierarchy[:-1] if cls in contexts]

        parent = contexts[ancestors[-1]] if ancestors else None
        own_hierarchy = hierarchy[hierarchy.index(ancestors[-1]) + 1 :] if ancestors else hierarchy

        context = ClassContext(spec_class, own_hierarchy, parent)
        context.build(conventions)
        contexts[spec_class] = context

        logger.debug("Built %r from %s", context, ", ".join(cls.__name__ for cls in own_hierarchy))

        if parent is None:
            roots.append(context)

    return roots
