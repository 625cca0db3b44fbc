import typing
from typing import Any, Awaitable, Callable, Dict, List, Optional

DefaultValues = Dict[str, Any]
Hook = Callable[[], Any]
AsyncHook = Callable[[], Awaitable[Any]]
ClassHook = Callable[[Any], Any]
MethodSelector = Callable[[type], Optional[Callable[..., Any]]]
ClassHierarchy = List[type]
Tags = List[str]

if hasattr(typing, "override"):  # 3.12+
    override = typing.override
else:  # <=3.11
    _F = typing.TypeVar("_F", bound=typing.Callable[..., typing.Any])

    def override(arg: _F, /) -> _F:
        """Indicate that a method is intended to override a method in a base class.

        Usage:

            class Base:
                def method(self) -> None:
                    pass

            class Child(Base):
                @override
                def method(self) -> None:
                    super().method()

        There is no runtime checking of these properties. The decorator
        sets the ``__override__`` attribute to ``True`` on the decorated object
        to allow runtime introspection.

        See PEP 698 for details.

        """
        try:
            arg.__override__ = True
        except (AttributeError, TypeError):
            # Skip the attribute silently if it is not writable.
            pass
        return arg
