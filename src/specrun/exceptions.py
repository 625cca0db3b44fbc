from typing import Optional


class SpecrunError(Exception):
    """Base exception for all spec runner errors."""


class AsyncMismatchError(SpecrunError):
    """Raised when a single hook level mixes synchronous and asynchronous hooks."""


class HookResolutionError(SpecrunError):
    """Raised when class-level hooks cannot be resolved before a run starts."""


class ExampleFailureError(SpecrunError):
    """Wraps a context failure (a failing hook) that is reported for an example.

    Attributes:
        cause (BaseException): The exception captured by the failing hook chain.
        kind (Optional[str]): The hook category that captured the exception.
    """

    def __init__(self, cause: BaseException, kind: Optional[str] = None):
        super().__init__(f"Context Failure: {type(cause).__name__}: {cause}")
        self.cause = cause
        self.kind = kind
        self.__cause__ = cause
