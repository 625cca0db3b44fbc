import asyncio
from typing import Any, Callable, List, Optional

from specrun import Configuration, Context, RunResult, SpecRunner


class Recorder:
    """Collects the order in which hooks and example bodies are called."""

    def __init__(self):
        self.calls: List[str] = []

    def __call__(self, name: str) -> Callable[[], None]:
        """Return a callable appending ``name`` to the recorded calls."""

        def record() -> None:
            self.calls.append(name)

        return record

    def raising(self, name: str, exception: BaseException) -> Callable[[], None]:
        """Return a callable recording ``name`` and then raising ``exception``."""

        def record_and_raise() -> None:
            self.calls.append(name)
            raise exception

        return record_and_raise

    def async_(self, name: str) -> Callable[[], Any]:
        """Return an async function recording ``name`` after yielding to the loop once."""

        async def record() -> None:
            await asyncio.sleep(0)
            self.calls.append(name)

        return record

    @property
    def sequence(self) -> str:
        return "".join(self.calls)


def raise_(exception: BaseException) -> Callable[[], None]:
    def raiser() -> None:
        raise exception

    return raiser


def run_tree(*roots: Context, config: Optional[Configuration] = None, **settings: Any) -> RunResult:
    """Run ``roots`` with a configuration that ignores the environment."""
    if config is None:
        config = Configuration(load_config=False, **settings)
    return SpecRunner(config).run(*roots)


def expect(actual: Any, expected: Any) -> None:
    """Assertion usable inside lambdas."""
    if actual != expected:
        raise AssertionError(f"Expected {expected!r}, got {actual!r}")
