import pytest

from specrun import AsyncMismatchError, Context, FailureKind, HookOutcome, RunState
from specrun.domain.resolver import Conventions
from tests.support import Recorder, raise_

# --- Helpers ---


class HookSpec:
    """Spec class providing one class-level hook per category."""

    def __init__(self, recorder: Recorder):
        self.recorder = recorder

    def before_each(self):
        self.recorder.calls.append("class-before")

    def after_each(self):
        self.recorder.calls.append("class-after")


def make_tree():
    """root > outer > inner, with one example in inner."""
    root = Context("root")
    outer = root.context("outer")
    inner = outer.context("inner")
    inner.it("example", lambda: None)
    return root, outer, inner


# --- Fixtures ---


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def run():
    with RunState() as state:
        yield state


# --- TESTS ---


class TestBeforeChain:
    """Before chains run outside-in: ancestors first, class hooks before the context hook."""

    def test_runs_ancestors_outside_in(self, recorder: Recorder, run: RunState):
        root, outer, inner = make_tree()
        root.before = recorder("root")
        outer.before = recorder("outer")
        inner.before = recorder("inner")

        result = inner.before_chain.run(None, run)

        assert result.outcome is HookOutcome.RAN, "Before chain should run cleanly."
        assert recorder.calls == ["root", "outer", "inner"], "Before hooks must run from the root inwards."

    def test_class_hooks_run_before_context_hook(self, recorder: Recorder, run: RunState):
        context = Context("spec")
        context.build_class_level([HookSpec], Conventions())
        context.before = recorder("context-before")

        context.before_chain.run(HookSpec(recorder), run)

        assert recorder.calls == ["class-before", "context-before"]

    def test_first_exception_is_kept_and_other_levels_still_run(self, recorder: Recorder, run: RunState):
        root, outer, inner = make_tree()
        first = ValueError("outer before")
        root.before = recorder("root")
        outer.before = recorder.raising("outer", first)
        inner.before = recorder.raising("inner", KeyError("inner before"))

        result = inner.before_chain.run(None, run)

        assert result.outcome is HookOutcome.CAPTURED
        assert result.exception is first, "Only the first failure of the chain is kept."
        assert result.capture.kind is FailureKind.BEFORE
        assert recorder.calls == ["root", "outer", "inner"], "A failing level must not stop the other levels."
        assert inner.before_chain.exception(run) is first

    def test_async_hook_is_awaited_in_order(self, recorder: Recorder, run: RunState):
        root, outer, inner = make_tree()
        root.before_async = recorder.async_("root")
        outer.before = recorder("outer")
        inner.before_async = recorder.async_("inner")

        result = inner.before_chain.run(None, run)

        assert result.outcome is HookOutcome.RAN
        assert recorder.calls == ["root", "outer", "inner"]


class TestAfterChain:
    """After chains run inside-out: the context hook, then class hooks, then the ancestors."""

    def test_runs_ancestors_inside_out(self, recorder: Recorder, run: RunState):
        root, outer, inner = make_tree()
        root.after = recorder("root")
        outer.after = recorder("outer")
        inner.after = recorder("inner")

        inner.after_chain.run(None, run)

        assert recorder.calls == ["inner", "outer", "root"], "After hooks must run from the example outwards."

    def test_context_hook_runs_before_class_hooks(self, recorder: Recorder, run: RunState):
        context = Context("spec")
        context.build_class_level([HookSpec], Conventions())
        context.after = recorder("context-after")

        context.after_chain.run(HookSpec(recorder), run)

        assert recorder.calls == ["context-after", "class-after"]

    def test_skipped_when_a_before_all_failed(self, recorder: Recorder, run: RunState):
        root, outer, inner = make_tree()
        outer.before_all = raise_(RuntimeError("setup"))
        inner.after = recorder("inner")

        outer.before_all_chain.run(None, run)
        result = inner.after_chain.run(None, run)

        assert result.outcome is HookOutcome.SKIPPED
        assert recorder.calls == [], "No after hook runs below a failed before_all."


class TestAsyncMismatch:
    """Mixing sync and async hooks at one level is captured as a mismatch."""

    def test_sync_and_async_hook_on_one_context(self, recorder: Recorder, run: RunState):
        context = Context("mixed")
        context.it("example", lambda: None)
        context.before = recorder("sync")
        context.before_async = recorder.async_("async")

        result = context.before_chain.run(None, run)

        assert result.outcome is HookOutcome.CAPTURED
        assert isinstance(result.exception, AsyncMismatchError)
        assert result.capture.kind is FailureKind.MISMATCH
        assert recorder.calls == [], "Neither of the mixed hooks may run."

    def test_async_function_in_sync_slot(self, recorder: Recorder, run: RunState):
        context = Context("misassigned")
        context.before_all = recorder.async_("async")
        context.it("example", lambda: None)

        result = context.before_all_chain.run(None, run)

        assert isinstance(result.exception, AsyncMismatchError)
        assert "before_all_async" in str(result.exception)
        assert recorder.calls == []

    def test_lambda_returning_coroutine_in_sync_slot(self, recorder: Recorder, run: RunState):
        context = Context("misassigned")
        async_hook = recorder.async_("async")
        context.after = lambda: async_hook()

        result = context.after_chain.run(None, run)

        assert isinstance(result.exception, AsyncMismatchError)
        assert recorder.calls == [], "The returned coroutine must never be awaited."

    def test_sync_function_in_async_slot(self, recorder: Recorder, run: RunState):
        context = Context("misassigned")
        context.act_async = recorder("sync")

        result = context.act_chain.run(None, run)

        assert isinstance(result.exception, AsyncMismatchError)

    def test_sync_and_async_class_hooks(self, run: RunState):
        class SyncBase:
            def before_each(self):
                pass

        class AsyncDerived(SyncBase):
            async def before_each(self):
                pass

        context = Context("spec")
        context.build_class_level([SyncBase, AsyncDerived], Conventions())

        result = context.before_chain.run(AsyncDerived(), run)

        assert isinstance(result.exception, AsyncMismatchError)
        assert "before_each" in str(result.exception)


class TestBeforeAllChain:
    """BeforeAll chains run once per context and only for selected examples."""

    def test_runs_exactly_once(self, recorder: Recorder, run: RunState):
        context = Context("group")
        context.it("one", lambda: None)
        context.it("two", lambda: None)
        context.before_all = recorder("before_all")

        first = context.before_all_chain.run(None, run)
        second = context.before_all_chain.run(None, run)

        assert first.outcome is HookOutcome.RAN
        assert second.outcome is HookOutcome.SKIPPED
        assert recorder.calls == ["before_all"]
        assert context.before_all_chain.has_run(run)

    def test_does_not_traverse_ancestors(self, recorder: Recorder, run: RunState):
        root, outer, inner = make_tree()
        root.before_all = recorder("root")
        inner.before_all = recorder("inner")

        inner.before_all_chain.run(None, run)

        assert recorder.calls == ["inner"]

    def test_skipped_without_examples(self, recorder: Recorder, run: RunState):
        context = Context("empty")
        context.context("nested").xit("pending")
        context.before_all = recorder("before_all")

        result = context.before_all_chain.run(None, run)

        assert result.outcome is HookOutcome.SKIPPED
        assert recorder.calls == []

    def test_skipped_below_a_failed_ancestor(self, recorder: Recorder, run: RunState):
        root, outer, inner = make_tree()
        outer.before_all = raise_(RuntimeError("setup"))
        inner.before_all = recorder("inner")

        outer.before_all_chain.run(None, run)
        result = inner.before_all_chain.run(None, run)

        assert result.outcome is HookOutcome.SKIPPED
        assert recorder.calls == []
        assert inner.before_all_chain.any_before_alls_threw(run)
        assert not root.before_all_chain.any_before_alls_threw(run)

    def test_state_does_not_leak_between_runs(self, recorder: Recorder):
        context = Context("group")
        context.it("example", lambda: None)
        context.before_all = recorder.raising("before_all", RuntimeError("setup"))

        with RunState() as first_run:
            context.before_all_chain.run(None, first_run)
        with RunState() as second_run:
            assert context.before_all_chain.exception(second_run) is None
            result = context.before_all_chain.run(None, second_run)

        assert result.outcome is HookOutcome.CAPTURED
        assert recorder.calls == ["before_all", "before_all"]


class TestAfterAllChain:
    def test_skipped_when_own_before_all_failed(self, recorder: Recorder, run: RunState):
        context = Context("group")
        context.it("example", lambda: None)
        context.before_all = raise_(RuntimeError("setup"))
        context.after_all = recorder("after_all")

        context.before_all_chain.run(None, run)
        result = context.after_all_chain.run(None, run)

        assert result.outcome is HookOutcome.SKIPPED
        assert recorder.calls == [], "A group whose setup failed gets no teardown."

    def test_captures_failure_once(self, run: RunState):
        context = Context("group")
        context.it("example", lambda: None)
        failure = RuntimeError("teardown")
        context.after_all = raise_(failure)

        result = context.after_all_chain.run(None, run)

        assert result.capture.kind is FailureKind.AFTER_ALL
        assert context.after_all_chain.exception(run) is failure
        assert context.after_all_chain.run(None, run).outcome is HookOutcome.SKIPPED
