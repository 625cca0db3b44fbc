"""Runner executing spec trees through the hook chains."""

import logging
from typing import Iterable, List, Optional

from .builder import build_tree
from .configuration import Configuration
from .domain.context import Context
from .domain.example import Example, ExampleStatus
from .domain.state import Capture, RunState

__all__ = ["SpecRunner", "RunResult", "run_specs"]

logger = logging.getLogger(__name__)


class RunResult:
    """Outcome of a run: every example of the run's trees with its final status.

    Holds the root contexts, which keeps the trees (and the contexts of its
    examples) alive.
    """

    def __init__(self, roots: Iterable[Context]):
        self.roots: List[Context] = list(roots)
        self.examples: List[Example] = [example for root in self.roots for example in root.all_examples()]

    def __repr__(self) -> str:
        return f"<RunResult {self.summary()}>"

    def executed(self) -> List[Example]:
        return [example for example in self.examples if example.has_run]

    def failures(self) -> List[Example]:
        return [example for example in self.examples if example.status is ExampleStatus.FAILED]

    def passed(self) -> List[Example]:
        return [example for example in self.examples if example.status is ExampleStatus.PASSED]

    def pending(self) -> List[Example]:
        return [example for example in self.examples if example.status is ExampleStatus.PENDING]

    def find(self, name: str) -> Example:
        """Return the first example named ``name``."""
        for example in self.examples:
            if example.name == name:
                return example
        raise KeyError(name)

    @property
    def status(self) -> int:
        """Status code (0=success or 1=failure)."""
        return 1 if self.failures() else 0

    def summary(self) -> str:
        return (
            f"{len(self.executed())} examples, {len(self.failures())} failed, "
            f"{len(self.pending())} pending"
        )


class SpecRunner:
    """Executes spec trees.

    Per context: its BeforeAll chain, then each example, then each nested
    context, then its AfterAll chain. Per example: the Before and Act chains
    (outside-in), the body, the After chain (inside-out). Once everything ran,
    exceptions are assigned to examples according to their precedence.
    """

    config: Configuration

    def __init__(self, config: Optional[Configuration] = None):
        self.config = config if config is not None else Configuration(load_config=False)
        self.failed = False

    def run(self, *roots: Context) -> RunResult:
        """Run the given trees.

        Args:
            *roots (Context): Root contexts, run in order.

        Returns:
            RunResult: Every example of the trees with its final status.
        """
        self.failed = False
        tags_filter = self.config.tags_filter(roots)

        for root in roots:
            for example in root.all_examples():
                example.reset()

        with RunState(tags_filter) as run:
            for root in roots:
                if self.should_stop():
                    break
                self.run_context(root, run)

            for root in roots:
                self.assign_exceptions(root, run)

        result = RunResult(roots)
        logger.info("%s", result.summary())
        return result

    def should_stop(self) -> bool:
        return self.config.fail_fast and self.failed

    def run_context(self, context: Context, run: RunState) -> None:
        instance = context.spec_instance()

        context.before_all_chain.run(instance, run)

        for example in list(context.examples):
            if self.should_stop():
                break
            self.exercise(example, run)

        for child in list(context.contexts):
            if self.should_stop():
                break
            self.run_context(child, run)

        context.after_all_chain.run(instance, run)

    def exercise(self, example: Example, run: RunState) -> None:
        """Run one example between its Before/Act and After chains."""
        if not run.includes(example):
            logger.debug("Skipping %r: filtered out", example)
            return

        example.has_run = True

        if example.pending:
            example.status = ExampleStatus.PENDING
            logger.debug("Pending %r", example)
            return

        context = example.context
        instance = context.spec_instance()
        record = example.record

        logger.debug("Running %r", example)

        record.before = context.before_chain.run(instance, run)
        record.act = context.act_chain.run(instance, run)
        # The body runs even after a setup failure; the setup failure is what gets reported.
        record.body = example.run(run)
        record.after = context.after_chain.run(instance, run)

        if record.any_failure() or context.before_all_chain.any_before_alls_threw(run):
            self.failed = True

    def assign_exceptions(
        self,
        context: Context,
        run: RunState,
        inherited_before_all: Optional[Capture] = None,
        inherited_after_all: Optional[Capture] = None,
    ) -> None:
        """Assign the final exception of every executed example in ``context``'s subtree.

        The outermost failing BeforeAll and the innermost failing AfterAll along the
        path apply to an example.

        Args:
            context (Context): Subtree root.
            run (RunState): The finished run.
            inherited_before_all (Optional[Capture]): Outermost ancestor BeforeAll failure.
            inherited_after_all (Optional[Capture]): Innermost ancestor AfterAll failure.
        """
        before_all = inherited_before_all
        if before_all is None:
            before_all = run.chain_state(context.before_all_chain).capture

        after_all = run.chain_state(context.after_all_chain).capture
        if after_all is None:
            after_all = inherited_after_all

        for example in context.examples:
            if not example.has_run or example.pending:
                continue

            previous = before_all if before_all is not None else example.record.setup_capture()

            following = example.record.teardown_capture()
            if following is None:
                following = after_all

            example.assign_exception(previous, following)

            if example.failed:
                logger.debug("%r failed: %s", example, example.exception)

        for child in context.contexts:
            self.assign_exceptions(child, run, before_all, after_all)


def run_specs(*spec_classes: type, config: Optional[Configuration] = None) -> RunResult:
    """Build the trees of ``spec_classes`` and run them.

    Args:
        *spec_classes (type): Spec classes to run.
        config (Optional[Configuration]): Run settings, loaded from the environment when omitted.

    Returns:
        RunResult: The result of the run.
    """
    if config is None:
        config = Configuration()
    config.setup_logging()

    return SpecRunner(config).run(*build_tree(*spec_classes))
