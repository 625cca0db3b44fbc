"""Tag based example selection."""

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional, Union

from behave.tag_expression import make_tag_expression

from ..constants import FOCUS_TAG

if TYPE_CHECKING:
    from .context import Context
    from .example import Example

__all__ = ["TagsFilter"]

logger = logging.getLogger(__name__)


class TagsFilter:
    """Selects examples using behave/cucumber tag expressions.

    Several expressions are combined with AND, the same way behave combines
    repeated ``--tags`` options. Examples are matched against their effective
    tags (own tags plus all enclosing context tags).
    """

    def __init__(self, tags: Optional[Union[str, Iterable[str]]] = None):
        if isinstance(tags, str):
            tags = [tags]

        self.tags: List[str] = [tag for tag in (tags or []) if tag and tag.strip()]
        self.expression = make_tag_expression(self.text()) if self.tags else None

    def __repr__(self) -> str:
        return f"<TagsFilter {self.tags!r}>"

    def text(self) -> str:
        """The combined tag expression."""
        if len(self.tags) == 1:
            return self.tags[0]
        return " and ".join(f"({tag})" for tag in self.tags)

    @classmethod
    def for_tree(cls, roots: Iterable["Context"], tags: Optional[Union[str, Iterable[str]]] = None) -> "TagsFilter":
        """Build the filter for a run over ``roots``.

        Without explicit tag expressions, a tree holding focused examples selects only
        those.

        Args:
            roots (Iterable[Context]): Root contexts of the run.
            tags (Optional[Union[str, Iterable[str]]]): Configured tag expressions.

        Returns:
            TagsFilter: The filter to use.
        """
        tags_filter = cls(tags)
        if tags_filter.expression is None:
            if any(FOCUS_TAG in example.all_tags() for root in roots for example in root.all_examples()):
                logger.info("Focused examples found, running only examples tagged %r", FOCUS_TAG)
                return cls([FOCUS_TAG])
        return tags_filter

    def includes(self, example: "Example") -> bool:
        if self.expression is None:
            return True
        return bool(self.expression.check(sorted(example.all_tags())))
