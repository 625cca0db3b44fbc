import logging
from typing import Set, Tuple

VERSION: str = "0.1.0"

ENV_PREFIX: str = "SPECRUN_"

USER_CONFIG: str = ".specrun"

ENV_SEQUENCE_OPTIONS: Set = {"tags"}

ENV_EXCLUDED_OPTIONS: Set = {
    "config",
    "help",
    "version",
}

DEFAULT_LOGGING_LEVEL: int = logging.ERROR

DEFAULT_LOGGING_FORMAT: str = "%(levelname)s:%(name)s:%(message)s"

FOCUS_TAG: str = "focus"

# Naming conventions for spec classes.
CONTEXT_METHOD_PREFIXES: Tuple[str, ...] = ("describe_", "context_")

EXAMPLE_METHOD_PREFIX: str = "it_"

ABSTRACT_ATTRIBUTE: str = "abstract"

# Class-level hook method names, one per hook category.
BEFORE_ALL_METHOD: str = "before_all"

BEFORE_EACH_METHOD: str = "before_each"

ACT_EACH_METHOD: str = "act_each"

AFTER_EACH_METHOD: str = "after_each"

AFTER_ALL_METHOD: str = "after_all"
