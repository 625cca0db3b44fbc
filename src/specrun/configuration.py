import logging
import os
import shlex
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, Optional

from behave.exception import ConfigError
from dotenv import dotenv_values

from .constants import (
    DEFAULT_LOGGING_FORMAT,
    DEFAULT_LOGGING_LEVEL,
    ENV_EXCLUDED_OPTIONS,
    ENV_PREFIX,
    ENV_SEQUENCE_OPTIONS,
    USER_CONFIG,
)
from .domain.filtering import TagsFilter
from .types import DefaultValues, Tags

if TYPE_CHECKING:
    from .domain.context import Context

__all__ = ["Configuration", "build_environment_values", "load_environment_settings"]


def build_environment_values(cli_file: Optional[Path] = None, verbose: Optional[bool] = None) -> Dict[str, str]:
    """Builds the complete configuration dictionary by loading values from environment
    and configuration sources in ascending order of precedence (lowest to highest).

    The order of loading (lowest precedence first) is:
    1. OS Environment Variables (Lowest)
    2. User Home Config (~/.specrun)
    3. Specified Config File (Highest)

    Args:
        cli_file: Optional path to a configuration file.
        verbose: If True, prints status messages about file loading.

    Returns:
        A dictionary containing all environment key-value pairs.
    """
    # OS Environment Variables (Priority 1)
    env_values = os.environ.copy()

    # User Home Config (~/.specrun) (Priority 2)
    user_config_file = Path.home() / USER_CONFIG
    if user_config_file.exists():
        if verbose:
            print("Load user config file.")
        loaded_config = dotenv_values(user_config_file)
        if loaded_config is not None:
            env_values.update({key: value for key, value in loaded_config.items() if value is not None})
    elif verbose:
        print("Skipping: User config file not found.")

    # Specified Config File (Priority 3)
    if cli_file is not None:
        if not cli_file.exists():
            raise FileNotFoundError(f"The specified config file not found at {str(cli_file)!r}.")
        if verbose:
            print("Load specified config file.")
        loaded_config = dotenv_values(cli_file)
        if loaded_config is not None:
            env_values.update({key: value for key, value in loaded_config.items() if value is not None})
    elif verbose:
        print("Skipping: Config file was not specified.")

    return env_values


def load_environment_settings(
    defaults: DefaultValues, cli_file: Optional[Path] = None, verbose: Optional[bool] = None
) -> None:
    """Loads configuration settings from sources (ENV, config files)
    and applies them to the default values dictionary.

    Only variables prefixed with 'SPECRUN_' are considered. Values are parsed
    as boolean, integer, sequence (shlex-split) or string.

    Args:
        defaults: The dictionary containing default settings, which will be
                  updated with environment variable values.
        cli_file: Optional path to a configuration file.
        verbose: If True, prints status messages about environment variable loading and parsing.

    Raises:
        ConfigError: If an excluded setting is specified as environment variable.
    """
    env_values = build_environment_values(cli_file, verbose)
    prefix = ENV_PREFIX.lower()

    for env_var, env_value in env_values.items():
        # Key filtering and extraction
        env_var_lowered = env_var.lower()
        if not env_var_lowered.startswith(prefix):
            continue

        config_name = env_var_lowered[len(prefix) :]
        if not config_name:
            if verbose:
                print(f"Skipping ENV[{env_var}]: Configuration name is empty after stripping prefix ({ENV_PREFIX!r}).")
            continue

        if config_name in ENV_EXCLUDED_OPTIONS:
            raise ConfigError(f"ENV[{env_var}]: Setting {config_name!r} cannot be specified as environment var.")

        # Value parsing
        env_parsed_value = env_value.strip()
        if not env_parsed_value:
            if verbose:
                print(f"Skipping ENV[{env_var}]: Value is empty or whitespace.")
            continue

        env_value_lowered = env_parsed_value.lower()
        if env_value_lowered in ["true", "false"]:
            env_parsed_value = env_value_lowered == "true"
        elif env_parsed_value.isnumeric():
            env_parsed_value = int(env_parsed_value)
        elif config_name in ENV_SEQUENCE_OPTIONS:
            # Note: shlex.split handles quoted strings correctly for complex list elements.
            env_parsed_value = shlex.split(env_parsed_value)

        defaults[config_name] = env_parsed_value

        if verbose:
            print(f"{config_name:<15} = {env_parsed_value!r} (ENV[{env_var}] = {env_value!r})")


class Configuration:
    """Settings of a spec run.

    Values are layered: built-in defaults, then environment and config files
    (see ``load_environment_settings``), then keyword arguments.
    """

    defaults: DefaultValues = {
        "tags": [],
        "fail_fast": False,
        "verbose": False,
        "logging_level": DEFAULT_LOGGING_LEVEL,
        "logging_format": DEFAULT_LOGGING_FORMAT,
    }

    def __init__(
        self,
        config_file: Optional[Path] = None,
        load_config: bool = True,
        verbose: Optional[bool] = None,
        **kwargs,
    ):
        """Initializes configuration by loading defaults, config files, env vars and kwargs.

        Args:
            config_file (Optional[Path]): Explicit configuration file (dotenv format).
            load_config (bool): If True, loads settings from the environment and config files.
            verbose (Optional[bool]): Overrides the verbosity setting (Defaults to None).
            **kwargs (DefaultValues): Settings with the highest precedence.

        Raises:
            ConfigError: On unknown settings or invalid values.
        """
        defaults = self.make_defaults()

        if load_config:
            load_environment_settings(defaults, config_file, verbose)

        unknown = set(kwargs) - set(self.defaults)
        if unknown:
            raise ConfigError(f"Unknown configuration settings: {', '.join(sorted(unknown))}")
        defaults.update(kwargs)

        if verbose is not None:
            defaults["verbose"] = verbose

        self.tags: Tags = []
        self.fail_fast: bool = False
        self.verbose: bool = False
        self.logging_level: int = DEFAULT_LOGGING_LEVEL
        self.logging_format: str = DEFAULT_LOGGING_FORMAT

        for key, value in defaults.items():
            if key in self.defaults:
                setattr(self, key, value)

        self.setup_tags()
        self.setup_logging_level()

    @classmethod
    def make_defaults(cls, **kwargs) -> DefaultValues:
        defaults = {key: (list(value) if isinstance(value, list) else value) for key, value in cls.defaults.items()}
        defaults.update(kwargs)
        return defaults

    def setup_tags(self) -> None:
        if self.tags is None:
            self.tags = []
        elif isinstance(self.tags, str):
            self.tags = [self.tags]
        else:
            self.tags = [str(tag) for tag in self.tags]

    def setup_logging_level(self) -> None:
        if isinstance(self.logging_level, str):
            level = logging.getLevelName(self.logging_level.upper())
            if not isinstance(level, int):
                raise ConfigError(f"Invalid logging level: {self.logging_level!r}")
            self.logging_level = level

    def setup_logging(self, level: Optional[int] = None) -> None:
        """Configure stdlib logging for the run.

        Args:
            level (Optional[int]): Overrides the configured logging level.
        """
        if level is None:
            level = self.logging_level

        logging.basicConfig(level=level, format=self.logging_format)
        logging.getLogger("specrun").setLevel(level)

    def tags_filter(self, roots: Iterable["Context"] = ()) -> TagsFilter:
        """Build the example filter for a run over ``roots``."""
        return TagsFilter.for_tree(list(roots), self.tags)
