"""Sealedsecret configuration.

Example:
    >>> from sealedsecret.config import Config
    >>> config = Config.load(Path("sealedsecret.toml"))
    >>> config.git.conflict_policy
    <ConflictPolicy.FORCE_OVERWRITE: 'force-overwrite'>
"""

from sealedsecret.config._defaults import DEFAULT_CONFIG
from sealedsecret.config._loader import (
    ENV_PREFIX,
    deep_merge,
    parse_env_vars,
    read_toml_file,
    set_nested_key,
)
from sealedsecret.config._models import (
    Config,
    ControllerConfig,
    GitConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
)
from sealedsecret.exceptions import ConfigError, ConfigLoadError, ConfigValidationError

__all__ = [
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "ControllerConfig",
    "GitConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "deep_merge",
    "parse_env_vars",
    "read_toml_file",
    "set_nested_key",
]
