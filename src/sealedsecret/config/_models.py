# pyright: reportExplicitAny=false, reportAny=false
"""Configuration models.

This module provides the frozen Pydantic models for each configuration
section and the Config container with its factory methods.
"""

from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Self, cast

from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError

from sealedsecret.config._defaults import DEFAULT_CONFIG
from sealedsecret.config._loader import deep_merge, parse_env_vars, read_toml_file
from sealedsecret.exceptions import ConfigValidationError
from sealedsecret.readiness import APPLY_DEADLINE, REFRESH_DEADLINE
from sealedsecret.repository import BasicAuth, ConflictPolicy, RemoteEndpoint
from sealedsecret.utils import LogFormatType, create_logger

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails
    from structlog.typing import FilteringBoundLogger


class LogLevel(StrEnum):
    """Log level threshold values."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class GitConfig(BaseModel):
    """Git section.

    Attributes:
        url: Remote repository URL. For GitLab, the project web URL.
        source_branch: Branch secrets are published to.
        target_branch: Branch merge requests target.
        username: Basic-auth user for HTTP(S) remotes.
        token: Basic-auth password or access token; also the GitLab API token.
        conflict_policy: How pushes treat a diverged remote branch.
        review_requests: Open a GitLab merge request after each change.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    url: str = ""
    source_branch: str = ""
    target_branch: str = "main"
    username: str = ""
    token: SecretStr = SecretStr("")
    conflict_policy: ConflictPolicy = ConflictPolicy.FORCE_OVERWRITE
    review_requests: bool = False


class ControllerConfig(BaseModel):
    """Sealed-secrets controller section: how long to wait for its public key.

    Attributes:
        apply_timeout: Seconds to wait for the public key when applying.
        refresh_timeout: Seconds to wait for the public key when reading.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    apply_timeout: float = APPLY_DEADLINE
    refresh_timeout: float = REFRESH_DEADLINE


class LoggingConfig(BaseModel):
    """Logging section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""


def _validation_error(
    error: ValidationError, source: str | None
) -> ConfigValidationError:
    """Convert the first Pydantic error to a ConfigValidationError."""
    details: ErrorDetails = error.errors()[0]
    key = ".".join(str(part) for part in details.get("loc", ()))
    ctx = details.get("ctx")
    expected = str(ctx["expected"]) if ctx is not None and "expected" in ctx else None
    msg = f"Invalid configuration value for '{key}'"
    return ConfigValidationError(
        msg,
        key=key,
        value=details.get("input"),
        expected=expected or details.get("msg", "valid value"),
        source=source,
    )


class Config(BaseModel):
    """Configuration container with typed access.

    Use from_dict(), from_file() or load() to create instances; they merge
    the given values over the defaults before validating.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    git: GitConfig = GitConfig()
    controller: ControllerConfig = ControllerConfig()
    logging: LoggingConfig = LoggingConfig()

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, source: str | None = None) -> Self:
        """Create configuration from a dictionary.

        Args:
            data: Configuration values, possibly partial.
            source: Where the values came from, for error messages.

        Returns:
            Validated configuration.

        Raises:
            ConfigValidationError: If a value is invalid.
        """
        merged = deep_merge(DEFAULT_CONFIG, data)
        try:
            return cls.model_validate(merged)
        except ValidationError as e:
            raise _validation_error(e, source) from e

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Load configuration from a TOML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If a value is invalid.
        """
        return cls.from_dict(read_toml_file(path), source=str(path))

    @classmethod
    def load(
        cls,
        path: Path | None = None,
        *,
        include_env: bool = True,
        environ: dict[str, str] | None = None,
    ) -> Self:
        """Load merged configuration: defaults, then file, then environment.

        Args:
            path: Optional TOML file. A missing file is skipped.
            include_env: Apply SEALEDSECRET_<SECTION>__<KEY> variables.
            environ: Mapping to read instead of os.environ.

        Returns:
            Validated configuration.

        Raises:
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If a merged value is invalid.
        """
        merged: dict[str, Any] = {}
        if path is not None and path.exists():
            merged = read_toml_file(path)
        if include_env:
            merged = deep_merge(merged, parse_env_vars(environ=environ))
        return cls.from_dict(merged, source=str(path) if path is not None else None)

    def logger(self, component: str = "") -> "FilteringBoundLogger":  # noqa: UP037
        """Create a logger from the logging section."""
        return create_logger(
            level=str(self.logging.level),
            log_format=cast("LogFormatType", str(self.logging.format)),
            log_file=self.logging.file,
            component=component,
        )

    def endpoint(self) -> RemoteEndpoint:
        """Build the remote endpoint from the git section.

        Raises:
            ConfigValidationError: If url or source_branch is missing.
        """
        for key in ("url", "source_branch"):
            value = getattr(self.git, key)
            if not value:
                msg = f"Missing required configuration value 'git.{key}'"
                raise ConfigValidationError(
                    msg, key=f"git.{key}", value=value, expected="non-empty string"
                )

        token = self.git.token.get_secret_value()
        return RemoteEndpoint(
            url=self.git.url,
            source_branch=self.git.source_branch,
            target_branch=self.git.target_branch,
            auth=BasicAuth(username=self.git.username, token=token) if token else None,
        )
