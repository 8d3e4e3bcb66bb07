"""
Configuration for the repokit data layer.

DataOptions holds the toggles applied by create_data_layer(). All options
have production-safe defaults, so ``DataOptions()`` is a valid
configuration.

DataSettings reads the same toggles from environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from repokit.exceptions import ConfigurationError


@dataclass(frozen=True)
class DataOptions:
    """
    Options controlling how the data layer is wired.

    Attributes:
        enable_correlation_interceptor: Attach the correlation interceptor
            to the engine when a diagnostics context is supplied
        register_health_contributors: Create health contributors for the
            engine and session factory
        enable_tracing: Emit OpenTelemetry spans when it is installed
        expire_on_commit: Expire loaded entities after commit. Off by
            default so entities stay readable after save_changes()
        echo_sql: Log every statement with its parameters. Parameters may
            contain sensitive data; keep this off in production
        health_check_timeout: Seconds before a health check is reported
            UNHEALTHY (None disables the timeout)

    Example:
        >>> options = DataOptions(echo_sql=True, health_check_timeout=2.0)
        >>> layer = create_data_layer("sqlite+aiosqlite:///app.db", options)
    """

    # Diagnostics
    enable_correlation_interceptor: bool = True
    register_health_contributors: bool = True
    enable_tracing: bool = True

    # Session behavior
    expire_on_commit: bool = False
    echo_sql: bool = False

    # Health checks
    health_check_timeout: float | None = 5.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.health_check_timeout is not None and self.health_check_timeout <= 0:
            raise ConfigurationError(
                f"health_check_timeout must be positive, got {self.health_check_timeout}. "
                "Use None to disable the timeout."
            )

    @classmethod
    def from_env(cls, prefix: str = "REPOKIT_") -> DataOptions:
        """
        Build options from environment variables.

        Each field is read from ``<prefix><FIELD_NAME>``, e.g.
        ``REPOKIT_ECHO_SQL=true``. Unset variables keep their defaults.
        ``REPOKIT_HEALTH_CHECK_TIMEOUT=none`` disables the health check timeout.

        Args:
            prefix: Variable name prefix

        Raises:
            ConfigurationError: If any variable cannot be parsed; every bad
                variable is reported
        """
        try:
            settings = DataSettings(_env_prefix=prefix)
        except ValidationError as e:
            raise ConfigurationError(
                [f"{prefix}{str(error['loc'][0]).upper()}: {error['msg']}" for error in e.errors()]
            ) from e
        return settings.to_options()


class DataSettings(BaseSettings):
    """
    Environment-driven source for DataOptions.

    Booleans accept the usual pydantic spellings (true/false, 1/0, yes/no,
    on/off). An empty or ``none`` timeout disables the health check timeout.
    """

    model_config = SettingsConfigDict(env_prefix="REPOKIT_", extra="ignore")

    enable_correlation_interceptor: bool = Field(
        default=True, description="Attach the correlation interceptor"
    )
    register_health_contributors: bool = Field(
        default=True, description="Create engine and session health contributors"
    )
    enable_tracing: bool = Field(default=True, description="Emit OpenTelemetry spans")
    expire_on_commit: bool = Field(default=False, description="Expire entities after commit")
    echo_sql: bool = Field(default=False, description="Log every statement")
    health_check_timeout: float | None = Field(
        default=5.0, description="Seconds before a health check times out"
    )

    @field_validator("health_check_timeout", mode="before")
    @classmethod
    def _none_disables_timeout(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in ("", "none"):
            return None
        return value

    def to_options(self) -> DataOptions:
        return DataOptions(**self.model_dump())


__all__ = ["DataOptions", "DataSettings"]
