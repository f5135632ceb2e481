"""Configuration module for resilient_requests.

This module provides the RequestsConfig class for tuning the retry engine,
response draining, default timeouts and logging.

Example:
    Basic usage with defaults:

        >>> config = RequestsConfig()
        >>> config.backoff_base_seconds
        0.1

    Custom configuration:

        >>> config = RequestsConfig(
        ...     backoff_base_seconds=0.5,
        ...     drain_limit_bytes=8192,
        ...     default_timeout_seconds=30,
        ... )

    Loading from environment:

        >>> import os
        >>> os.environ['RESILIENT_REQUESTS_BACKOFF_BASE_SECONDS'] = '0.25'
        >>> os.environ['RESILIENT_REQUESTS_JSON_LOGS'] = 'false'
        >>> config = RequestsConfig.from_env()

    Loading from dictionary:

        >>> config = RequestsConfig.from_dict({'drain_limit_bytes': 1024})
"""

import os
from typing import Any

from pydantic import BaseModel, Field, field_validator

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class RequestsConfig(BaseModel):
    """Configuration for the request layer.

    Attributes:
        backoff_base_seconds: Base unit of the exponential backoff. The n-th
            retry of a call waits ``2**n * backoff_base_seconds``. Must be
            positive. Default is 0.1 seconds.
        drain_limit_bytes: Maximum number of bytes read from a response body
            that is discarded before a retry or an error. Default is 4096.
        default_timeout_seconds: Timeout applied to requests that do not set
            their own. None means no timeout. Default is None.
        log_level: Log level used by configure_logging. Default is "INFO".
        json_logs: Emit JSON logs when True, console logs otherwise.

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.
    """

    backoff_base_seconds: float = Field(
        default=0.1,
        description="Base unit of the exponential retry backoff in seconds",
    )
    drain_limit_bytes: int = Field(
        default=4096,
        description="Maximum bytes read when draining a discarded response body",
    )
    default_timeout_seconds: float | None = Field(
        default=None,
        description="Timeout for requests that do not set one (None disables it)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level for structured logging",
    )
    json_logs: bool = Field(
        default=True,
        description="Emit JSON logs (True) or console logs (False)",
    )

    model_config = {"frozen": True}

    @field_validator("backoff_base_seconds")
    @classmethod
    def validate_backoff_base_seconds(cls, v: float) -> float:
        """Validate the backoff base unit is positive.

        Args:
            v: Backoff base in seconds.

        Returns:
            Validated backoff base.

        Raises:
            ValueError: If the value is not positive.
        """
        if v <= 0:
            raise ValueError(f"backoff_base_seconds must be > 0, got {v}")
        return v

    @field_validator("drain_limit_bytes")
    @classmethod
    def validate_drain_limit_bytes(cls, v: int) -> int:
        """Validate the drain limit is non-negative.

        Args:
            v: Drain limit in bytes.

        Returns:
            Validated drain limit.

        Raises:
            ValueError: If value is negative.
        """
        if v < 0:
            raise ValueError(f"drain_limit_bytes must be >= 0, got {v}")
        return v

    @field_validator("default_timeout_seconds")
    @classmethod
    def validate_default_timeout_seconds(cls, v: float | None) -> float | None:
        """Validate the default timeout is positive when set.

        Args:
            v: Timeout in seconds, or None.

        Returns:
            Validated timeout.

        Raises:
            ValueError: If the timeout is zero or negative.
        """
        if v is not None and v <= 0:
            raise ValueError(f"default_timeout_seconds must be > 0 or unset, got {v}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        """Validate and normalize the log level.

        Args:
            v: Log level name in any case.

        Returns:
            Uppercase log level name.

        Raises:
            ValueError: If the level is unknown.

        Example:
            >>> RequestsConfig(log_level="debug").log_level
            'DEBUG'
        """
        if not isinstance(v, str):
            raise ValueError("log_level must be a string")
        level = v.strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. "
                f"Valid levels are: {', '.join(sorted(VALID_LOG_LEVELS))}"
            )
        return level

    @field_validator("json_logs", mode="before")
    @classmethod
    def validate_json_logs(cls, v: Any) -> bool:
        """Accept booleans and the usual boolean strings from the environment.

        Args:
            v: Boolean or boolean-like string.

        Returns:
            The boolean value.

        Raises:
            ValueError: If a string is not a recognised boolean.
        """
        if isinstance(v, str):
            value = v.strip().lower()
            if value in _TRUE_VALUES:
                return True
            if value in _FALSE_VALUES:
                return False
            raise ValueError(f"json_logs must be a boolean, got {v!r}")
        return v

    @classmethod
    def from_env(cls, prefix: str = "RESILIENT_REQUESTS_") -> "RequestsConfig":
        """Create configuration from environment variables.

        Variable names are uppercase field names with the prefix. Missing
        variables use the model defaults.

        Args:
            prefix: Prefix for environment variable names.

        Returns:
            RequestsConfig instance populated from environment variables.

        Example:
            >>> import os
            >>> os.environ['RESILIENT_REQUESTS_DRAIN_LIMIT_BYTES'] = '1024'
            >>> RequestsConfig.from_env().drain_limit_bytes
            1024
        """
        config_dict: dict[str, Any] = {}

        field_types = {
            "backoff_base_seconds": float,
            "drain_limit_bytes": int,
            "default_timeout_seconds": float,
            "log_level": str,
            "json_logs": str,
        }
        # An empty value disables these
        optional_fields = {"default_timeout_seconds"}

        for field_name, field_type in field_types.items():
            env_var = f"{prefix}{field_name.upper()}"
            env_value = os.environ.get(env_var)

            if env_value is None:
                continue
            if field_type is int:
                config_dict[field_name] = int(env_value)
            elif field_type is float:
                if env_value.strip():
                    config_dict[field_name] = float(env_value)
                elif field_name in optional_fields:
                    config_dict[field_name] = None
                else:
                    raise ValueError(f"{env_var} must not be empty")
            else:
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "RequestsConfig":
        """Create configuration from a dictionary.

        Args:
            config_dict: Dictionary with configuration values.

        Returns:
            RequestsConfig instance populated from the dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
