"""
Global configuration for the mwengine client.

Users can optionally call MWENGINE.configure() at application startup to
customize defaults. If not called, sensible defaults are used.

Hierarchy of precedence (highest to lowest):
1. Attributes set directly on a Client (e.g. `client.maxlag.retries = 5`)
2. Values set via MWENGINE.configure()
3. Environment variables (MWENGINE_*) - when allow_env_override=True
4. Hardcoded defaults (in dataclass fields)

Example:
    >>> from mwengine import MWENGINE
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> MWENGINE.config.maxlag.retries
    3
    >>>
    >>> # Custom configuration
    >>> MWENGINE.configure(
    ...     maxlag={"enabled": True, "threshold": "3"},
    ...     client={"assertion": "bot"},
    ... )
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from typing import Any, Self

ASSERTION_VALUES = ("none", "user", "bot")


# =============================================================================
# Exceptions
# =============================================================================


class ConfigEnvVarError(ValueError):
    """Raised when an environment variable has an invalid value."""

    def __init__(
        self,
        env_var: str,
        value: str,
        expected_type: str,
        cause: Exception | None = None,
    ):
        self.env_var = env_var
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Invalid value for {env_var}: '{value}' (expected {expected_type})")
        self.__cause__ = cause


class ConfigValidationError(ValueError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        field: str,
        value: Any,
        message: str,
        section: str | None = None,
    ):
        self.field = field
        self.value = value
        self.section = section
        prefix = f"[{section}] " if section else ""
        super().__init__(f"{prefix}Invalid value for '{field}': {value!r}. {message}")


# =============================================================================
# Environment Variables
# =============================================================================


class EnvVars:
    """
    Utility class for reading environment variables with type conversion.

    Example:
        >>> EnvVars.get("MWENGINE_MAXLAG_RETRIES", type_hint=int)
        5
        >>> EnvVars.get("UNDEFINED_VAR")
        None
    """

    @staticmethod
    def get(
        var_name: str,
        type_hint: Any = str,
        converter: Callable[[str], Any] | None = None,
    ) -> Any:
        """
        Read an environment variable with optional type conversion.

        Args:
            var_name: The environment variable name.
            type_hint: Type hint used to infer the converter (ignored if converter is provided).
            converter: Custom converter function (takes precedence over type_hint).

        Returns:
            The converted value, or None if env var is not set/empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value = os.environ.get(var_name)
        if not raw_value:  # None or empty string
            return None

        actual_converter = converter or EnvVars._infer_converter(type_hint)
        try:
            return actual_converter(raw_value)
        except (ValueError, TypeError) as e:
            raise ConfigEnvVarError(
                env_var=var_name,
                value=raw_value,
                expected_type=type_hint.__name__ if hasattr(type_hint, "__name__") else str(type_hint),
                cause=e,
            ) from e

    @staticmethod
    def _infer_converter(type_hint: Any) -> Callable[[str], Any]:
        """
        Infer converter function from type hint.

        Handles both actual types and string annotations (PEP 563).
        """
        type_str = str(type_hint)

        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        if type_hint is bool or type_str == "bool":
            return _parse_bool
        return str


def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in ("true", "1", "yes", "on"):
        return True
    if normalized in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration dataclasses.

    Provides `.with_overrides()` for creating new instances with partial field
    updates, rejecting unknown field names early.

    Example:
        >>> config = MaxlagConfig()
        >>> custom = config.with_overrides({"retries": 5})
        >>> custom.retries
        5
    """

    def with_overrides(self, overrides: dict[str, Any]) -> Self:
        """
        Return a new instance with specified fields overridden.

        None values are ignored, so absent and None mean "keep current".

        Raises:
            ValueError: If overrides contains unknown field names.
        """
        if not overrides:
            return self

        valid_fields = {f.name for f in fields(self)}
        invalid_fields = set(overrides.keys()) - valid_fields

        if invalid_fields:
            raise ValueError(
                f"Unknown config fields: {invalid_fields}. "
                f"Valid fields are: {valid_fields}"
            )

        filtered = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered) if filtered else self

    def with_env_vars(self) -> Self:
        """
        Return new instance with environment variables applied.

        Reads env vars declared in field metadata and applies them as overrides.

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, Any] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if env_var:
                value = EnvVars.get(
                    var_name=env_var,
                    type_hint=f.type,
                    converter=f.metadata.get("converter"),
                )
                if value is not None:
                    overrides[f.name] = value
        return self.with_overrides(overrides)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass(frozen=True)
class MaxlagConfig(OverridableConfig):
    """
    Default maxlag settings for new clients.

    Attributes:
        enabled: Whether new clients send `maxlag` and retry lagged responses.
            Env var: MWENGINE_MAXLAG_ENABLED

        threshold: The `maxlag` value, in seconds, sent to the server.
            Env var: MWENGINE_MAXLAG_THRESHOLD

        retries: Total attempts per call while the server reports lag.
            Env var: MWENGINE_MAXLAG_RETRIES
    """

    enabled: bool = field(default=False, metadata={"env": "MWENGINE_MAXLAG_ENABLED"})
    threshold: str = field(default="5", metadata={"env": "MWENGINE_MAXLAG_THRESHOLD"})
    retries: int = field(default=3, metadata={"env": "MWENGINE_MAXLAG_RETRIES"})

    def validate(self) -> Self:
        """Validate maxlag configuration fields."""
        try:
            threshold = float(self.threshold)
        except (TypeError, ValueError):
            threshold = -1.0
        if threshold < 0:
            raise ConfigValidationError(
                "threshold", self.threshold,
                "Must be a non-negative number of seconds.", section="maxlag"
            )
        if self.retries < 0:
            raise ConfigValidationError(
                "retries", self.retries,
                "Must be >= 0.", section="maxlag"
            )
        return self


@dataclass(frozen=True)
class ClientConfig(OverridableConfig):
    """
    Default settings for new clients.

    Attributes:
        request_timeout: HTTP request timeout in seconds.
            Env var: MWENGINE_CLIENT_REQUEST_TIMEOUT

        assertion: Initial assertion mode: "none", "user" or "bot".
            Env var: MWENGINE_CLIENT_ASSERTION
    """

    request_timeout: int = field(default=30, metadata={"env": "MWENGINE_CLIENT_REQUEST_TIMEOUT"})
    assertion: str = field(default="none", metadata={"env": "MWENGINE_CLIENT_ASSERTION"})

    def validate(self) -> Self:
        """Validate client configuration fields."""
        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "request_timeout", self.request_timeout,
                "Must be greater than 0.", section="client"
            )
        if self.assertion not in ASSERTION_VALUES:
            raise ConfigValidationError(
                "assertion", self.assertion,
                f"Must be one of {ASSERTION_VALUES}.", section="client"
            )
        return self


@dataclass(frozen=True)
class MWEngineConfig:
    """
    Global configuration for the mwengine client.

    Attributes:
        maxlag: Default maxlag settings.
        client: Default client settings.
    """

    maxlag: MaxlagConfig = field(default_factory=MaxlagConfig)
    client: ClientConfig = field(default_factory=ClientConfig)

    def with_env_vars(self) -> MWEngineConfig:
        """Return a new config with MWENGINE_* environment variables applied on top."""
        return MWEngineConfig(
            maxlag=self.maxlag.with_env_vars(),
            client=self.client.with_env_vars(),
        )

    def with_section_overrides(
        self,
        *,
        maxlag: dict[str, Any] | None = None,
        client: dict[str, Any] | None = None,
    ) -> MWEngineConfig:
        """Return a new config with overrides merged into each section."""
        return MWEngineConfig(
            maxlag=self.maxlag.with_overrides(maxlag or {}),
            client=self.client.with_overrides(client or {}),
        )


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _MWEngine:
    """
    Singleton for client configuration.

    Use `MWENGINE.configure()` to customize settings and `MWENGINE.config`
    to access current configuration.
    """

    def __init__(self) -> None:
        self._config: MWEngineConfig = MWEngineConfig().with_env_vars()

    def configure(
        self,
        *,
        maxlag: dict[str, Any] | None = None,
        client: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> MWEngineConfig:
        """
        Configure client defaults.

        Args:
            maxlag: Maxlag config overrides (enabled, threshold, retries).
            client: Client config overrides (request_timeout, assertion).
            allow_env_override: If True (default), env vars are used as fallback
                for fields NOT provided. If False, ignores env vars entirely.

        Returns:
            The configured MWEngineConfig instance.

        Raises:
            ValueError: If any dict contains unknown field names.
            ConfigValidationError: If any config value fails validation.
        """
        base = MWEngineConfig()
        if allow_env_override:
            base = base.with_env_vars()

        self._config = base.with_section_overrides(maxlag=maxlag, client=client)
        return self.validate()

    @property
    def config(self) -> MWEngineConfig:
        """Current configuration (read-only)."""
        return self._config

    def reset(self) -> MWEngineConfig:
        """
        Reset configuration to defaults + env vars.

        Useful for testing to ensure clean state between tests.
        """
        self._config = MWEngineConfig().with_env_vars()
        return self.validate()

    def validate(self) -> MWEngineConfig:
        """
        Validate current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config.maxlag.validate()
        self._config.client.validate()
        return self._config

    def __repr__(self) -> str:
        return f"MWENGINE(config={self._config!r})"


# Global singleton instance - always reflects current configuration
MWENGINE: _MWEngine = _MWEngine()
MWENGINE.validate()  # Validate defaults + env vars on module load
