"""
Global configuration for the neos API client.

This module follows Convention over Configuration: every setting has a
sensible default, can be overridden by environment variables, and finally by
calling NEOS.configure() at application startup.

Hierarchy of precedence (highest to lowest):
1. Arguments passed to client / dispatcher constructors
2. Values set via NEOS.configure()
3. Environment variables (NEOS_*) - when allow_env_override=True
4. Hardcoded defaults (in dataclass fields)

Example:
    >>> from neos import NEOS
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> NEOS.config.api.request_timeout
    120
    >>>
    >>> # Custom configuration
    >>> NEOS.configure(
    ...     api={"user_agent": "my-bot/1.0 (me@example.com)", "min_request_interval": 0.25},
    ... )
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from typing import Any, Self

SECTIONS = ("api",)


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
    Reads environment variables with type conversion.

    Example:
        >>> EnvVars.get("NEOS_API_REQUEST_TIMEOUT", type_hint=int)
        60
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
            The converted value, or None if the variable is not set or empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value = os.environ.get(var_name)
        if not raw_value:
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
        """Infer converter function from a type hint (actual type or PEP 563 string)."""
        type_str = str(type_hint)

        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        if type_hint is bool or type_str == "bool":
            return lambda v: v.lower() in ("true", "1", "yes")
        return str


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration sections.

    Provides `.with_overrides()` for partial updates with strict field-name
    checking, and `.with_env_vars()` driven by the `env` field metadata.
    """

    def with_overrides(self, overrides: dict[str, Any]) -> Self:
        """
        Return a new instance with the given fields overridden.

        None values are ignored.

        Raises:
            ValueError: If overrides contains unknown field names.

        Example:
            >>> ApiConfig().with_overrides({"request_timeout": 60}).request_timeout
            60
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

    def env_overrides(self) -> dict[str, Any]:
        """
        Collect the values set through environment variables.

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, Any] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if env_var:
                value = EnvVars.get(var_name=env_var, type_hint=f.type)
                if value is not None:
                    overrides[f.name] = value
        return overrides

    def with_env_vars(self) -> Self:
        """Return a new instance with environment variables applied."""
        return self.with_overrides(self.env_overrides())


# =============================================================================
# Configuration Dataclasses
# =============================================================================


def _default_user_agent() -> str:
    from neos import __version__

    return f"neos-api/{__version__}"


@dataclass(frozen=True)
class ApiConfig(OverridableConfig):
    """
    Settings of the API request pipeline.

    Attributes:
        base_url: Base URL every API path is appended to.
            Env var: NEOS_API_BASE_URL

        user_agent: User-Agent header sent with every request. Identify your
            application and a way to contact you.
            Env var: NEOS_API_USER_AGENT

        request_timeout: Timeout in seconds for each HTTP request.
            Env var: NEOS_API_REQUEST_TIMEOUT

        max_redirects: Maximum number of redirects to follow.
            Env var: NEOS_API_MAX_REDIRECTS

        min_request_interval: Minimum seconds between the start of two
            requests from clients sharing a dispatcher.
            Env var: NEOS_API_MIN_REQUEST_INTERVAL

        default_rate_limit_delay: Seconds to wait after a rate limit response
            that carries neither a reset timestamp nor Retry-After.
            Env var: NEOS_API_DEFAULT_RATE_LIMIT_DELAY
    """

    base_url: str = field(default="https://www.neosvr-api.com/api/", metadata={"env": "NEOS_API_BASE_URL"})
    user_agent: str = field(default_factory=_default_user_agent, metadata={"env": "NEOS_API_USER_AGENT"})
    request_timeout: int = field(default=120, metadata={"env": "NEOS_API_REQUEST_TIMEOUT"})
    max_redirects: int = field(default=5, metadata={"env": "NEOS_API_MAX_REDIRECTS"})
    min_request_interval: float = field(default=0.1, metadata={"env": "NEOS_API_MIN_REQUEST_INTERVAL"})
    default_rate_limit_delay: float = field(default=2.0, metadata={"env": "NEOS_API_DEFAULT_RATE_LIMIT_DELAY"})

    def validate(self) -> Self:
        """Validate API configuration fields."""
        if not (self.base_url.startswith("http://") or self.base_url.startswith("https://")):
            raise ConfigValidationError(
                "base_url", self.base_url,
                "Must start with 'http://' or 'https://'.", section="api"
            )
        if not self.user_agent or not self.user_agent.strip():
            raise ConfigValidationError(
                "user_agent", self.user_agent,
                "Must not be empty.", section="api"
            )
        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "request_timeout", self.request_timeout,
                "Must be greater than 0.", section="api"
            )
        if self.max_redirects < 0:
            raise ConfigValidationError(
                "max_redirects", self.max_redirects,
                "Must be >= 0.", section="api"
            )
        if self.min_request_interval < 0:
            raise ConfigValidationError(
                "min_request_interval", self.min_request_interval,
                "Must be >= 0.", section="api"
            )
        if self.default_rate_limit_delay < 0:
            raise ConfigValidationError(
                "default_rate_limit_delay", self.default_rate_limit_delay,
                "Must be >= 0.", section="api"
            )
        return self


@dataclass(frozen=True)
class ConfigEntry:
    """
    A single configuration value with its source, as shown by NEOS.explain().

    Attributes:
        name: Field name.
        value: Current value.
        source: "default", "env:VAR_NAME" or "configure".
    """

    name: str
    value: Any
    source: str

    @property
    def formatted_value(self) -> str:
        """Return the value as a string, truncated to 50 characters."""
        if self.value is None:
            return "None"

        str_value = str(self.value)
        max_length = 50
        if len(str_value) > max_length:
            return str_value[: max_length - 3] + "..."
        return str_value


@dataclass(frozen=True)
class NeosConfig:
    """
    Root configuration of the neos package.

    Attributes:
        api: Request pipeline configuration.

    Example:
        >>> from neos import NEOS
        >>> NEOS.config.api.base_url
        'https://www.neosvr-api.com/api/'
    """

    api: ApiConfig = field(default_factory=ApiConfig)
    _sources: dict[str, dict[str, str]] = field(default_factory=dict, repr=False, compare=False)

    def with_env_vars(self) -> NeosConfig:
        """Return a new config with NEOS_* environment variables applied on top."""
        sources = self._copy_sources()
        sections: dict[str, Any] = {}
        for section_name in SECTIONS:
            section = getattr(self, section_name)
            overrides = section.env_overrides()
            env_names = {f.name: f.metadata.get("env") for f in fields(section)}
            for name in overrides:
                sources.setdefault(section_name, {})[name] = f"env:{env_names[name]}"
            sections[section_name] = section.with_overrides(overrides)
        return NeosConfig(**sections, _sources=sources)

    def with_section_overrides(self, *, api: dict[str, Any] | None = None) -> NeosConfig:
        """
        Return a new config with overrides applied to nested sections.

        Example:
            >>> NeosConfig().with_section_overrides(api={"request_timeout": 30})
        """
        sources = self._copy_sources()
        for name, value in (api or {}).items():
            if value is not None:
                sources.setdefault("api", {})[name] = "configure"
        return NeosConfig(api=self.api.with_overrides(api or {}), _sources=sources)

    def explain_data(self) -> dict[str, list[ConfigEntry]]:
        """Return every config value with its source, per section."""
        result: dict[str, list[ConfigEntry]] = {}
        for section_name in SECTIONS:
            section = getattr(self, section_name)
            section_sources = self._sources.get(section_name, {})
            result[section_name] = [
                ConfigEntry(
                    name=f.name,
                    value=getattr(section, f.name),
                    source=section_sources.get(f.name, "default"),
                )
                for f in fields(section)
            ]
        return result

    def _copy_sources(self) -> dict[str, dict[str, str]]:
        return {section: dict(flds) for section, flds in self._sources.items()}


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _NEOS:
    """
    Singleton for package configuration.

    Use `NEOS.configure()` to customize settings and `NEOS.config` to read
    the current configuration. Clients read it when they are created, so
    configure before creating clients.
    """

    def __init__(self) -> None:
        self._config: NeosConfig = NeosConfig().with_env_vars()

    def configure(
        self,
        *,
        api: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> NeosConfig:
        """
        Configure package settings.

        Args:
            api: Request pipeline overrides (base_url, user_agent, timeouts...).
            allow_env_override: If True (default), env vars are used as fallback
                for fields NOT provided. If False, env vars are ignored.

        Returns:
            The configured NeosConfig instance.

        Raises:
            ValueError: If a dict contains unknown field names.
            ConfigValidationError: If a config value fails validation.

        Example:
            >>> NEOS.configure(api={"user_agent": "my-bot/1.0 (me@example.com)"})
        """
        base = NeosConfig()
        if allow_env_override:
            base = base.with_env_vars()

        self._config = base.with_section_overrides(api=api)
        return self.validate()

    @property
    def config(self) -> NeosConfig:
        """Access the current configuration (read-only)."""
        return self._config

    def reset(self) -> NeosConfig:
        """Reset configuration to defaults + env vars. Useful between tests."""
        self._config = NeosConfig().with_env_vars()
        return self.validate()

    def validate(self) -> NeosConfig:
        """
        Validate the current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config.api.validate()
        return self._config

    def explain(self, output: Callable[[str], None] = print) -> None:
        """
        Print the current configuration with the source of each value.

        Args:
            output: Callable receiving each line, e.g. `logger.info`.

        Example:
            >>> NEOS.explain()
            NEOS Configuration:
            ...
            [api]
              base_url ............ https://www.neosvr-api.com/api/   default
        """
        name_width = 25
        value_width = 50

        output("NEOS Configuration:")
        output("=" * (name_width + value_width + 16))
        for section_name, entries in self._config.explain_data().items():
            output(f"[{section_name}]")
            for entry in entries:
                dots = "." * (name_width - len(entry.name))
                value_padded = entry.formatted_value.ljust(value_width)
                marker = "✎" if entry.source != "default" else " "
                output(f"  {entry.name} {dots} {value_padded} {marker} {entry.source}")
        output("=" * (name_width + value_width + 16))

    def __repr__(self) -> str:
        return f"NEOS(config={self._config!r})"


NEOS: _NEOS = _NEOS()
NEOS.validate()
