"""Engine configuration loading.

Builds an ``EngineConfig`` from defaults, an optional mapping of overrides,
and ``STACKPILOT_*`` environment variables (highest precedence).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from stackpilot.lib.errors import ConfigError
from stackpilot.lib.logging_config import get_logger, setup_logging
from stackpilot.models.config import EngineConfig

logger = get_logger(__name__)

# Environment variable to (section, field) mapping
ENV_VAR_MAP: dict[str, tuple[str | None, str]] = {
    "STACKPILOT_POLL_DELAY": ("stack_poll", "delay_seconds"),
    "STACKPILOT_POLL_MAX_DELAY": ("stack_poll", "max_delay_seconds"),
    "STACKPILOT_STACK_TIMEOUT": ("stack_poll", "timeout_seconds"),
    "STACKPILOT_CHANGE_SET_TIMEOUT": ("change_set_poll", "timeout_seconds"),
    "STACKPILOT_MONITOR_INTERVAL": (None, "monitor_interval_seconds"),
    "STACKPILOT_PUBLISH_CONCURRENCY": (None, "publish_concurrency"),
    "STACKPILOT_VERBOSE": (None, "verbose"),
    "STACKPILOT_QUIET": (None, "quiet"),
}

_BOOL_FIELDS = {"verbose", "quiet"}
_INT_FIELDS = {"publish_concurrency"}


def _parse_env_value(env_var: str, field_name: str, value: str) -> Any:
    """Parse an environment variable value to the field's type.

    Raises:
        ConfigError: If the value cannot be parsed
    """
    if field_name in _BOOL_FIELDS:
        return value.strip().lower() in ("true", "1", "yes", "on")
    try:
        if field_name in _INT_FIELDS:
            return int(value)
        return float(value)
    except ValueError as exc:
        raise ConfigError(
            field=env_var, message=f"Expected a number, got '{value}'"
        ) from exc


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> None:
    """Deep merge override into base (in-place)."""
    for key, override_value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(override_value, Mapping)
        ):
            _deep_merge(base[key], override_value)
        else:
            base[key] = override_value


def env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect engine settings from ``STACKPILOT_*`` environment variables."""
    overrides: dict[str, Any] = {}
    for env_var, (section, field_name) in ENV_VAR_MAP.items():
        raw = env.get(env_var)
        if raw is None or raw.strip() == "":
            continue
        value = _parse_env_value(env_var, field_name, raw)
        logger.debug(f"Engine setting {field_name} overridden by {env_var}")
        if section is None:
            overrides[field_name] = value
        else:
            overrides.setdefault(section, {})[field_name] = value
    return overrides


def load_engine_config(
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> EngineConfig:
    """Load engine configuration.

    Precedence (highest first): environment variables, explicit overrides,
    built-in defaults.

    Args:
        overrides: Optional nested mapping of settings
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated EngineConfig

    Raises:
        ConfigError: If a value is malformed or fails validation
    """
    merged: dict[str, Any] = EngineConfig().model_dump()
    if overrides:
        _deep_merge(merged, overrides)
    _deep_merge(merged, env_overrides(os.environ if env is None else env))

    try:
        return EngineConfig.model_validate(merged)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "engine"
        raise ConfigError(field=field, message=first.get("msg", str(exc))) from exc


def configure_logging(config: EngineConfig) -> None:
    """Configure package logging from the ``verbose`` and ``quiet`` settings."""
    setup_logging(verbose=config.verbose, quiet=config.quiet)
