"""Pydantic models and merge helpers for the JSON configuration."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from toolsmithy.config.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_RATE_LIMIT_MAX,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_TOOL_TIMEOUT_SECONDS,
)


def deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict with ``updates`` merged into ``base`` recursively.

    A None in ``updates`` means "not set" and leaves the base value in place.
    """
    result = deepcopy(base)
    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif key in result and value is None:
            continue
        else:
            result[key] = value
    return result


class LifecycleConfig(BaseModel):
    """Limits for one agent's request lifecycle. Durations are seconds."""

    cache_ttl: float = Field(DEFAULT_CACHE_TTL_SECONDS, gt=0)
    rate_limit_window: float = Field(DEFAULT_RATE_LIMIT_WINDOW_SECONDS, gt=0)
    rate_limit_max: int = Field(DEFAULT_RATE_LIMIT_MAX, ge=1)
    # 0 or None disables the invoker-side timeout
    tool_timeout: float | None = Field(DEFAULT_TOOL_TIMEOUT_SECONDS, ge=0)

    model_config = ConfigDict(extra="ignore")


class AgentConfig(BaseModel):
    """Per-agent overrides; unset fields inherit from ``lifecycle``."""

    cache_ttl: float | None = Field(None, gt=0)
    rate_limit_window: float | None = Field(None, gt=0)
    rate_limit_max: int | None = Field(None, ge=1)
    tool_timeout: float | None = Field(None, ge=0)

    model_config = ConfigDict(extra="ignore")


class AppConfig(BaseModel):
    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)
    agents: dict[str, AgentConfig] = Field(default_factory=dict)

    log_level: str = "INFO"
    log_format: Literal["pretty", "json"] = "pretty"
    log_colors: bool = True

    model_config = ConfigDict(extra="ignore")

    def lifecycle_for(self, agent_name: str | None) -> LifecycleConfig:
        """Resolve the effective lifecycle limits for an agent."""
        base = self.lifecycle.model_dump()
        override = self.agents.get(agent_name or "")
        if override is not None:
            base = deep_merge(base, override.model_dump(exclude_none=True))
        return LifecycleConfig.model_validate(base)


class ConfigValidationError(ValueError):
    """Raised with the list of readable problems found in a config."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Return the normalized config, or raise ``ConfigValidationError``."""
    try:
        app_config = AppConfig.model_validate(config)
        return app_config.model_dump(mode="json")
    except ValidationError as e:
        raise ConfigValidationError(_extract_validation_errors(e)) from e


_EXPECTED_BY_ERROR_TYPE = {
    "int_type": "integer",
    "int_parsing": "integer",
    "float_type": "number",
    "float_parsing": "number",
    "bool_type": "boolean",
    "bool_parsing": "boolean",
    "dict_type": "object",
}


def _extract_validation_errors(exc: ValidationError) -> list[str]:
    """Flatten pydantic errors into one readable line per problem."""
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "config"
        expected = _EXPECTED_BY_ERROR_TYPE.get(err["type"])
        if err["type"] == "missing":
            errors.append(f"Missing required field: {loc}")
        elif expected:
            errors.append(f"Expected {expected} at '{loc}'")
        else:
            errors.append(f"{loc}: {err['msg']}")
    return errors or ["Invalid configuration"]
