"""Configuration model for the llm-tier-router."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .router.types import PROVIDERS, ModelBackend, Thresholds

DEFAULT_MODEL = ModelBackend(
    provider="ollama",
    model="qwen3:14b",
    base_url="http://localhost:11434/v1",
)
POWER_MODEL = ModelBackend(
    provider="anthropic",
    model="claude-opus-4-5-20250205",
    base_url="https://api.anthropic.com",
)


@dataclass
class ObservabilityConfig:
    """Configuration for observability."""

    log_level: str = "INFO"
    log_format: str = "json"
    debug: bool = False


_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(text: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` in a string."""
    def _replace(match: re.Match) -> str:
        expr = match.group(1)
        if ":-" in expr:
            var, default = expr.split(":-", 1)
            return os.environ.get(var, default)
        return os.environ.get(expr, match.group(0))
    return _ENV_VAR_RE.sub(_replace, text)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _model_from_dict(data: Mapping[str, Any], default: ModelBackend) -> ModelBackend:
    return ModelBackend(
        provider=data.get("provider", default.provider),
        model=data.get("model", default.model),
        base_url=data.get("base_url", default.base_url),
        api_key=data.get("api_key", default.api_key),
    )


@dataclass
class RouterConfig:
    """Top-level router configuration."""

    host: str = "127.0.0.1"
    port: int = 5555
    default_model: ModelBackend = DEFAULT_MODEL
    power_model: ModelBackend = POWER_MODEL
    thresholds: Thresholds = field(default_factory=Thresholds)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)
    request_timeout: float = 120.0

    @classmethod
    def from_yaml(cls, path: str | Path) -> RouterConfig:
        """Load configuration from a YAML file.

        Supports ``${VAR}`` and ``${VAR:-default}`` syntax in string values,
        resolved from environment variables at load time.
        """
        with open(path) as f:
            raw = f.read()
        raw = _expand_env_vars(raw)
        data = yaml.safe_load(raw) or {}
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> RouterConfig:
        config = cls()
        config.host = data.get("host", config.host)
        config.port = int(data.get("port", config.port))
        config.request_timeout = float(data.get("request_timeout", config.request_timeout))

        config.default_model = _model_from_dict(
            data.get("default_model") or {}, DEFAULT_MODEL
        )
        config.power_model = _model_from_dict(
            data.get("power_model") or {}, POWER_MODEL
        )

        th = data.get("thresholds") or {}
        defaults = Thresholds()
        config.thresholds = Thresholds(
            min_length_for_power=int(th.get(
                "min_length_for_power", defaults.min_length_for_power)),
            min_code_lines_for_power=int(th.get(
                "min_code_lines_for_power", defaults.min_code_lines_for_power)),
            min_score_for_power=int(th.get(
                "min_score_for_power", defaults.min_score_for_power)),
        )

        obs = data.get("observability") or {}
        if obs:
            config.observability.debug = _as_bool(obs.get("debug", False))
            config.observability.log_level = obs.get(
                "log_level", "DEBUG" if config.observability.debug else "INFO"
            )
            config.observability.log_format = obs.get("log_format", "json")

        return config

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RouterConfig:
        """Load configuration from environment variables with defaults."""
        env = os.environ if environ is None else environ
        config = cls()
        config.host = env.get("ROUTER_HOST", config.host)
        config.port = int(env.get("ROUTER_PORT", config.port))
        config.observability.debug = _as_bool(env.get("ROUTER_DEBUG", "false"))
        config.observability.log_level = env.get(
            "ROUTER_LOG_LEVEL",
            "DEBUG" if config.observability.debug else config.observability.log_level,
        )
        config.observability.log_format = env.get(
            "ROUTER_LOG_FORMAT", config.observability.log_format
        )

        config.default_model = ModelBackend(
            provider=env.get("DEFAULT_PROVIDER", DEFAULT_MODEL.provider),
            model=env.get("DEFAULT_MODEL", DEFAULT_MODEL.model),
            base_url=env.get("DEFAULT_BASE_URL", DEFAULT_MODEL.base_url),
            api_key=env.get("DEFAULT_API_KEY"),
        )
        config.power_model = ModelBackend(
            provider=env.get("POWER_PROVIDER", POWER_MODEL.provider),
            model=env.get("POWER_MODEL", POWER_MODEL.model),
            base_url=env.get("POWER_BASE_URL", POWER_MODEL.base_url),
            api_key=env.get("POWER_API_KEY") or env.get("ANTHROPIC_API_KEY"),
        )

        defaults = Thresholds()
        config.thresholds = Thresholds(
            min_length_for_power=int(env.get(
                "THRESHOLD_MIN_LENGTH", defaults.min_length_for_power)),
            min_code_lines_for_power=int(env.get(
                "THRESHOLD_MIN_CODE_LINES", defaults.min_code_lines_for_power)),
            min_score_for_power=int(env.get(
                "THRESHOLD_MIN_SCORE", defaults.min_score_for_power)),
        )
        return config

    def validate(self) -> list[str]:
        """Return a list of configuration problems (empty when valid)."""
        errors: list[str] = []

        if self.port < 1 or self.port > 65535:
            errors.append("Port must be between 1 and 65535")

        for label, model in (("Default", self.default_model), ("Power", self.power_model)):
            if model.provider not in PROVIDERS:
                errors.append(
                    f"{label} model provider must be one of {', '.join(PROVIDERS)}"
                )
            if not model.base_url:
                errors.append(f"{label} model base URL is required")

        if self.power_model.provider == "anthropic" and not self.power_model.api_key:
            errors.append("Power model API key is required for Anthropic")
        if self.power_model.provider == "openai" and not self.power_model.api_key:
            errors.append("Power model API key is required for OpenAI")

        th = self.thresholds
        if min(th.min_length_for_power, th.min_code_lines_for_power,
               th.min_score_for_power) < 0:
            errors.append("Thresholds must be non-negative")

        return errors
