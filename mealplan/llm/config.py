"""OpenRouter client configuration loading.

Configuration comes from a YAML file (``load_config``) or from environment
variables (``config_from_env``). Values of the form ``${VAR}`` in the YAML
file are expanded from the environment so the API key never has to be
committed.
"""

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "openai/gpt-4o"
DEFAULT_REFERER = "https://daily-meal-plan.app"
DEFAULT_TITLE = "Daily Meal Plan"
API_KEY_ENV = "OPENROUTER_API_KEY"


def _default_params() -> dict[str, Any]:
    return {"temperature": 0.7, "top_p": 1.0, "max_tokens": 1000}


@dataclass(frozen=True)
class OpenRouterConfig:
    """Construction-time settings for an OpenRouter client.

    Immutable: use ``dataclasses.replace`` to derive a variant.
    """

    api_key: str
    default_model: str = DEFAULT_MODEL
    default_params: dict[str, Any] = field(default_factory=_default_params)
    timeout_s: float = 30.0
    max_retries: int = 3
    base_delay_s: float = 1.0
    base_url: str = DEFAULT_BASE_URL
    referer: str = DEFAULT_REFERER
    title: str = DEFAULT_TITLE

    def __post_init__(self):
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {self.timeout_s}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")
        if self.base_delay_s < 0:
            raise ValueError(f"base_delay_s must be non-negative, got {self.base_delay_s}")
        if not isinstance(self.default_params, dict):
            raise ValueError("default_params must be a mapping")

    @property
    def completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"


_ENV_REF = re.compile(r"\$\{(\w+)\}")


def expand_env_vars(value: Any) -> Any:
    """Replace ``${VAR}`` references in strings, recursing into mappings and lists.

    Unset variables expand to an empty string, so a missing key surfaces as
    the ``api_key`` validation error.
    """
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def _build_config(data: dict[str, Any]) -> OpenRouterConfig:
    known = {f.name for f in fields(OpenRouterConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown openrouter config fields: {', '.join(unknown)}")

    if not data.get("api_key"):
        raise ValueError(
            f"Configuration missing 'api_key' (set {API_KEY_ENV} or provide it inline)"
        )

    kwargs = dict(data)
    try:
        if "timeout_s" in kwargs:
            kwargs["timeout_s"] = float(kwargs["timeout_s"])
        if "max_retries" in kwargs:
            kwargs["max_retries"] = int(kwargs["max_retries"])
        if "base_delay_s" in kwargs:
            kwargs["base_delay_s"] = float(kwargs["base_delay_s"])
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid numeric value in openrouter config: {e}") from e

    if "default_params" in kwargs:
        # Partial overrides keep the remaining defaults
        kwargs["default_params"] = {**_default_params(), **(kwargs["default_params"] or {})}

    return OpenRouterConfig(**kwargs)


def load_config(path: str | Path) -> OpenRouterConfig:
    """Load and validate OpenRouter configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated configuration

    Raises:
        FileNotFoundError: If config file not found
        ValueError: If configuration is invalid
        yaml.YAMLError: If YAML is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    load_dotenv()

    with open(path) as f:
        data = yaml.safe_load(f)

    if not data or "openrouter" not in data:
        raise ValueError("Configuration file missing 'openrouter' section")

    section = data["openrouter"]
    if not isinstance(section, dict):
        raise ValueError("'openrouter' section must be a mapping")

    return _build_config(expand_env_vars(section))


def config_from_env(**overrides: Any) -> OpenRouterConfig:
    """Build configuration from environment variables (``.env`` is honoured).

    Recognised variables: OPENROUTER_API_KEY, OPENROUTER_MODEL,
    OPENROUTER_TIMEOUT_S, OPENROUTER_MAX_RETRIES. Keyword arguments win over
    the environment.

    Raises:
        ValueError: If no API key is available
    """
    load_dotenv()

    data: dict[str, Any] = {"api_key": os.getenv(API_KEY_ENV, "")}
    env_fields = {
        "default_model": "OPENROUTER_MODEL",
        "timeout_s": "OPENROUTER_TIMEOUT_S",
        "max_retries": "OPENROUTER_MAX_RETRIES",
    }
    for name, env_var in env_fields.items():
        value = os.getenv(env_var)
        if value:
            data[name] = value

    data.update(overrides)
    return _build_config(data)
