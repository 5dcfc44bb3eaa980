"""OpenRouter chat-completion client with retry, backoff and typed errors."""

from .config import OpenRouterConfig, config_from_env, load_config
from .errors import ErrorKind, OpenRouterError
from .openrouter import OpenRouterClient, create_openrouter_client
from .response import ChatOptions, LLMResponse, Message, TokenUsage, json_schema_format
from .retry import CancelToken

__all__ = [
    "CancelToken",
    "ChatOptions",
    "ErrorKind",
    "LLMResponse",
    "Message",
    "OpenRouterClient",
    "OpenRouterConfig",
    "OpenRouterError",
    "TokenUsage",
    "config_from_env",
    "create_openrouter_client",
    "json_schema_format",
    "load_config",
]
