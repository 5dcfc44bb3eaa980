"""LLM request and response data structures."""

from dataclasses import dataclass, field
from typing import Any, Literal

from .errors import ErrorKind, OpenRouterError
from .retry import CancelToken

Role = Literal["system", "user", "assistant"]
ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class Message:
    """A single role-tagged chat message."""

    role: Role
    content: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """Build a message from its wire form ``{"role": ..., "content": ...}``.

        Raises:
            OpenRouterError: SCHEMA_VALIDATION for an unknown role or missing content
        """
        role = data.get("role")
        content = data.get("content")
        if role not in ROLES:
            raise OpenRouterError(
                ErrorKind.SCHEMA_VALIDATION, f"Invalid message role: {role!r}"
            )
        if not isinstance(content, str):
            raise OpenRouterError(
                ErrorKind.SCHEMA_VALIDATION, "Message content must be a string"
            )
        return cls(role=role, content=content)

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class TokenUsage:
    """Token consumption reported for one completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "TokenUsage":
        """Anything other than a mapping counts as no usage reported."""
        if not isinstance(data, dict):
            data = {}
        return cls(
            prompt_tokens=data.get("prompt_tokens", 0),
            completion_tokens=data.get("completion_tokens", 0),
            total_tokens=data.get("total_tokens", 0),
        )


@dataclass
class LLMResponse:
    """Result of a successful chat completion.

    ``raw`` is the transport response object, handed over as-is.
    """

    raw: Any
    usage: TokenUsage
    message: Message
    model: str | None = None
    elapsed_ms: int = 0


@dataclass
class ChatOptions:
    """Per-call overrides for :meth:`OpenRouterClient.chat`."""

    model: str | None = None
    params: dict[str, Any] = field(default_factory=dict)
    response_format: dict[str, Any] | None = None
    cancel: CancelToken | None = None


def json_schema_format(name: str, schema: dict[str, Any]) -> dict[str, Any]:
    """Build a strict ``response_format`` block for structured output."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "strict": True,
            "schema": schema,
        },
    }
