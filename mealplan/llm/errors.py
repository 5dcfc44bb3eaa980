"""OpenRouter error taxonomy.

Every failure surfaced by the client is an :class:`OpenRouterError`; the
``kind`` field says what went wrong so callers can branch on it::

    try:
        client.chat(messages)
    except OpenRouterError as e:
        if e.kind is ErrorKind.RATE_LIMIT:
            ...
"""

from enum import Enum


class ErrorKind(Enum):
    """Failure classes produced by the OpenRouter client."""

    AUTH = "auth_error"
    RATE_LIMIT = "rate_limit_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    TIMEOUT = "timeout_error"
    SCHEMA_VALIDATION = "schema_validation_error"
    PROTOCOL = "request_failed"
    CANCELLED = "cancelled"


RETRYABLE_KINDS = frozenset({ErrorKind.RATE_LIMIT, ErrorKind.SERVICE_UNAVAILABLE})


class OpenRouterError(RuntimeError):
    """Error raised by :class:`~mealplan.llm.openrouter.OpenRouterClient`.

    Attributes:
        kind: Failure class
        status: HTTP status code, when the failure came from a response
        body: Response body text, for unclassified non-2xx responses
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status = status
        self.body = body

    @property
    def message(self) -> str:
        return str(self)

    @property
    def retryable(self) -> bool:
        """True when the failure class is retried by the client."""
        return self.kind in RETRYABLE_KINDS

    def __repr__(self) -> str:
        return (
            f"OpenRouterError(kind={self.kind.name}, message={str(self)!r}, "
            f"status={self.status!r})"
        )
