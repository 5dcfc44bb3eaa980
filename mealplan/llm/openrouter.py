"""OpenRouter HTTP client."""

import os
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, replace
from typing import Any, Sequence

import requests
from dotenv import load_dotenv

from mealplan.logger import get_logger

from . import retry
from .config import API_KEY_ENV, OpenRouterConfig, config_from_env
from .errors import ErrorKind, OpenRouterError
from .response import ChatOptions, LLMResponse, Message, TokenUsage
from .retry import CancelToken, RetryState, compute_backoff

logger = get_logger(__name__)

BUDGET_HEADER = "x-remaining-budget"

# USD per 1M tokens (approximate)
COST_PER_MILLION_TOKENS = {
    "openai/gpt-4o": 5.0,
    "openai/gpt-4o-mini": 0.6,
    "openai/gpt-3.5-turbo": 0.5,
    "anthropic/claude-3-opus": 15.0,
    "anthropic/claude-3-sonnet": 3.0,
    "anthropic/claude-3-haiku": 0.25,
}
DEFAULT_COST_PER_MILLION = 5.0

_POLL_S = 0.05


@dataclass
class ClientState:
    """Mutable per-client gauges. Last write wins; no locking."""

    remaining_budget: float = 0.0
    rate_limit_delay_s: float = 0.0


def validate_response_format(response_format: Any) -> None:
    """Check the shape of a structured-output ``response_format`` block.

    Raises:
        OpenRouterError: SCHEMA_VALIDATION describing the first violation
    """
    if not isinstance(response_format, dict) or response_format.get("type") != "json_schema":
        raise OpenRouterError(
            ErrorKind.SCHEMA_VALIDATION, 'Response format type must be "json_schema"'
        )

    json_schema = response_format.get("json_schema")
    if not isinstance(json_schema, dict) or not json_schema.get("name"):
        raise OpenRouterError(
            ErrorKind.SCHEMA_VALIDATION, "Response format must include json_schema.name"
        )

    if json_schema.get("strict") is not True:
        raise OpenRouterError(
            ErrorKind.SCHEMA_VALIDATION, "Response format json_schema.strict must be true"
        )

    if not isinstance(json_schema.get("schema"), dict):
        raise OpenRouterError(
            ErrorKind.SCHEMA_VALIDATION, "Response format must include valid json_schema.schema"
        )


def _coerce_message(message: Message | dict[str, Any]) -> Message:
    if isinstance(message, Message):
        if message.role not in ("system", "user", "assistant"):
            raise OpenRouterError(
                ErrorKind.SCHEMA_VALIDATION, f"Invalid message role: {message.role!r}"
            )
        return message
    if isinstance(message, dict):
        return Message.from_dict(message)
    raise OpenRouterError(
        ErrorKind.SCHEMA_VALIDATION,
        f"Unsupported message type: {type(message).__name__}",
    )


class OpenRouterClient:
    """Client for the OpenRouter chat-completion API.

    One instance per logical service connection. Configuration is immutable;
    only ``set_rate_limit`` changes behaviour after construction.

    Args:
        config: Client configuration
        http_client: Transport exposing ``post(url, headers=, json=, timeout=)``
            and returning a requests-style response. Defaults to ``requests``.
    """

    def __init__(self, config: OpenRouterConfig, http_client: Any = None):
        if not config.api_key or not config.api_key.strip():
            raise OpenRouterError(ErrorKind.AUTH, "OpenRouter API key is required")

        self.config = config
        self.http_client = http_client if http_client is not None else requests
        self.state = ClientState()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chat(
        self,
        messages: Sequence[Message | dict[str, Any]],
        options: ChatOptions | None = None,
    ) -> LLMResponse:
        """Send a chat completion request.

        Args:
            messages: Ordered system/user/assistant messages
            options: Per-call model, params, response format and cancel token

        Returns:
            The assistant reply with token usage

        Raises:
            OpenRouterError: For every failure; see ``ErrorKind``
        """
        options = options or ChatOptions()

        if not messages:
            raise OpenRouterError(
                ErrorKind.SCHEMA_VALIDATION, "Messages list cannot be empty"
            )
        normalized = [_coerce_message(m) for m in messages]

        if options.response_format is not None:
            validate_response_format(options.response_format)

        model = options.model or self.config.default_model
        params = {**self.config.default_params, **(options.params or {})}
        payload = self._build_payload(normalized, model, params, options.response_format)

        state = RetryState(
            max_retries=self.config.max_retries,
            base_delay_s=self.config.base_delay_s,
        )

        logger.info(
            "llm.chat.start",
            event="llm.chat.start",
            model=model,
            message_count=len(normalized),
            structured=options.response_format is not None,
        )

        start_time = time.time()
        try:
            response = self._execute_with_retry(payload, state, options.cancel)
        except Exception as e:
            logger.error(
                "llm.chat.error",
                event="llm.chat.error",
                model=model,
                error_type=type(e).__name__,
                error_kind=getattr(getattr(e, "kind", None), "name", None),
                error_message=str(e),
                attempts=state.current_attempt + 1,
                elapsed_ms=int((time.time() - start_time) * 1000),
            )
            raise

        logger.info(
            "llm.chat.success",
            event="llm.chat.success",
            model=response.model,
            attempts=state.current_attempt + 1,
            elapsed_ms=response.elapsed_ms,
            usage={
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            },
        )
        return response

    def with_model(self, model: str) -> "OpenRouterClient":
        """Return a new client defaulting to ``model``; self is unchanged."""
        return OpenRouterClient(
            replace(self.config, default_model=model),
            http_client=self.http_client,
        )

    def estimate_cost(self, tokens: int, model: str | None = None) -> float:
        """Approximate USD cost of ``tokens`` for ``model`` (default model if omitted)."""
        target = model or self.config.default_model
        rate = COST_PER_MILLION_TOKENS.get(target, DEFAULT_COST_PER_MILLION)
        return (tokens / 1_000_000) * rate

    def get_remaining_budget(self) -> float:
        """Remaining budget reported by the last response carrying the header."""
        return self.state.remaining_budget

    def set_rate_limit(self, delay_s: float) -> None:
        """Sleep ``delay_s`` seconds before every retry attempt.

        Raises:
            ValueError: If delay_s is negative
        """
        if delay_s < 0:
            raise ValueError("Rate limit delay must be non-negative")
        self.state.rate_limit_delay_s = delay_s

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
            "HTTP-Referer": self.config.referer,
            "X-Title": self.config.title,
        }

    def _build_payload(
        self,
        messages: list[Message],
        model: str,
        params: dict[str, Any],
        response_format: dict[str, Any] | None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [m.to_dict() for m in messages],
            **params,
        }
        if response_format is not None:
            payload["response_format"] = response_format
        return payload

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute_with_retry(
        self,
        payload: dict[str, Any],
        state: RetryState,
        cancel: CancelToken | None,
    ) -> LLMResponse:
        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()

            if state.current_attempt > 0 and self.state.rate_limit_delay_s > 0:
                retry.sleep(self.state.rate_limit_delay_s, cancel)

            start_time = time.time()
            response = self._send(payload, cancel)
            elapsed_ms = int((time.time() - start_time) * 1000)

            self._update_budget(response)

            status = response.status_code
            if 200 <= status < 300:
                return self._parse_response(response, payload["model"], elapsed_ms)

            jitter = self._handle_http_error(response, state)
            delay = compute_backoff(state, jitter=jitter)

            logger.warning(
                "llm.chat.retry",
                event="llm.chat.retry",
                model=payload["model"],
                status=status,
                attempt=state.current_attempt + 1,
                max_retries=state.max_retries,
                delay_s=round(delay, 3),
            )

            retry.sleep(delay, cancel)
            state.current_attempt += 1

    def _send(self, payload: dict[str, Any], cancel: CancelToken | None) -> Any:
        """POST ``payload`` with ``timeout_s`` bounding the whole request.

        ``requests`` only limits each socket read, so the call runs on a
        worker thread that is abandoned on cancel or once the deadline
        passes. A caller cancel is checked first.
        """
        deadline = time.monotonic() + self.config.timeout_s
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="openrouter")
        try:
            future = executor.submit(self._post, payload)
            while True:
                if cancel is not None:
                    cancel.raise_if_cancelled()
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise OpenRouterError(
                        ErrorKind.TIMEOUT,
                        f"Request timed out after {self.config.timeout_s}s",
                    )
                try:
                    result = future.result(timeout=min(_POLL_S, remaining))
                except FutureTimeout:
                    continue
                except OpenRouterError:
                    if cancel is not None:
                        cancel.raise_if_cancelled()
                    raise
                if cancel is not None:
                    cancel.raise_if_cancelled()
                return result
        finally:
            executor.shutdown(wait=False)

    def _post(self, payload: dict[str, Any]) -> Any:
        try:
            return self.http_client.post(
                self.config.completions_url,
                headers=self._build_headers(),
                json=payload,
                timeout=self.config.timeout_s,
            )
        except (requests.Timeout, TimeoutError) as e:
            raise OpenRouterError(
                ErrorKind.TIMEOUT,
                f"Request timed out after {self.config.timeout_s}s",
            ) from e
        except Exception as e:
            raise OpenRouterError(
                ErrorKind.PROTOCOL, f"Unexpected error: {e}"
            ) from e

    def _update_budget(self, response: Any) -> None:
        value = response.headers.get(BUDGET_HEADER)
        if value is None:
            return
        try:
            self.state.remaining_budget = float(value)
        except (TypeError, ValueError):
            logger.warning(
                "llm.budget.invalid_header",
                event="llm.budget.invalid_header",
                header_value=str(value),
            )

    def _handle_http_error(self, response: Any, state: RetryState) -> bool:
        """Raise for terminal failures; return the jitter flag for retryable ones."""
        status = response.status_code
        body = response.text or ""

        if status in (401, 403):
            raise OpenRouterError(
                ErrorKind.AUTH,
                f"Authentication failed: {body or 'Invalid or expired API key'}",
                status=status,
            )

        if status == 429:
            if state.exhausted:
                raise OpenRouterError(
                    ErrorKind.RATE_LIMIT,
                    f"Rate limit exceeded after {state.max_retries} retries",
                    status=status,
                )
            return False

        if 500 <= status < 600:
            if state.exhausted:
                raise OpenRouterError(
                    ErrorKind.SERVICE_UNAVAILABLE,
                    f"Service unavailable after {state.max_retries} retries: {body}",
                    status=status,
                )
            return True

        raise OpenRouterError(
            ErrorKind.PROTOCOL,
            f"Request failed with status {status}: {body}",
            status=status,
            body=body,
        )

    def _parse_response(self, response: Any, model: str, elapsed_ms: int) -> LLMResponse:
        status = response.status_code
        try:
            data = response.json()
        except ValueError as e:
            raise OpenRouterError(
                ErrorKind.PROTOCOL, "Invalid response: body is not valid JSON", status=status
            ) from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise OpenRouterError(
                ErrorKind.PROTOCOL, "Invalid response: no choices returned", status=status
            )

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict) or message.get("role") != "assistant":
            raise OpenRouterError(
                ErrorKind.PROTOCOL,
                "Invalid response: missing or invalid assistant message",
                status=status,
            )

        content = message.get("content")
        if not isinstance(content, str):
            raise OpenRouterError(
                ErrorKind.PROTOCOL,
                "Invalid response: assistant message has no text content",
                status=status,
            )

        return LLMResponse(
            raw=response,
            usage=TokenUsage.from_dict(data.get("usage")),
            message=Message(role="assistant", content=content),
            model=data.get("model", model),
            elapsed_ms=elapsed_ms,
        )


def create_openrouter_client(http_client: Any = None, **overrides: Any) -> OpenRouterClient:
    """Create a client configured from the environment.

    Keyword arguments override ``OpenRouterConfig`` fields.

    Raises:
        OpenRouterError: AUTH if OPENROUTER_API_KEY is not set
    """
    load_dotenv()
    if not overrides.get("api_key") and not os.getenv(API_KEY_ENV):
        raise OpenRouterError(
            ErrorKind.AUTH, f"{API_KEY_ENV} environment variable is not set"
        )
    return OpenRouterClient(config_from_env(**overrides), http_client=http_client)
