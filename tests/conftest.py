"""Pytest configuration for MealPlan tests."""
import json
import sys
from pathlib import Path

import pytest
from requests.structures import CaseInsensitiveDict

# Add project root to path so 'mealplan' can be imported without an install
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mealplan.llm.config import OpenRouterConfig  # noqa: E402


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, body=None, headers=None, text=None):
        self.status_code = status_code
        self._body = body
        self.headers = CaseInsensitiveDict(headers or {})
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text

    def json(self):
        if self._body is None:
            return json.loads(self.text)
        return self._body


class FakeTransport:
    """Records POST calls and replays queued responses.

    The last queued item is repeated once the queue runs dry. Exceptions are
    raised; callables are invoked and their result returned.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item()
        return item


def completion_body(content="hello", role="assistant", usage=(5, 3, 8), model="openai/gpt-4o"):
    """Build an OpenRouter success body."""
    return {
        "id": "gen-123",
        "model": model,
        "choices": [
            {"message": {"role": role, "content": content}, "finish_reason": "stop"}
        ],
        "usage": {
            "prompt_tokens": usage[0],
            "completion_tokens": usage[1],
            "total_tokens": usage[2],
        },
    }


@pytest.fixture
def make_response():
    """Fixture: factory for fake transport responses."""

    def _factory(status_code=200, body=None, headers=None, text=None):
        return FakeResponse(status_code=status_code, body=body, headers=headers, text=text)

    return _factory


@pytest.fixture
def ok_response(make_response):
    """Fixture: factory for 200 responses carrying one assistant choice."""

    def _factory(content="hello", headers=None, **kwargs):
        return make_response(200, completion_body(content, **kwargs), headers=headers)

    return _factory


@pytest.fixture
def make_transport():
    """Fixture: factory for FakeTransport instances."""

    def _factory(*responses):
        return FakeTransport(*responses)

    return _factory


@pytest.fixture
def config():
    """Fixture: client configuration with a test key."""
    return OpenRouterConfig(api_key="test-key-123")


@pytest.fixture
def sleeps(monkeypatch):
    """Fixture: capture backoff sleeps instead of waiting."""
    delays = []
    monkeypatch.setattr("mealplan.llm.retry.time.sleep", lambda s: delays.append(s))
    return delays
