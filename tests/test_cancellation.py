"""Tests for caller-driven cancellation of chat calls."""

import threading
import time
from dataclasses import replace

import pytest
import requests

from mealplan.llm import CancelToken, ChatOptions, ErrorKind, Message, OpenRouterClient, OpenRouterError

USER_HI = [Message(role="user", content="hi")]


class Aborted(Exception):
    """Caller-defined abort reason."""


def test_cancelled_token_prevents_any_attempt(config, make_transport, ok_response):
    """Test that a token cancelled up front stops the call before any request."""
    transport = make_transport(ok_response())
    client = OpenRouterClient(config, http_client=transport)
    token = CancelToken()
    token.cancel()

    with pytest.raises(OpenRouterError) as exc_info:
        client.chat(USER_HI, ChatOptions(cancel=token))

    assert exc_info.value.kind is ErrorKind.CANCELLED
    assert transport.calls == []


def test_caller_reason_is_raised_unchanged(config, make_transport, ok_response):
    """Test that the caller's abort reason is raised as-is."""
    client = OpenRouterClient(config, http_client=make_transport(ok_response()))
    token = CancelToken()
    reason = Aborted("user closed the dialog")
    token.cancel(reason)

    with pytest.raises(Aborted) as exc_info:
        client.chat(USER_HI, ChatOptions(cancel=token))

    assert exc_info.value is reason


def test_first_reason_wins():
    """Test that later cancels keep the first reason."""
    token = CancelToken()
    first = Aborted("first")
    token.cancel(first)
    token.cancel(Aborted("second"))

    assert token.cancelled is True
    assert token.reason is first


def test_cancel_during_backoff_stops_retries(config, make_transport, make_response):
    """Test that a cancel after a 503 skips the backoff and the retries."""
    token = CancelToken()

    def overloaded():
        token.cancel()
        return make_response(503)

    transport = make_transport(overloaded)
    client = OpenRouterClient(config, http_client=transport)

    start = time.time()
    with pytest.raises(OpenRouterError) as exc_info:
        client.chat(USER_HI, ChatOptions(cancel=token))

    assert exc_info.value.kind is ErrorKind.CANCELLED
    assert len(transport.calls) == 1
    # no 1s backoff wait
    assert time.time() - start < 0.9


def test_cancel_aborts_in_flight_request(config):
    """Test that a cancel abandons a request still waiting on the network."""
    release = threading.Event()

    class SlowTransport:
        def __init__(self):
            self.calls = 0

        def post(self, url, headers=None, json=None, timeout=None):
            self.calls += 1
            release.wait(5)
            raise requests.Timeout("released")

    transport = SlowTransport()
    client = OpenRouterClient(config, http_client=transport)
    token = CancelToken()
    reason = Aborted("navigated away")
    timer = threading.Timer(0.1, token.cancel, args=(reason,))

    start = time.time()
    timer.start()
    try:
        with pytest.raises(Aborted):
            client.chat(USER_HI, ChatOptions(cancel=token))
    finally:
        release.set()
        timer.cancel()

    assert time.time() - start < 2
    assert transport.calls == 1


def test_cancel_wins_over_simultaneous_timeout(config):
    """Test that a caller abort wins over a timeout at the same moment."""
    token = CancelToken()
    reason = Aborted("user abort")

    class RacingTransport:
        def post(self, url, headers=None, json=None, timeout=None):
            token.cancel(reason)
            raise requests.Timeout("timed out at the same moment")

    client = OpenRouterClient(config, http_client=RacingTransport())

    with pytest.raises(Aborted) as exc_info:
        client.chat(USER_HI, ChatOptions(cancel=token))

    assert exc_info.value is reason


def test_timeout_without_cancel_is_timeout_error(config):
    """Test that a timeout with a live token is still TIMEOUT."""
    class TimingOutTransport:
        def post(self, url, headers=None, json=None, timeout=None):
            raise requests.Timeout("slow")

    client = OpenRouterClient(config, http_client=TimingOutTransport())

    with pytest.raises(OpenRouterError) as exc_info:
        client.chat(USER_HI, ChatOptions(cancel=CancelToken()))

    assert exc_info.value.kind is ErrorKind.TIMEOUT


def test_uncancelled_token_succeeds(config, make_transport, ok_response):
    """Test that a live token does not affect a successful call."""
    client = OpenRouterClient(config, http_client=make_transport(ok_response("done")))

    response = client.chat(USER_HI, ChatOptions(cancel=CancelToken()))

    assert response.message.content == "done"


def test_deadline_applies_with_live_token(config):
    """Test that a slow request is aborted at timeout_s when a token is passed."""
    release = threading.Event()

    class StalledTransport:
        def post(self, url, headers=None, json=None, timeout=None):
            release.wait(5)
            raise requests.ConnectionError("released")

    client = OpenRouterClient(
        replace(config, timeout_s=0.2), http_client=StalledTransport()
    )

    start = time.time()
    try:
        with pytest.raises(OpenRouterError) as exc_info:
            client.chat(USER_HI, ChatOptions(cancel=CancelToken()))
    finally:
        release.set()

    assert exc_info.value.kind is ErrorKind.TIMEOUT
    assert time.time() - start < 2
