"""Tests for backoff computation and cancellable sleeps."""

import threading
import time

import pytest

from mealplan.llm.errors import ErrorKind, OpenRouterError
from mealplan.llm.retry import CancelToken, RetryState, compute_backoff, sleep


def test_backoff_doubles_per_attempt():
    """Test exponential backoff without jitter."""
    state = RetryState(max_retries=3, base_delay_s=1.0)

    delays = []
    for attempt in range(4):
        state.current_attempt = attempt
        delays.append(compute_backoff(state))

    assert delays == [1.0, 2.0, 4.0, 8.0]


def test_backoff_jitter_is_at_most_half(monkeypatch):
    """Test that jitter adds between 0 and 50% of the delay."""
    state = RetryState(max_retries=3, current_attempt=2, base_delay_s=0.5)

    monkeypatch.setattr("mealplan.llm.retry.random.random", lambda: 0.0)
    assert compute_backoff(state, jitter=True) == 2.0

    monkeypatch.setattr("mealplan.llm.retry.random.random", lambda: 0.999999)
    assert compute_backoff(state, jitter=True) == pytest.approx(3.0, rel=1e-5)


def test_exhausted():
    """Test the exhausted flag against max_retries."""
    state = RetryState(max_retries=2)
    assert state.exhausted is False
    state.current_attempt = 2
    assert state.exhausted is True


def test_sleep_without_token_uses_time_sleep(sleeps):
    """Test that plain sleeps skip zero delays."""
    sleep(0.5)
    sleep(0)

    assert sleeps == [0.5]


def test_sleep_wakes_when_cancelled():
    """Test that a cancel interrupts a long sleep."""
    token = CancelToken()
    timer = threading.Timer(0.05, token.cancel)

    start = time.time()
    timer.start()
    with pytest.raises(OpenRouterError) as exc_info:
        sleep(5.0, token)

    assert exc_info.value.kind is ErrorKind.CANCELLED
    assert time.time() - start < 2


def test_sleep_with_live_token_completes():
    """Test that a sleep with a live token returns normally."""
    token = CancelToken()

    sleep(0.01, token)

    assert token.cancelled is False
