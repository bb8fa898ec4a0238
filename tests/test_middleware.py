"""Tests for agent middleware utilities.

Covers ``_is_retryable``, ``_retry_after_ms`` and the retry
loop of ``RetryChatMiddleware``.
"""

from __future__ import annotations

import asyncio
from unittest import mock

import pytest

from keksregal.agents.middleware import RetryChatMiddleware, TimingChatMiddleware, _is_retryable, _retry_after_ms

# ── _is_retryable ──────────────────────────────────────────────


class TestIsRetryable:
    """Tests for the error classification helper."""

    def test_rate_limit_429_string(self) -> None:
        assert _is_retryable(Exception("Error 429 Too Many Requests"))

    def test_rate_limit_text(self) -> None:
        assert _is_retryable(Exception("Rate limit exceeded"))

    def test_timeout_error_type(self) -> None:
        assert _is_retryable(TimeoutError("timed out"))

    def test_connection_reset_error_type(self) -> None:
        assert _is_retryable(ConnectionResetError("peer reset"))

    def test_server_error_status_code(self) -> None:
        exc = Exception("server error")
        exc.status_code = 502  # type: ignore[attr-defined]
        assert _is_retryable(exc)

    def test_non_retryable_error(self) -> None:
        assert not _is_retryable(ValueError("invalid input"))

    def test_non_retryable_400(self) -> None:
        exc = Exception("bad request")
        exc.status = 400  # type: ignore[attr-defined]
        assert not _is_retryable(exc)


# ── _retry_after_ms ─────────────────────────────────────────────


class TestRetryAfter:
    def test_no_headers(self) -> None:
        assert _retry_after_ms(Exception("oops")) is None

    def test_seconds_header(self) -> None:
        exc = Exception("rate limit")
        exc.headers = {"Retry-After": "5"}  # type: ignore[attr-defined]
        assert _retry_after_ms(exc) == 5000

    def test_lowercase_header(self) -> None:
        exc = Exception("rate limit")
        exc.headers = {"retry-after": "2"}  # type: ignore[attr-defined]
        assert _retry_after_ms(exc) == 2000

    def test_http_date_ignored(self) -> None:
        exc = Exception("rate limit")
        exc.headers = {"Retry-After": "Thu, 01 Jan 2099 00:00:00 GMT"}  # type: ignore[attr-defined]
        assert _retry_after_ms(exc) is None


# ── RetryChatMiddleware.process ─────────────────────────────────


def _context() -> mock.Mock:
    return mock.Mock(messages=[], metadata={})


class TestRetryProcess:
    def test_retries_transient_then_succeeds(self) -> None:
        middleware = RetryChatMiddleware("test", max_retries=2, initial_delay_ms=1)
        calls = mock.AsyncMock(side_effect=[TimeoutError("slow"), None])

        with mock.patch("keksregal.agents.middleware.asyncio.sleep", new=mock.AsyncMock()) as sleep:
            asyncio.run(middleware.process(_context(), calls))

        assert calls.await_count == 2
        sleep.assert_awaited_once()

    def test_non_retryable_raised_immediately(self) -> None:
        middleware = RetryChatMiddleware("test", max_retries=3)
        calls = mock.AsyncMock(side_effect=ValueError("bad"))
        with pytest.raises(ValueError):
            asyncio.run(middleware.process(_context(), calls))
        assert calls.await_count == 1

    def test_exhausted_retries_raise_last_error(self) -> None:
        middleware = RetryChatMiddleware("test", max_retries=1, initial_delay_ms=1)
        calls = mock.AsyncMock(side_effect=TimeoutError("slow"))
        with mock.patch("keksregal.agents.middleware.asyncio.sleep", new=mock.AsyncMock()):
            with pytest.raises(TimeoutError):
                asyncio.run(middleware.process(_context(), calls))
        assert calls.await_count == 2

    def test_delay_capped(self) -> None:
        middleware = RetryChatMiddleware("test", max_delay_ms=500)
        assert middleware._delay_seconds(Exception("x"), 10_000) == 0.5


class TestTimingProcess:
    def test_records_timing_metadata(self) -> None:
        context = _context()
        asyncio.run(TimingChatMiddleware("timed").process(context, mock.AsyncMock()))
        assert context.metadata["timing"]["agent_name"] == "timed"
