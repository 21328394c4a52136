"""Tests for call_with_retry, backoff_delay and transient classification."""

import logging
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from lecture_processor.utils.errors import (
    ContentQualityError,
    NetworkError,
    TranscriptionError,
)
from lecture_processor.utils.retry import (
    MAX_BACKOFF_SECONDS,
    backoff_delay,
    call_with_retry,
    is_transient_error,
)


@pytest.fixture(autouse=True)
def no_sleep():
    """Skip real backoff delays."""
    with patch(
        "lecture_processor.utils.retry.asyncio.sleep", new_callable=AsyncMock
    ) as mock_sleep:
        yield mock_sleep


class TestTransientClassification:
    """Tests for type-based transient vs fatal classification."""

    def test_network_error_is_transient(self) -> None:
        assert is_transient_error(NetworkError("connection reset"))

    def test_httpx_transport_errors_are_transient(self) -> None:
        assert is_transient_error(httpx.ConnectError("dns failure"))
        assert is_transient_error(httpx.ReadTimeout("timed out"))

    def test_collaborator_errors_are_fatal(self) -> None:
        assert not is_transient_error(TranscriptionError("bad format"))

    def test_message_text_does_not_make_an_error_transient(self) -> None:
        """An error mentioning a network keyword is still fatal."""
        assert not is_transient_error(ValueError("fetch failed: ECONNRESET"))


class TestBackoffDelay:
    """Tests for the backoff schedule."""

    def test_doubles_each_attempt(self) -> None:
        assert [backoff_delay(n, 2.0) for n in range(3)] == [2.0, 4.0, 8.0]

    def test_capped_at_thirty_seconds(self) -> None:
        assert backoff_delay(10, 3.0) == MAX_BACKOFF_SECONDS == 30.0


class TestCallWithRetry:
    """Tests for attempt budgets."""

    async def test_succeeds_on_first_call(self) -> None:
        operation = AsyncMock(return_value="ok")

        result = await call_with_retry(operation, max_attempts=3, base_delay=0.01)

        assert result == "ok"
        assert operation.await_count == 1

    async def test_transient_then_success(self) -> None:
        operation = AsyncMock(side_effect=[NetworkError("reset"), "ok"])

        result = await call_with_retry(operation, max_attempts=5, base_delay=0.01)

        assert result == "ok"
        assert operation.await_count == 2

    @pytest.mark.parametrize("budget", [1, 3, 5])
    async def test_transient_failure_invoked_exactly_budget_times(
        self, budget: int
    ) -> None:
        operation = AsyncMock(side_effect=NetworkError("timeout"))

        with pytest.raises(NetworkError, match="timeout"):
            await call_with_retry(operation, max_attempts=budget, base_delay=0.01)

        assert operation.await_count == budget

    async def test_fatal_error_invoked_once(self) -> None:
        operation = AsyncMock(side_effect=ContentQualityError("too short"))

        with pytest.raises(ContentQualityError):
            await call_with_retry(operation, max_attempts=5, base_delay=0.01)

        assert operation.await_count == 1

    async def test_fatal_after_transient_stops_immediately(self) -> None:
        operation = AsyncMock(
            side_effect=[NetworkError("reset"), TranscriptionError("rejected")]
        )

        with pytest.raises(TranscriptionError):
            await call_with_retry(operation, max_attempts=5, base_delay=0.01)

        assert operation.await_count == 2

    async def test_raises_last_error(self) -> None:
        operation = AsyncMock(
            side_effect=[NetworkError("first"), NetworkError("second")]
        )

        with pytest.raises(NetworkError, match="second"):
            await call_with_retry(operation, max_attempts=2, base_delay=0.01)

    async def test_sleeps_follow_backoff_schedule(self, no_sleep) -> None:
        operation = AsyncMock(side_effect=NetworkError("down"))

        with pytest.raises(NetworkError):
            await call_with_retry(operation, max_attempts=5, base_delay=3.0)

        delays = [call.args[0] for call in no_sleep.await_args_list]
        # No sleep after the final attempt
        assert delays == [3.0, 6.0, 12.0, 24.0]

    async def test_no_sleep_for_fatal_error(self, no_sleep) -> None:
        operation = AsyncMock(side_effect=ValueError("bad"))

        with pytest.raises(ValueError):
            await call_with_retry(operation, max_attempts=3, base_delay=1.0)

        no_sleep.assert_not_awaited()

    async def test_retry_count_attached_on_exhaustion(self) -> None:
        operation = AsyncMock(side_effect=NetworkError("down"))

        with pytest.raises(NetworkError) as exc_info:
            await call_with_retry(operation, max_attempts=3, base_delay=0.01)

        assert exc_info.value._retry_count == 2  # type: ignore[attr-defined]

    async def test_retry_count_zero_on_immediate_fatal(self) -> None:
        operation = AsyncMock(side_effect=ValueError("permanent"))

        with pytest.raises(ValueError) as exc_info:
            await call_with_retry(operation, max_attempts=3, base_delay=0.01)

        assert exc_info.value._retry_count == 0  # type: ignore[attr-defined]

    async def test_custom_retryable_exceptions(self) -> None:
        operation = AsyncMock(side_effect=[KeyError("x"), "ok"])

        result = await call_with_retry(
            operation,
            max_attempts=2,
            base_delay=0.01,
            retryable_exceptions=(KeyError,),
        )

        assert result == "ok"

    async def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            await call_with_retry(AsyncMock(), max_attempts=0)


class TestRetryLogging:
    """Tests for attempt logging."""

    async def test_each_failed_attempt_is_logged(self, caplog) -> None:
        operation = AsyncMock(side_effect=NetworkError("network down"))

        with caplog.at_level(logging.WARNING, logger="lecture_processor.utils.retry"):
            with pytest.raises(NetworkError):
                await call_with_retry(
                    operation,
                    max_attempts=2,
                    base_delay=0.01,
                    label="Transcribe audio",
                )

        attempt_logs = [r for r in caplog.records if "Attempt" in r.message]
        assert len(attempt_logs) == 2
        assert "1/2" in attempt_logs[0].message
        assert "2/2" in attempt_logs[1].message
        assert "network down" in attempt_logs[0].message
        assert "Transcribe audio" in attempt_logs[0].message

    async def test_no_log_on_immediate_success(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="lecture_processor.utils.retry"):
            await call_with_retry(AsyncMock(return_value="ok"), max_attempts=3)

        assert not [r for r in caplog.records if "Attempt" in r.message]
