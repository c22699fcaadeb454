"""Tests for the retry policy."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from requestguard.orchestration.config import ConfigResolver
from requestguard.orchestration.descriptor import RequestDescriptor
from requestguard.resilience.retry import RetryPolicy


def make_descriptor(retry: Any = True) -> RequestDescriptor:
    """Create a descriptor with the given retry policy value."""
    return RequestDescriptor(
        method="GET",
        url="/items",
        config=ConfigResolver().resolve({"retry": retry}),
        request_key="GET:/items::",
    )


def connect_error(message: str = "refused") -> httpx.ConnectError:
    return httpx.ConnectError(message)


class TestRetryPolicy:
    """Tests for RetryPolicy.handle_retry."""

    @pytest.mark.asyncio
    async def test_retries_until_success(self) -> None:
        """Test two failures then success with count=3 waits twice."""
        sleep = AsyncMock()
        policy = RetryPolicy(sleep=sleep)
        descriptor = make_descriptor({"count": 3, "delay": 250})
        invoker = AsyncMock(side_effect=[connect_error("second"), "ok"])

        result = await policy.handle_retry(connect_error("first"), descriptor, invoker)

        assert result == "ok"
        assert invoker.await_count == 2
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.25)
        assert descriptor.retry_count == 2

    @pytest.mark.asyncio
    async def test_count_one_surfaces_final_error(self) -> None:
        """Test count=1 makes exactly one retry then raises its error."""
        sleep = AsyncMock()
        policy = RetryPolicy(sleep=sleep)
        descriptor = make_descriptor({"count": 1, "delay": 0})
        final = connect_error("final")
        invoker = AsyncMock(side_effect=final)

        with pytest.raises(httpx.ConnectError) as exc_info:
            await policy.handle_retry(connect_error("first"), descriptor, invoker)

        assert exc_info.value is final
        assert invoker.await_count == 1
        assert sleep.await_count == 1
        assert descriptor.retry_count == 1

    @pytest.mark.asyncio
    async def test_exhausts_count(self) -> None:
        """Test the retry count is an upper bound."""
        policy = RetryPolicy(sleep=AsyncMock())
        descriptor = make_descriptor({"count": 3, "delay": 0})
        invoker = AsyncMock(side_effect=connect_error())

        with pytest.raises(httpx.ConnectError):
            await policy.handle_retry(connect_error(), descriptor, invoker)

        assert invoker.await_count == 3
        assert descriptor.retry_count == 3

    @pytest.mark.asyncio
    async def test_disabled_returns_none(self) -> None:
        """Test nothing happens when retry is off."""
        policy = RetryPolicy(sleep=AsyncMock())
        descriptor = make_descriptor(False)
        invoker = AsyncMock()

        assert await policy.handle_retry(connect_error(), descriptor, invoker) is None
        invoker.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_exhausted_returns_none(self) -> None:
        """Test a descriptor at its limit is not retried."""
        policy = RetryPolicy(sleep=AsyncMock())
        descriptor = make_descriptor({"count": 2})
        descriptor.retry_count = 2
        invoker = AsyncMock()

        assert await policy.handle_retry(connect_error(), descriptor, invoker) is None
        invoker.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_veto_first_retry(self) -> None:
        """Test before_retry returning False prevents any retry."""
        hook = MagicMock(return_value=False)
        policy = RetryPolicy(sleep=AsyncMock())
        descriptor = make_descriptor({"count": 3, "before_retry": hook})
        invoker = AsyncMock()
        error = connect_error()

        assert await policy.handle_retry(error, descriptor, invoker) is None

        hook.assert_called_once_with(error, 0)
        invoker.assert_not_awaited()
        assert descriptor.retry_count == 0

    @pytest.mark.asyncio
    async def test_veto_later_retry_raises_latest(self) -> None:
        """Test a veto after one retry surfaces the latest error."""
        policy = RetryPolicy(sleep=AsyncMock())
        descriptor = make_descriptor({"count": 3, "before_retry": lambda e, n: n < 1})
        latest = connect_error("latest")
        invoker = AsyncMock(side_effect=latest)

        with pytest.raises(httpx.ConnectError) as exc_info:
            await policy.handle_retry(connect_error("first"), descriptor, invoker)

        assert exc_info.value is latest
        assert descriptor.retry_count == 1

    @pytest.mark.asyncio
    async def test_hook_returning_none_allows(self) -> None:
        """Test only an explicit False vetoes."""
        hook = MagicMock(return_value=None)
        policy = RetryPolicy(sleep=AsyncMock())
        descriptor = make_descriptor({"count": 1, "before_retry": hook})

        result = await policy.handle_retry(connect_error(), descriptor, AsyncMock(return_value=1))

        assert result == 1

    @pytest.mark.asyncio
    async def test_async_hook(self) -> None:
        """Test an async before_retry hook is awaited."""
        hook = AsyncMock(return_value=True)
        policy = RetryPolicy(sleep=AsyncMock())
        descriptor = make_descriptor({"count": 2, "before_retry": hook})
        error = connect_error()

        result = await policy.handle_retry(error, descriptor, AsyncMock(return_value="ok"))

        assert result == "ok"
        hook.assert_awaited_once_with(error, 0)

    @pytest.mark.asyncio
    async def test_terminal_error_during_retry(self) -> None:
        """Test a non-retryable error on a retry is raised at once."""
        policy = RetryPolicy(sleep=AsyncMock())
        descriptor = make_descriptor({"count": 3})
        invoker = AsyncMock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(httpx.ReadTimeout):
            await policy.handle_retry(connect_error(), descriptor, invoker)

        assert invoker.await_count == 1
        assert descriptor.retry_count == 1

    @pytest.mark.asyncio
    async def test_custom_classifier(self) -> None:
        """Test the caller's classifier decides what is retried."""
        policy = RetryPolicy(sleep=AsyncMock())
        descriptor = make_descriptor({"count": 3})
        invoker = AsyncMock(side_effect=[ValueError("a"), "ok"])

        with pytest.raises(ValueError):
            await policy.handle_retry(
                ValueError("first"),
                descriptor,
                invoker,
                is_retryable=lambda e: not isinstance(e, ValueError),
            )
