"""Bounded, delayed retry with an optional veto hook.

The retry loop is driven by tenacity. Which errors are retryable is decided
by the caller-supplied classifier; this module only enforces the count,
the delay and the before_retry veto.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from tenacity import AsyncRetrying, retry_if_exception

from requestguard.orchestration.config import RetryOptions
from requestguard.orchestration.descriptor import RequestDescriptor
from requestguard.orchestration.errors import is_retryable as default_is_retryable

logger = structlog.get_logger(__name__)

Invoker = Callable[[RequestDescriptor], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


class _RetryVetoed(Exception):
    """Internal signal: before_retry vetoed retrying after this error."""

    def __init__(self, error: BaseException) -> None:
        super().__init__(str(error))
        self.error = error


class RetryPolicy:
    """Resubmits failed requests up to the resolved retry count.

    Example:
        policy = RetryPolicy()
        try:
            result = await send(descriptor)
        except Exception as e:
            result = await policy.handle_retry(e, descriptor, send)
            if result is None:
                raise
    """

    def __init__(self, sleep: Sleep = asyncio.sleep) -> None:
        """Initialize the policy.

        Args:
            sleep: Coroutine used for the delay between retries.
        """
        self._sleep = sleep

    async def handle_retry(
        self,
        error: BaseException,
        descriptor: RequestDescriptor,
        invoker: Invoker,
        is_retryable: Callable[[BaseException], bool] = default_is_retryable,
    ) -> Any:
        """Retry a failed request.

        Args:
            error: The error of the failed attempt.
            descriptor: The failed request; its retry_count is advanced.
            invoker: Resubmits the descriptor through the transport.
            is_retryable: Classifier deciding whether a later failure may
                be retried.

        Returns:
            The result of the first successful retry, or None if no retry
            was attempted (retry disabled, count exhausted, or vetoed).

        Raises:
            Exception: The latest error once at least one retry was made and
                retries are exhausted, vetoed or hit a terminal error.
        """
        policy = descriptor.config.retry
        if not policy.enabled or policy.options is None:
            return None
        options = policy.options
        if descriptor.retry_count >= options.count:
            return None

        def should_retry(exc: BaseException) -> bool:
            if isinstance(exc, _RetryVetoed):
                return False
            return is_retryable(exc) and descriptor.retry_count < options.count

        latest = error
        vetoed_error: BaseException | None = None
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(should_retry),
                reraise=True,
            ):
                with attempt:
                    if not await self._admit(latest, descriptor, options):
                        raise _RetryVetoed(latest)
                    await self._sleep(options.delay / 1000)
                    try:
                        return await invoker(descriptor)
                    except Exception as e:
                        latest = e
                        logger.warning(
                            "retry_attempt_failed",
                            key=descriptor.request_key,
                            retry_count=descriptor.retry_count,
                            error_type=type(e).__name__,
                        )
                        raise
        except _RetryVetoed as vetoed:
            vetoed_error = vetoed.error

        if vetoed_error is error:
            return None
        raise vetoed_error  # type: ignore[misc]

    async def _admit(
        self,
        error: BaseException,
        descriptor: RequestDescriptor,
        options: RetryOptions,
    ) -> bool:
        """Run the veto hook and advance retry_count if the retry may go ahead."""
        if descriptor.retry_count >= options.count:
            return False

        if options.before_retry is not None:
            decision = options.before_retry(error, descriptor.retry_count)  # type: ignore[arg-type]
            if inspect.isawaitable(decision):
                decision = await decision
            if decision is False:
                logger.info(
                    "retry_vetoed",
                    key=descriptor.request_key,
                    retry_count=descriptor.retry_count,
                )
                return False

        descriptor.retry_count += 1
        logger.info(
            "retry_attempt",
            key=descriptor.request_key,
            attempt=descriptor.retry_count,
            max_retries=options.count,
            delay_ms=options.delay,
        )
        return True
