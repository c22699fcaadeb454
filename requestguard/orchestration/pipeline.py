"""Request pipeline that sequences the policy managers.

Each request moves through a fixed list of stages assembled once at
construction:

    lookup_cache -> register_in_flight -> start_loading -> encrypt -> transmit

lookup_cache may short-circuit with a CacheHit. transmit sends through the
transport, retrying transport failures through the RetryPolicy, then
decrypts, masks and caches the payload once. Only the send is retried.
Loading and in-flight cleanup run on every terminal transition.

State machine per request:
    PENDING -> CACHE_HIT
    PENDING -> SENT -> SUCCEEDED | CANCELED | FAILED
"""

import asyncio
import copy
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from requestguard.cache.keys import RequestKeyGenerator
from requestguard.cache.store import CacheStore
from requestguard.loading.counter import LoadingRefCounter
from requestguard.orchestration.config import ConfigResolver
from requestguard.orchestration.descriptor import (
    CacheHit,
    Params,
    RequestDescriptor,
    RequestState,
    TransportResponse,
)
from requestguard.orchestration.errors import (
    ErrorKind,
    RequestCanceledError,
    RequestTimeoutError,
    ResponseProcessingError,
    classify_error,
    is_retryable,
    to_transport_error,
)
from requestguard.resilience.duplication import DuplicationRegistry
from requestguard.resilience.retry import RetryPolicy
from requestguard.security.crypto import CryptoCodec
from requestguard.security.masking import SensitiveMasker
from requestguard.transport.httpx_transport import Transport

logger = structlog.get_logger(__name__)

_MISSING = object()


class CancelScope:
    """Cancel handle registered before the transmit task exists.

    Canceling before the task is attached marks the scope so the task is
    canceled as soon as it is attached.
    """

    def __init__(self) -> None:
        self.canceled = False
        self._task: asyncio.Task[Any] | None = None

    def attach(self, task: asyncio.Task[Any]) -> None:
        """Bind the transmit task to this scope."""
        self._task = task
        if self.canceled:
            task.cancel()

    def cancel(self) -> bool:
        """Cancel the request."""
        self.canceled = True
        if self._task is not None:
            return self._task.cancel()
        return True


@dataclass
class _Delivered:
    """Payload of a successful transmission (may itself be None)."""

    payload: Any


@dataclass
class CallContext:
    """Per-call bookkeeping for cleanup."""

    descriptor: RequestDescriptor
    scope: CancelScope = field(default_factory=CancelScope)
    registered: bool = False
    loading_started: bool = False


Stage = Callable[[CallContext], Awaitable[CacheHit | None]]


class RequestOrchestrator:
    """Runs requests through cache, dedup, loading, crypto, masking and retry.

    Every manager is owned by the instance; nothing is shared across
    orchestrators.

    Example:
        orchestrator = RequestOrchestrator(HttpxTransport(base_url=url))
        users = await orchestrator.execute("GET", "/users", cache=True)
    """

    def __init__(
        self,
        transport: Transport,
        *,
        resolver: ConfigResolver | None = None,
        cache: CacheStore | None = None,
        duplication: DuplicationRegistry | None = None,
        retry: RetryPolicy | None = None,
        crypto: CryptoCodec | None = None,
        masker: SensitiveMasker | None = None,
        loading: LoadingRefCounter | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            transport: Transport used to send requests.
            resolver: Policy resolver holding the global defaults.
            cache: Response cache.
            duplication: In-flight request registry.
            retry: Retry policy.
            crypto: Payload codec.
            masker: Response masker.
            loading: Busy-state counter.
        """
        self.transport = transport
        self.resolver = resolver or ConfigResolver()
        self.cache = cache or CacheStore()
        self.duplication = duplication or DuplicationRegistry()
        self.retry = retry or RetryPolicy()
        self.crypto = crypto or CryptoCodec()
        self.masker = masker or SensitiveMasker()
        self.loading = loading or LoadingRefCounter()

        self.stages: tuple[Stage, ...] = (
            self._lookup_cache,
            self._register_in_flight,
            self._start_loading,
            self._encrypt,
        )

    def prepare(
        self,
        method: str,
        url: str,
        *,
        params: Params | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        policies: Mapping[str, Any] | None = None,
    ) -> RequestDescriptor:
        """Resolve policies and fingerprint a request.

        Args:
            method: HTTP method.
            url: Target URL.
            params: Query parameters.
            body: Request payload.
            headers: Request headers.
            policies: Per-call policy values.

        Returns:
            A PENDING descriptor.
        """
        descriptor = RequestDescriptor(
            method=method,
            url=url,
            params=params,
            body=body,
            headers=dict(headers or {}),
            config=self.resolver.resolve(policies),
        )
        descriptor.request_key = RequestKeyGenerator.key(descriptor.method, url, params, body)
        return descriptor

    async def execute(
        self,
        method: str,
        url: str,
        *,
        params: Params | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        **policies: Any,
    ) -> Any:
        """Run a request through the pipeline.

        Args:
            method: HTTP method.
            url: Target URL.
            params: Query parameters.
            body: Request payload.
            headers: Request headers.
            **policies: Per-call policy values (cache, retry, duplicated,
                loading, crypto, sensitive).

        Returns:
            The decrypted and masked response payload.

        Raises:
            RequestCanceledError: If superseded by an identical request.
            EncryptionError: If encryption or decryption failed.
            ResponseProcessingError: If masking or caching the response failed.
            RequestTimeoutError: If the transport timed out.
            TransportError: If the request failed and retries are exhausted.
        """
        descriptor = self.prepare(
            method, url, params=params, body=body, headers=headers, policies=policies
        )
        return await self.run(descriptor)

    async def run(self, descriptor: RequestDescriptor) -> Any:
        """Run a prepared descriptor through the pipeline."""
        ctx = CallContext(descriptor=descriptor)
        log = logger.bind(method=descriptor.method, url=descriptor.url)
        try:
            for stage in self.stages:
                outcome = await stage(ctx)
                if isinstance(outcome, CacheHit):
                    descriptor.state = RequestState.CACHE_HIT
                    log.debug("request_cache_hit", key=descriptor.request_key)
                    return outcome.payload

            delivered = await self._transmit(ctx)
            descriptor.state = RequestState.SUCCEEDED
            log.debug("request_succeeded", retries=descriptor.retry_count)
            return delivered.payload

        except Exception as e:
            kind = classify_error(e)
            if kind is ErrorKind.CANCELED:
                descriptor.state = RequestState.CANCELED
                log.info("request_canceled", key=descriptor.request_key)
            else:
                descriptor.state = RequestState.FAILED
                log.warning(
                    "request_failed",
                    kind=kind.value,
                    retries=descriptor.retry_count,
                    error_type=type(e).__name__,
                    error=str(e)[:200],
                )
            surfaced = self._surface(e, kind, descriptor)
            if surfaced is e:
                raise
            raise surfaced from e

        finally:
            self._finish(ctx)

    async def cancel_all(self) -> None:
        """Cancel every in-flight request.

        Each canceled call releases its own loading count when it unwinds.
        """
        self.duplication.cancel_all()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _lookup_cache(self, ctx: CallContext) -> CacheHit | None:
        descriptor = ctx.descriptor
        if not descriptor.is_cache_eligible:
            return None
        payload = await self.cache.get(descriptor.request_key, _MISSING)
        if payload is _MISSING:
            return None
        return CacheHit(copy.deepcopy(payload))

    async def _register_in_flight(self, ctx: CallContext) -> None:
        policy = ctx.descriptor.config.duplicated
        if not policy.enabled or policy.options is None:
            return None
        self.duplication.add(ctx.descriptor.request_key, ctx.scope, timeout=policy.options.timeout)
        ctx.registered = True
        return None

    async def _start_loading(self, ctx: CallContext) -> None:
        descriptor = ctx.descriptor
        policy = descriptor.config.loading
        # Retried sub-requests never show loading again
        if not policy.enabled or policy.options is None or descriptor.retry_count:
            return None
        self.loading.add(policy.options.target, policy.options.loading_text)
        ctx.loading_started = True
        return None

    async def _encrypt(self, ctx: CallContext) -> None:
        descriptor = ctx.descriptor
        policy = descriptor.config.crypto
        if not descriptor.encrypt_pending or policy.options is None:
            return None
        descriptor.body = self.crypto.encrypt(descriptor.body, policy.options)
        descriptor.encrypt_pending = False
        return None

    async def _transmit(self, ctx: CallContext) -> _Delivered:
        """Send in a cancellable task registered with the duplication scope."""
        task = asyncio.ensure_future(self._deliver_with_retry(ctx.descriptor))
        ctx.scope.attach(task)
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            raise RequestCanceledError(request_key=ctx.descriptor.request_key) from None

    async def _deliver_with_retry(self, descriptor: RequestDescriptor) -> _Delivered:
        try:
            response = await self._send(descriptor)
        except Exception as e:
            if not is_retryable(e):
                raise
            response = await self.retry.handle_retry(e, descriptor, self._send, is_retryable)
            if response is None:
                raise
        return await self._process(descriptor, response)

    async def _send(self, descriptor: RequestDescriptor) -> TransportResponse:
        """One transmission. The only unit the retry policy resubmits."""
        descriptor.state = RequestState.SENT
        return await self.transport.send(descriptor)

    async def _process(
        self, descriptor: RequestDescriptor, response: TransportResponse
    ) -> _Delivered:
        """Decrypt, mask, then cache a delivered response. Runs once per call."""
        payload = response.data

        crypto = descriptor.config.crypto
        if crypto.enabled and crypto.options is not None:
            payload = self.crypto.decrypt(payload, crypto.options)

        sensitive = descriptor.config.sensitive
        if sensitive.enabled and sensitive.options is not None:
            try:
                payload = await self.masker.desensitize(payload, sensitive.options.rules)
            except Exception as e:
                raise ResponseProcessingError(
                    f"Masking failed: {e}",
                    stage="mask",
                    details={"cause": type(e).__name__},
                ) from e

        cache = descriptor.config.cache
        if descriptor.is_cache_eligible and cache.options is not None:
            try:
                validate = cache.options.validate
                if validate is None or validate(response):
                    await self.cache.set(
                        descriptor.request_key,
                        copy.deepcopy(payload),
                        cache_time=cache.options.cache_time,
                        max_size=cache.options.max_size,
                    )
            except Exception as e:
                raise ResponseProcessingError(
                    f"Caching failed: {e}",
                    stage="cache",
                    details={"cause": type(e).__name__},
                ) from e
        return _Delivered(payload)

    # ------------------------------------------------------------------
    # Terminal handling
    # ------------------------------------------------------------------

    def _finish(self, ctx: CallContext) -> None:
        """Stop loading and drop the in-flight entry. Idempotent."""
        descriptor = ctx.descriptor
        if ctx.loading_started:
            options = descriptor.config.loading.options
            self.loading.remove(options.target if options else None)
            ctx.loading_started = False
        if ctx.registered:
            self.duplication.remove(descriptor.request_key, ctx.scope)
            ctx.registered = False

    @staticmethod
    def _surface(error: Exception, kind: ErrorKind, descriptor: RequestDescriptor) -> Exception:
        """Map a classified error to the exception the caller sees."""
        if kind is ErrorKind.CANCELED:
            if isinstance(error, RequestCanceledError):
                return error
            return RequestCanceledError(request_key=descriptor.request_key)
        if kind in (ErrorKind.ENCRYPTION, ErrorKind.PROCESSING):
            return error
        if kind is ErrorKind.TIMEOUT:
            if isinstance(error, RequestTimeoutError):
                return error
            return RequestTimeoutError(
                str(error) or "request timed out",
                url=descriptor.url,
                details={"cause": type(error).__name__},
            )
        return to_transport_error(error, url=descriptor.url)
