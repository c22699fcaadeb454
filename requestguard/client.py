"""Client facade bundling a transport with its own policy managers."""

from collections.abc import Mapping
from typing import Any

import structlog

from requestguard.cache.store import CacheStore
from requestguard.config import Settings
from requestguard.loading.counter import BusyIndicator, LoadingRefCounter
from requestguard.orchestration.config import ConfigResolver
from requestguard.orchestration.descriptor import Params
from requestguard.orchestration.pipeline import RequestOrchestrator
from requestguard.resilience.duplication import DuplicationRegistry
from requestguard.resilience.retry import RetryPolicy
from requestguard.security.crypto import CryptoCodec
from requestguard.security.masking import SensitiveMasker
from requestguard.transport.httpx_transport import HttpxTransport, Transport

logger = structlog.get_logger(__name__)


class RequestGuard:
    """HTTP client with caching, dedup, retry, crypto and masking policies.

    Each instance owns its cache, in-flight registry and other managers.
    Policies are configured globally through `defaults` and per call
    through keyword arguments.

    Example:
        async with RequestGuard(
            base_url="https://api.example.com",
            defaults={"cache": {"cache_time": 10_000}},
        ) as client:
            user = await client.get(
                "/users/1",
                cache=True,
                sensitive={"rules": [{"path": "phone", "type": "phone"}]},
            )
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        transport: Transport | None = None,
        defaults: Mapping[str, Any] | None = None,
        settings: Settings | None = None,
        indicator: BusyIndicator | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL for the default httpx transport.
            transport: Transport to use instead of the httpx one.
            defaults: Global policy values layered over the settings.
            settings: Settings, read from the environment if omitted.
            indicator: UI collaborator for the loading policy.
            headers: Headers sent with every request by the default transport.
        """
        self.settings = settings or Settings.from_env()
        self.transport = transport or HttpxTransport(
            base_url=base_url,
            timeout=self.settings.HTTP_TIMEOUT,
            headers=headers,
        )

        self.resolver = ConfigResolver(self.settings.policy_defaults())
        if defaults:
            self.resolver.update_defaults(defaults)

        self.cache = CacheStore(
            cache_time=self.settings.CACHE_TIME_MS,
            max_size=self.settings.CACHE_MAX_SIZE,
        )
        self.duplication = DuplicationRegistry()
        self.retry = RetryPolicy()
        self.crypto = CryptoCodec()
        self.masker = SensitiveMasker()
        self.loading = LoadingRefCounter(indicator)

        self.orchestrator = RequestOrchestrator(
            self.transport,
            resolver=self.resolver,
            cache=self.cache,
            duplication=self.duplication,
            retry=self.retry,
            crypto=self.crypto,
            masker=self.masker,
            loading=self.loading,
        )

    async def __aenter__(self) -> "RequestGuard":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def update_defaults(self, defaults: Mapping[str, Any]) -> None:
        """Merge new global policy values."""
        self.resolver.update_defaults(defaults)
        logger.info("policy_defaults_updated", policies=sorted(defaults))

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Params | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        **policies: Any,
    ) -> Any:
        """Send a request through the policy pipeline.

        Args:
            method: HTTP method.
            url: Target URL.
            params: Query parameters.
            body: Request payload.
            headers: Request headers.
            **policies: Per-call policy values.

        Returns:
            The processed response payload.
        """
        return await self.orchestrator.execute(
            method, url, params=params, body=body, headers=headers, **policies
        )

    async def get(self, url: str, *, params: Params | None = None, **kwargs: Any) -> Any:
        """Send a GET request."""
        return await self.request("GET", url, params=params, **kwargs)

    async def post(self, url: str, body: Any = None, **kwargs: Any) -> Any:
        """Send a POST request."""
        return await self.request("POST", url, body=body, **kwargs)

    async def put(self, url: str, body: Any = None, **kwargs: Any) -> Any:
        """Send a PUT request. PUT responses are never cached."""
        return await self.request("PUT", url, body=body, **kwargs)

    async def patch(self, url: str, body: Any = None, **kwargs: Any) -> Any:
        """Send a PATCH request. PATCH responses are never cached."""
        return await self.request("PATCH", url, body=body, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        """Send a DELETE request. DELETE responses are never cached."""
        return await self.request("DELETE", url, **kwargs)

    async def cancel_all(self) -> None:
        """Cancel every in-flight request."""
        await self.orchestrator.cancel_all()

    async def clear_cache(self) -> None:
        """Drop every cached response."""
        await self.cache.clear()

    async def close(self) -> None:
        """Cancel in-flight requests, clear the cache and close the transport."""
        await self.cancel_all()
        await self.cache.clear()
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()
