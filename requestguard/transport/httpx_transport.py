"""Transport protocol and its httpx adapter.

The orchestrator only needs `send(descriptor) -> TransportResponse`. Errors
are raised unchanged (httpx.TimeoutException, httpx.HTTPStatusError, ...);
classification is the orchestrator's job.
"""

from typing import Any, Protocol

import httpx
import structlog

from requestguard.orchestration.descriptor import RequestDescriptor, TransportResponse

logger = structlog.get_logger(__name__)


class Transport(Protocol):
    """Sends a request descriptor and returns the decoded response."""

    async def send(self, descriptor: RequestDescriptor) -> TransportResponse: ...


class HttpxTransport:
    """Transport backed by httpx.AsyncClient.

    Example:
        transport = HttpxTransport(base_url="https://api.example.com")
        response = await transport.send(descriptor)
        await transport.close()
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Base URL relative request URLs are joined to.
            timeout: Request timeout in seconds.
            headers: Headers sent with every request.
            client: Existing client to use instead of creating one. It is
                not closed by close().
        """
        self.base_url = base_url
        self.timeout = timeout
        self.headers = headers or {}
        self._client = client
        self._owns_client = client is None
        self._logger = logger.bind(component="httpx_transport")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.timeout,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def send(self, descriptor: RequestDescriptor) -> TransportResponse:
        """Send a request.

        Args:
            descriptor: Request to send. String and bytes bodies (e.g.
                ciphertext) are sent as raw content, anything else as JSON.

        Returns:
            The decoded response.

        Raises:
            httpx.HTTPStatusError: For 4xx and 5xx responses.
            httpx.TimeoutException: When the request times out.
            httpx.RequestError: For other network failures.
        """
        client = await self._get_client()
        kwargs: dict[str, Any] = {}
        if descriptor.params:
            kwargs["params"] = descriptor.params
        if descriptor.headers:
            kwargs["headers"] = descriptor.headers
        if descriptor.body is not None:
            if isinstance(descriptor.body, (str, bytes)):
                kwargs["content"] = descriptor.body
            else:
                kwargs["json"] = descriptor.body

        self._logger.debug("http_request", method=descriptor.method, url=descriptor.url)
        response = await client.request(descriptor.method, descriptor.url, **kwargs)
        response.raise_for_status()
        self._logger.debug(
            "http_response",
            method=descriptor.method,
            url=descriptor.url,
            status=response.status_code,
        )
        return TransportResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            data=self._decode(response),
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        """Decode a JSON body, falling back to text."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
