"""Transport protocol and the httpx-backed implementation."""

from requestguard.transport.httpx_transport import HttpxTransport, Transport

__all__ = ["HttpxTransport", "Transport"]
