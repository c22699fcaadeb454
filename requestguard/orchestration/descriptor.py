"""Request and response shapes that flow through the pipeline."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from requestguard.orchestration.config import ResolvedConfig


class RequestState(str, Enum):
    """Lifecycle of a single request."""

    PENDING = "pending"
    SENT = "sent"
    SUCCEEDED = "succeeded"
    CACHE_HIT = "cache_hit"
    CANCELED = "canceled"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {
        RequestState.SUCCEEDED,
        RequestState.CACHE_HIT,
        RequestState.CANCELED,
        RequestState.FAILED,
    }
)


Params = Mapping[str, Any] | Sequence[tuple[str, Any]]


@dataclass
class RequestDescriptor:
    """A single outbound call.

    Owned by one in-flight call and mutated only by the orchestrator and
    the managers it delegates to.

    Attributes:
        method: Upper-cased HTTP method.
        url: Target URL, absolute or relative to the transport base URL.
        params: Query parameters as a mapping or ordered pairs.
        body: Request payload.
        headers: Request headers.
        config: Resolved per-feature policies.
        request_key: Fingerprint used by cache and duplication registry.
        retry_count: Retries performed so far.
        encrypt_pending: Outbound crypto flag; cleared once the body has
            been encrypted so a retry never encrypts twice.
        state: Current lifecycle state.
    """

    method: str
    url: str
    params: Params | None = None
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    config: ResolvedConfig = field(default_factory=ResolvedConfig)
    request_key: str = ""
    retry_count: int = 0
    encrypt_pending: bool = field(default=False, init=False)
    state: RequestState = RequestState.PENDING

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.encrypt_pending = self.config.crypto.enabled

    @property
    def is_cache_eligible(self) -> bool:
        """Whether this request may be served from and written to the cache."""
        return self.config.cache.enabled and self.method in ("GET", "POST")

    @property
    def is_finished(self) -> bool:
        """Whether the request reached a terminal state."""
        return self.state in TERMINAL_STATES


class TransportResponse(BaseModel):
    """Response handed back by a transport."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status_code: int = Field(default=200, description="HTTP status code")
    headers: dict[str, str] = Field(default_factory=dict)
    data: Any = Field(default=None, description="Decoded response payload")


@dataclass(frozen=True)
class CacheHit:
    """Short-circuit result of the cache lookup stage."""

    payload: Any
