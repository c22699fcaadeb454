"""requestguard: policy-driven request orchestration over an HTTP transport.

Adds response caching, duplicate-request suppression, bounded retry,
payload encryption, PII masking and loading state to every call.
"""

from requestguard.cache import CacheStore, RequestKeyGenerator
from requestguard.orchestration import (
    CacheOptions,
    ConfigResolver,
    CryptoOptions,
    DuplicatedOptions,
    EncryptionError,
    LoadingOptions,
    RequestCanceledError,
    RequestGuardError,
    RequestOrchestrator,
    RequestTimeoutError,
    ResponseProcessingError,
    RetryOptions,
    SensitiveOptions,
    TransportError,
    TransportResponse,
)
from requestguard.client import RequestGuard
from requestguard.config import Settings
from requestguard.loading import BusyIndicator, LoadingRefCounter
from requestguard.resilience import DuplicationRegistry, RetryPolicy
from requestguard.security import CryptoCodec, SensitiveMasker, SensitiveRule
from requestguard.transport import HttpxTransport, Transport

__all__ = [
    "BusyIndicator",
    "CacheOptions",
    "CacheStore",
    "ConfigResolver",
    "CryptoCodec",
    "CryptoOptions",
    "DuplicatedOptions",
    "DuplicationRegistry",
    "EncryptionError",
    "HttpxTransport",
    "LoadingOptions",
    "LoadingRefCounter",
    "RequestCanceledError",
    "RequestGuard",
    "RequestGuardError",
    "RequestKeyGenerator",
    "RequestOrchestrator",
    "RequestTimeoutError",
    "ResponseProcessingError",
    "RetryOptions",
    "RetryPolicy",
    "SensitiveMasker",
    "SensitiveOptions",
    "SensitiveRule",
    "Settings",
    "TransportError",
    "TransportResponse",
    "Transport",
]
