"""Request orchestration.

This module contains:
- Error taxonomy and central classification
- Policy options and the ConfigResolver
- Request descriptors and lifecycle states
- RequestOrchestrator, the ordered stage pipeline
"""

from requestguard.orchestration.errors import (
    EncryptionError,
    ErrorKind,
    RequestCanceledError,
    RequestGuardError,
    RequestTimeoutError,
    ResponseProcessingError,
    TransportError,
    classify_error,
    is_retryable,
)
from requestguard.orchestration.config import (
    DEFAULT_CRYPTO_KEY,
    DEFAULT_POLICIES,
    CacheOptions,
    ConfigResolver,
    CryptoOptions,
    DuplicatedOptions,
    LoadingOptions,
    Policy,
    ResolvedConfig,
    RetryOptions,
    SensitiveOptions,
    resolve,
)
from requestguard.orchestration.descriptor import (
    CacheHit,
    RequestDescriptor,
    RequestState,
    TransportResponse,
)
from requestguard.orchestration.pipeline import CancelScope, RequestOrchestrator

__all__ = [
    # Errors
    "EncryptionError",
    "ErrorKind",
    "RequestCanceledError",
    "RequestGuardError",
    "RequestTimeoutError",
    "ResponseProcessingError",
    "TransportError",
    "classify_error",
    "is_retryable",
    # Configuration
    "CacheOptions",
    "ConfigResolver",
    "CryptoOptions",
    "DEFAULT_CRYPTO_KEY",
    "DEFAULT_POLICIES",
    "DuplicatedOptions",
    "LoadingOptions",
    "Policy",
    "ResolvedConfig",
    "RetryOptions",
    "SensitiveOptions",
    "resolve",
    # Descriptors
    "CacheHit",
    "RequestDescriptor",
    "RequestState",
    "TransportResponse",
    # Pipeline
    "CancelScope",
    "RequestOrchestrator",
]
