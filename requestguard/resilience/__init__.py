"""Resilience patterns for in-flight requests.

This module contains:
- DuplicationRegistry for superseding identical in-flight requests
- RetryPolicy for bounded, delayed retry with a veto hook
"""

from requestguard.resilience.duplication import (
    CancelHandle,
    DuplicationRegistry,
    InFlightEntry,
)
from requestguard.resilience.retry import RetryPolicy

__all__ = [
    # Duplicate suppression
    "CancelHandle",
    "DuplicationRegistry",
    "InFlightEntry",
    # Retry
    "RetryPolicy",
]
