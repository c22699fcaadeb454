"""Reference-counted busy state for loading indicators."""

from requestguard.loading.counter import (
    DEFAULT_LOADING_TEXT,
    DEFAULT_TARGET,
    BusyIndicator,
    LoadingRefCounter,
    LogBusyIndicator,
)

__all__ = [
    "BusyIndicator",
    "DEFAULT_LOADING_TEXT",
    "DEFAULT_TARGET",
    "LoadingRefCounter",
    "LogBusyIndicator",
]
