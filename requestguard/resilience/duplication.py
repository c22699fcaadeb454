"""Registry of in-flight requests for duplicate suppression.

Starting a request whose fingerprint is already in flight cancels the older
one first, so at most one request per key is alive at any time. An optional
inactivity timeout cancels entries whose transport never completes.
"""

import asyncio
from dataclasses import dataclass
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class CancelHandle(Protocol):
    """Anything that can abort an in-flight request (e.g. an asyncio.Task)."""

    def cancel(self) -> bool | None: ...


@dataclass
class InFlightEntry:
    """An in-flight request.

    Attributes:
        key: Request fingerprint.
        handle: Handle aborting the request.
        timer: Inactivity timeout handle, if any.
    """

    key: str
    handle: CancelHandle
    timer: asyncio.TimerHandle | None = None


class DuplicationRegistry:
    """Tracks in-flight requests per fingerprint.

    Example:
        registry = DuplicationRegistry()
        task = asyncio.ensure_future(transport.send(descriptor))
        registry.add(key, task, timeout=5000)
        try:
            response = await task
        finally:
            registry.remove(key, task)
    """

    def __init__(self) -> None:
        self._entries: dict[str, InFlightEntry] = {}

    @property
    def size(self) -> int:
        """Number of in-flight entries."""
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def add(self, key: str, handle: CancelHandle, timeout: int | None = None) -> None:
        """Register an in-flight request, superseding any previous one.

        Args:
            key: Request fingerprint.
            handle: Handle aborting the request.
            timeout: Inactivity timeout in milliseconds, None for no timeout.
        """
        if self.cancel(key):
            logger.info("request_superseded", key=key)

        entry = InFlightEntry(key=key, handle=handle)
        if timeout is not None and timeout > 0:
            loop = asyncio.get_running_loop()
            entry.timer = loop.call_later(timeout / 1000, self._expire, key, handle)
        self._entries[key] = entry

    def cancel(self, key: str) -> bool:
        """Abort and drop the in-flight request for a key.

        Args:
            key: Request fingerprint.

        Returns:
            True if an entry existed.
        """
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        if entry.timer is not None:
            entry.timer.cancel()
        entry.handle.cancel()
        logger.debug("request_canceled", key=key)
        return True

    def remove(self, key: str, handle: CancelHandle | None = None) -> bool:
        """Drop an entry without aborting it (graceful completion).

        Args:
            key: Request fingerprint.
            handle: If given, only drop the entry when it still belongs to
                this handle; a superseded request must not drop its
                successor's entry.

        Returns:
            True if an entry was removed.
        """
        entry = self._entries.get(key)
        if entry is None or (handle is not None and entry.handle is not handle):
            return False
        del self._entries[key]
        if entry.timer is not None:
            entry.timer.cancel()
        return True

    def cancel_all(self) -> None:
        """Abort every in-flight request."""
        for key in list(self._entries):
            self.cancel(key)

    def _expire(self, key: str, handle: CancelHandle) -> None:
        """Timer callback: cancel the entry if it is still the same request."""
        entry = self._entries.get(key)
        if entry is not None and entry.handle is handle:
            logger.warning("request_inactivity_timeout", key=key)
            self.cancel(key)
