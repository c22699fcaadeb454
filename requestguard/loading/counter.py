"""Reference-counted busy state per target.

The indicator for a target is shown when its count goes from 0 to 1 and
hidden when it drops back to 0. Rendering belongs to a BusyIndicator
collaborator; the default one only logs.
"""

from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TARGET = "default"
DEFAULT_LOADING_TEXT = "Loading..."


class BusyIndicator(Protocol):
    """UI collaborator driven by LoadingRefCounter transitions."""

    def show_busy(self, target: str, text: str) -> None: ...

    def hide_busy(self, target: str) -> None: ...


class LogBusyIndicator:
    """BusyIndicator that records transitions in the log."""

    def show_busy(self, target: str, text: str) -> None:
        logger.info("busy_shown", target=target, text=text)

    def hide_busy(self, target: str) -> None:
        logger.info("busy_hidden", target=target)


class LoadingRefCounter:
    """Counts outstanding requests per target.

    Example:
        counter = LoadingRefCounter()
        counter.add("table")     # shows
        counter.add("table")     # already shown
        counter.remove("table")
        counter.remove("table")  # hides
    """

    def __init__(
        self,
        indicator: BusyIndicator | None = None,
        loading_text: str = DEFAULT_LOADING_TEXT,
    ) -> None:
        """Initialize the counter.

        Args:
            indicator: UI collaborator, defaults to LogBusyIndicator.
            loading_text: Text used when add() is given none.
        """
        self.indicator = indicator or LogBusyIndicator()
        self.loading_text = loading_text
        self._counts: dict[str, int] = {}

    def count(self, target: str | None = None) -> int:
        """Outstanding requests for a target."""
        return self._counts.get(target or DEFAULT_TARGET, 0)

    def is_busy(self, target: str | None = None) -> bool:
        """Whether the indicator for a target is shown."""
        return self.count(target) > 0

    def add(self, target: str | None = None, loading_text: str | None = None) -> None:
        """Register a request against a target, showing it on 0 -> 1."""
        target = target or DEFAULT_TARGET
        current = self._counts.get(target, 0)
        self._counts[target] = current + 1
        if current == 0:
            self.indicator.show_busy(target, loading_text or self.loading_text)

    def remove(self, target: str | None = None) -> None:
        """Release a request from a target, hiding it on the last release."""
        target = target or DEFAULT_TARGET
        current = self._counts.get(target, 0)
        if current <= 0:
            return
        if current == 1:
            del self._counts[target]
            self.indicator.hide_busy(target)
        else:
            self._counts[target] = current - 1

    def clear(self) -> None:
        """Hide every indicator and reset all counts."""
        for target in list(self._counts):
            self.indicator.hide_busy(target)
        self._counts.clear()
