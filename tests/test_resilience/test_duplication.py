"""Tests for the in-flight duplication registry."""

import asyncio
from unittest.mock import MagicMock

import pytest

from requestguard.resilience.duplication import DuplicationRegistry


class TestDuplicationRegistry:
    """Tests for DuplicationRegistry."""

    def test_add_registers(self) -> None:
        """Test adding an entry."""
        registry = DuplicationRegistry()
        handle = MagicMock()

        registry.add("k", handle)

        assert "k" in registry
        assert registry.size == 1
        handle.cancel.assert_not_called()

    def test_add_supersedes_previous(self) -> None:
        """Test a second add for the same key cancels the first handle."""
        registry = DuplicationRegistry()
        first, second = MagicMock(), MagicMock()

        registry.add("k", first)
        registry.add("k", second)

        first.cancel.assert_called_once()
        second.cancel.assert_not_called()
        assert registry.size == 1

    def test_different_keys_coexist(self) -> None:
        """Test entries with different keys do not interfere."""
        registry = DuplicationRegistry()
        first, second = MagicMock(), MagicMock()
        registry.add("a", first)
        registry.add("b", second)
        first.cancel.assert_not_called()
        assert registry.size == 2

    def test_cancel(self) -> None:
        """Test explicit cancellation."""
        registry = DuplicationRegistry()
        handle = MagicMock()
        registry.add("k", handle)

        assert registry.cancel("k") is True
        assert registry.cancel("k") is False
        handle.cancel.assert_called_once()
        assert "k" not in registry

    def test_remove_does_not_cancel(self) -> None:
        """Test graceful removal leaves the handle alone."""
        registry = DuplicationRegistry()
        handle = MagicMock()
        registry.add("k", handle)

        assert registry.remove("k") is True

        handle.cancel.assert_not_called()
        assert "k" not in registry

    def test_remove_checks_owner(self) -> None:
        """Test a superseded request cannot drop its successor's entry."""
        registry = DuplicationRegistry()
        first, second = MagicMock(), MagicMock()
        registry.add("k", first)
        registry.add("k", second)

        assert registry.remove("k", first) is False
        assert "k" in registry
        assert registry.remove("k", second) is True

    def test_cancel_all(self) -> None:
        """Test every handle is canceled."""
        registry = DuplicationRegistry()
        handles = [MagicMock() for _ in range(3)]
        for i, handle in enumerate(handles):
            registry.add(str(i), handle)

        registry.cancel_all()

        assert registry.size == 0
        for handle in handles:
            handle.cancel.assert_called_once()

    @pytest.mark.asyncio
    async def test_inactivity_timeout(self) -> None:
        """Test an entry is canceled after its inactivity timeout."""
        registry = DuplicationRegistry()
        handle = MagicMock()
        registry.add("k", handle, timeout=20)

        await asyncio.sleep(0.06)

        handle.cancel.assert_called_once()
        assert "k" not in registry

    @pytest.mark.asyncio
    async def test_remove_cancels_timer(self) -> None:
        """Test a completed request is not canceled by its stale timer."""
        registry = DuplicationRegistry()
        handle = MagicMock()
        registry.add("k", handle, timeout=20)
        registry.remove("k", handle)

        await asyncio.sleep(0.06)

        handle.cancel.assert_not_called()

    @pytest.mark.asyncio
    async def test_superseded_timer_does_not_cancel_successor(self) -> None:
        """Test the first entry's timer is dropped when superseded."""
        registry = DuplicationRegistry()
        first, second = MagicMock(), MagicMock()
        registry.add("k", first, timeout=20)
        registry.add("k", second, timeout=5000)

        await asyncio.sleep(0.06)

        second.cancel.assert_not_called()
        assert "k" in registry
        registry.cancel_all()

    @pytest.mark.asyncio
    async def test_task_handle(self) -> None:
        """Test an asyncio.Task works as a handle."""
        registry = DuplicationRegistry()
        task = asyncio.ensure_future(asyncio.sleep(10))
        registry.add("k", task)

        registry.cancel("k")

        with pytest.raises(asyncio.CancelledError):
            await task
