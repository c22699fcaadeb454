"""Tests for dot-path access helpers."""

import pytest

from requestguard.security.paths import get_path, set_path


class TestGetPath:
    """Tests for get_path."""

    def test_nested_mapping(self) -> None:
        """Test reading a nested key."""
        assert get_path({"user": {"phone": "1"}}, "user.phone") == "1"

    def test_list_index(self) -> None:
        """Test numeric segments index lists."""
        data = {"users": [{"name": "a"}, {"name": "b"}]}
        assert get_path(data, "users.1.name") == "b"
        assert get_path(data, "users.-1.name") == "b"

    def test_missing_returns_default(self) -> None:
        """Test missing segments return the default."""
        data = {"users": [{"name": "a"}]}
        assert get_path(data, "users.5.name") is None
        assert get_path(data, "nope.x", "dflt") == "dflt"
        assert get_path("scalar", "x") is None


class TestSetPath:
    """Tests for set_path."""

    def test_sets_existing(self) -> None:
        """Test overwriting an existing value."""
        data = {"user": {"phone": "1"}}
        set_path(data, "user.phone", "2")
        assert data == {"user": {"phone": "2"}}

    def test_creates_intermediate(self) -> None:
        """Test intermediate mappings are created."""
        data: dict = {}
        set_path(data, "a.b.c", 1)
        assert data == {"a": {"b": {"c": 1}}}

    def test_list_index(self) -> None:
        """Test writing into a list element."""
        data = {"items": ["x", "y"]}
        set_path(data, "items.0", "z")
        assert data == {"items": ["z", "y"]}

    def test_scalar_intermediate_raises(self) -> None:
        """Test writing through a scalar fails."""
        with pytest.raises(KeyError):
            set_path({"a": 1}, "a.b", 2)
