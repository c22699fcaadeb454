"""Tests for request descriptors."""

from requestguard.orchestration.config import ConfigResolver
from requestguard.orchestration.descriptor import (
    TERMINAL_STATES,
    CacheHit,
    RequestDescriptor,
    RequestState,
    TransportResponse,
)


class TestRequestDescriptor:
    """Tests for RequestDescriptor."""

    def test_defaults(self) -> None:
        """Test a new descriptor is pending with no retries."""
        descriptor = RequestDescriptor(method="get", url="/users")
        assert descriptor.method == "GET"
        assert descriptor.state is RequestState.PENDING
        assert descriptor.retry_count == 0
        assert descriptor.headers == {}
        assert descriptor.is_finished is False

    def test_encrypt_pending_follows_crypto_policy(self) -> None:
        """Test the outbound crypto flag mirrors the crypto policy."""
        plain = RequestDescriptor(method="POST", url="/x", config=ConfigResolver().resolve())
        secret = RequestDescriptor(
            method="POST", url="/x", config=ConfigResolver().resolve({"crypto": True})
        )
        assert plain.encrypt_pending is False
        assert secret.encrypt_pending is True

    def test_cache_eligible_methods(self) -> None:
        """Test only GET and POST are cache eligible."""
        config = ConfigResolver().resolve({"cache": True})
        eligible = {
            method: RequestDescriptor(method=method, url="/x", config=config).is_cache_eligible
            for method in ("GET", "POST", "PUT", "PATCH", "DELETE")
        }
        assert eligible == {
            "GET": True,
            "POST": True,
            "PUT": False,
            "PATCH": False,
            "DELETE": False,
        }

    def test_not_cache_eligible_without_policy(self) -> None:
        """Test GET is not eligible when caching is off."""
        descriptor = RequestDescriptor(method="GET", url="/x")
        assert descriptor.is_cache_eligible is False

    def test_is_finished(self) -> None:
        """Test terminal states."""
        descriptor = RequestDescriptor(method="GET", url="/x")
        for state in RequestState:
            descriptor.state = state
            assert descriptor.is_finished is (state in TERMINAL_STATES)
        assert RequestState.SENT not in TERMINAL_STATES


class TestTransportResponse:
    """Tests for TransportResponse."""

    def test_defaults(self) -> None:
        """Test default values."""
        response = TransportResponse()
        assert response.status_code == 200
        assert response.headers == {}
        assert response.data is None

    def test_arbitrary_data(self) -> None:
        """Test any payload is accepted."""
        response = TransportResponse(data={"items": [1, 2]}, status_code=201)
        assert response.data == {"items": [1, 2]}
        assert response.status_code == 201


def test_cache_hit_holds_payload() -> None:
    """Test CacheHit wraps a payload, including None."""
    assert CacheHit({"a": 1}).payload == {"a": 1}
    assert CacheHit(None).payload is None
