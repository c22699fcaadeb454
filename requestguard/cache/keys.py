"""Deterministic request fingerprints.

The fingerprint joins the cache and the duplication registry: two requests
with the same method, url, params and body share cache entries and
supersede each other while in flight.
"""

import base64
import json
from collections.abc import Mapping
from typing import Any


def _default(value: Any) -> Any:
    """JSON fallback for values json cannot encode natively."""
    if isinstance(value, (bytes, bytearray)):
        return {"__bytes__": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return str(value)


def canonicalize(value: Any) -> str:
    """Serialize a value with stable key ordering.

    Args:
        value: Params or body to serialize.

    Returns:
        Compact JSON with sorted keys, or an empty string for empty values.
    """
    if value is None or value == "" or (isinstance(value, Mapping) and not value):
        return ""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=_default)


class RequestKeyGenerator:
    """Builds request fingerprints.

    Example:
        key = RequestKeyGenerator.key("get", "/users", {"page": 1}, None)
        # 'GET:/users:{"page":1}:'
    """

    @staticmethod
    def key(method: str, url: str, params: Any = None, body: Any = None) -> str:
        """Build the fingerprint of a request.

        Args:
            method: HTTP method, case-insensitive.
            url: Target URL.
            params: Query parameters (mapping or ordered pairs).
            body: Request payload.

        Returns:
            Fingerprint string.
        """
        return f"{method.upper()}:{url}:{canonicalize(params)}:{canonicalize(body)}"
