"""Dot-delimited path access into nested payloads.

Segments address mapping keys; a numeric segment addresses a list index.
"""

from collections.abc import MutableMapping, MutableSequence
from typing import Any

_MISSING = object()


def _step(node: Any, part: str) -> Any:
    if isinstance(node, MutableMapping):
        return node.get(part, _MISSING)
    if isinstance(node, MutableSequence) and part.lstrip("-").isdigit():
        index = int(part)
        if -len(node) <= index < len(node):
            return node[index]
    return _MISSING


def get_path(data: Any, path: str, default: Any = None) -> Any:
    """Read the value at a dot path.

    Args:
        data: Payload to read from.
        path: Dot-delimited path, e.g. "user.phones.0".
        default: Returned when any segment is missing.

    Returns:
        The value or default.
    """
    node = data
    for part in path.split("."):
        node = _step(node, part)
        if node is _MISSING:
            return default
    return node


def set_path(data: Any, path: str, value: Any) -> None:
    """Write a value at a dot path, creating intermediate mappings.

    Args:
        data: Payload to modify in place.
        path: Dot-delimited path.
        value: Value to store.

    Raises:
        KeyError: If an intermediate segment is not a container.
    """
    parts = path.split(".")
    node = data
    for part in parts[:-1]:
        child = _step(node, part)
        if child is _MISSING:
            if not isinstance(node, MutableMapping):
                raise KeyError(path)
            child = node[part] = {}
        node = child

    last = parts[-1]
    if isinstance(node, MutableSequence) and last.lstrip("-").isdigit():
        node[int(last)] = value
    elif isinstance(node, MutableMapping):
        node[last] = value
    else:
        raise KeyError(path)
