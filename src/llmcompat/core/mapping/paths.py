"""Dot-separated path helpers for nested target fields (``input.messages``)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

MISSING: Any = object()


def split_path(path: str) -> list[str]:
    return path.split(".")


def get_path(data: Mapping[str, Any], path: str, default: Any = MISSING) -> Any:
    """Read *path* from *data*.

    A key that exists literally (dots included) wins over nested lookup, so
    flat keys such as ``"x.y"`` keep working.
    """
    if path in data:
        return data[path]
    current: Any = data
    for segment in split_path(path):
        if not isinstance(current, Mapping) or segment not in current:
            return default
        current = current[segment]
    return current


def set_path(target: dict[str, Any], path: str, value: Any) -> None:
    """Write *value* at *path*, creating intermediate dicts.

    Any intermediate value that is not itself a dict is overwritten.
    """
    segments = split_path(path)
    current = target
    for segment in segments[:-1]:
        child = current.get(segment)
        if not isinstance(child, dict):
            child = {}
            current[segment] = child
        current = child
    current[segments[-1]] = value


def json_type(value: Any) -> str:
    """Return the JSON type name of *value* (``integer`` for whole ints)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def matches_type(value: Any, expected: str) -> bool:
    actual = json_type(value)
    if expected == "number":
        return actual in ("number", "integer")
    return actual == expected
