"""Per-invocation context handed to every transform."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class TransformContext:
    """Where a transform is running and what it can see.

    ``data`` is the whole applier input. ``scope`` is the nearest enclosing
    object: the applier input at top level, the object being rebuilt inside an
    ``object_transform``. ``path`` names the value for error messages.
    """

    source_field: str
    data: Mapping[str, Any]
    scope: Mapping[str, Any]
    path: str
    index: int | None = None
    item: Any = None
    params: Mapping[str, Any] = field(default_factory=dict)
    depth: int = 0

    @classmethod
    def root(cls, source_field: str, data: Mapping[str, Any]) -> TransformContext:
        return cls(source_field=source_field, data=data, scope=data, path=source_field)

    def for_element(self, index: int, item: Any) -> TransformContext:
        return replace(self, index=index, item=item, path=f"{self.path}[{index}]")

    def for_object(self, value: Mapping[str, Any]) -> TransformContext:
        return replace(self, scope=value)

    def for_field(self, name: str) -> TransformContext:
        return replace(self, path=f"{self.path}.{name}")

    def deeper(self, params: Mapping[str, Any] | None = None) -> TransformContext:
        return replace(self, depth=self.depth + 1, params=params if params is not None else {})
