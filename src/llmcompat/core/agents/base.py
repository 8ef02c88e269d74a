"""Agent interface: classify a request, then convert it and tag the output."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

logger = logging.getLogger(__name__)

ConvertFn = Callable[[Mapping[str, Any]], dict[str, Any]]


class Agent(ABC):
    """A content-specific request handler.

    Subclasses set :attr:`name` and :attr:`processing_type`, implement
    :meth:`classify`, and may add metadata flags via :meth:`metadata_flags`.
    Agents hold no per-request state.
    """

    name: str = ""
    processing_type: str = ""

    @property
    def tools(self) -> dict[str, dict[str, Any]]:
        """Tool schemas this agent makes available, keyed by tool name."""
        return {}

    @abstractmethod
    def classify(self, request: Mapping[str, Any]) -> bool:
        """Return ``True`` if this agent should handle *request*."""

    def metadata_flags(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Extra ``metadata`` entries overlaid on the converted output."""
        return {}

    def handle(self, request: Mapping[str, Any], convert: ConvertFn) -> dict[str, Any]:
        """Convert *request* and overlay ``agent`` and ``metadata`` on the result."""
        logger.info(
            "Processing request with %s agent (%d message(s))",
            self.name,
            len(_messages(request)),
        )
        converted = convert(request)
        result = dict(converted)
        existing = result.get("metadata")
        metadata = dict(existing) if isinstance(existing, Mapping) else {}
        metadata["processingType"] = self.processing_type
        metadata.update(self.metadata_flags(request))
        result["agent"] = self.name
        result["metadata"] = metadata
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def _messages(request: Mapping[str, Any]) -> list[Any]:
    messages = request.get("messages") if isinstance(request, Mapping) else None
    return messages if isinstance(messages, list) else []
