"""Built-in agents: image, code, tool and the general fallback."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from llmcompat.core.agents.base import Agent, _messages

ANALYZE_IMAGE_TOOL: dict[str, Any] = {
    "name": "analyzeImage",
    "description": "Analyze image or images by ID and extract information",
    "parameters": {
        "type": "object",
        "properties": {
            "imageId": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Array of IDs to analyse",
            },
            "task": {"type": "string", "description": "Detailed task description"},
            "regions": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Optional regions of interest",
            },
        },
        "required": ["imageId", "task"],
    },
}

CODE_MARKERS = ("```", "function", "class")


class ImageAgent(Agent):
    """Requests carrying image parts, or text parts that mention an image."""

    name = "image"
    processing_type = "image"

    @property
    def tools(self) -> dict[str, dict[str, Any]]:
        return {"analyzeImage": ANALYZE_IMAGE_TOOL}

    def classify(self, request: Mapping[str, Any]) -> bool:
        for message in _messages(request):
            content = message.get("content") if isinstance(message, Mapping) else None
            if not isinstance(content, list):
                continue
            for part in content:
                if not isinstance(part, Mapping):
                    continue
                if part.get("type") == "image_url":
                    return True
                text = part.get("text")
                if part.get("type") == "text" and isinstance(text, str) and "image" in text:
                    return True
        return False

    def metadata_flags(self, request: Mapping[str, Any]) -> dict[str, Any]:
        return {"imageAnalysis": True}


class CodeAgent(Agent):
    """Requests whose plain-string content looks like source code."""

    name = "code"
    processing_type = "code"

    def classify(self, request: Mapping[str, Any]) -> bool:
        for message in _messages(request):
            content = message.get("content") if isinstance(message, Mapping) else None
            if isinstance(content, str) and any(marker in content for marker in CODE_MARKERS):
                return True
        return False

    def metadata_flags(self, request: Mapping[str, Any]) -> dict[str, Any]:
        return {"codeAnalysis": True}


class ToolAgent(Agent):
    """Requests that declare tools or force a specific tool choice."""

    name = "tool"
    processing_type = "tool"

    def classify(self, request: Mapping[str, Any]) -> bool:
        tools = request.get("tools")
        if isinstance(tools, list) and tools:
            return True
        tool_choice = request.get("tool_choice")
        return bool(tool_choice) and tool_choice != "auto"

    def metadata_flags(self, request: Mapping[str, Any]) -> dict[str, Any]:
        tools = request.get("tools")
        return {
            "toolProcessing": True,
            "toolCount": len(tools) if isinstance(tools, list) else 0,
        }


class GeneralAgent(Agent):
    name = "general"
    processing_type = "general"

    def classify(self, request: Mapping[str, Any]) -> bool:
        return True


BUILTIN_AGENTS: dict[str, type[Agent]] = {
    "image": ImageAgent,
    "code": CodeAgent,
    "tool": ToolAgent,
    "general": GeneralAgent,
}
