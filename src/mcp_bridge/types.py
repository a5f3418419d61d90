"""
Core types for mcp-bridge.

Provider-neutral dataclasses for the tool catalog, the conversation
transcript and model responses. Everything provider-specific lives in
adapters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Union

__all__ = [
    "ConnectionState",
    "ToolDescriptor",
    "ToolOutcome",
    "UserText",
    "AssistantText",
    "AssistantToolRequest",
    "ToolResult",
    "TranscriptEntry",
    "ModelResponse",
]


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


def _empty_object_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """A tool advertised by the connected server."""

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=_empty_object_schema)

    @classmethod
    def from_mcp(cls, tool: Any) -> "ToolDescriptor":
        """Build a descriptor from an ``mcp.types.Tool``."""
        schema = getattr(tool, "inputSchema", None)
        if not isinstance(schema, dict) or not schema:
            schema = _empty_object_schema()
        return cls(
            name=tool.name,
            description=getattr(tool, "description", None) or "",
            input_schema=dict(schema),
        )


@dataclass(frozen=True, slots=True)
class ToolOutcome:
    """What a tool server returned for one call."""

    content: str
    is_error: bool = False


@dataclass(frozen=True, slots=True)
class UserText:
    content: str


@dataclass(frozen=True, slots=True)
class AssistantText:
    content: str


@dataclass(frozen=True, slots=True)
class AssistantToolRequest:
    """A model-agnostic request emitted by the LLM to call a tool."""

    id: str
    tool_name: str
    arguments: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Payload sent back to the LLM after the tool finished running."""

    id: str
    request_id: str  # must match the request id
    content: str
    is_error: bool = False


TranscriptEntry = Union[UserText, AssistantText, AssistantToolRequest, ToolResult]


@dataclass(frozen=True, slots=True)
class ModelResponse:
    """Unified response object for all model gateways."""

    text_segments: tuple[str, ...] = ()
    tool_requests: tuple[AssistantToolRequest, ...] = ()
    stop_reason: str | None = None
    raw: Any = field(default=None, repr=False, compare=False)

    @property
    def has_tool_requests(self) -> bool:
        return bool(self.tool_requests)

    @property
    def text(self) -> str:
        return "\n".join(self.text_segments)
