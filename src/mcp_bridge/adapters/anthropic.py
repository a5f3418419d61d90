"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

from typing import Any, Sequence

from anthropic.types import Message

from mcp_bridge.types import (
    AssistantText,
    AssistantToolRequest,
    ModelResponse,
    ToolDescriptor,
    ToolResult,
    TranscriptEntry,
    UserText,
)


class AnthropicRequestAdapter:
    """Adapter for converting between transcript entries and Anthropic format."""

    def to_provider(
        self,
        entries: Sequence[TranscriptEntry],
        tools: Sequence[ToolDescriptor] | None,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """Convert transcript entries, tools and params to an Anthropic request."""
        request: dict[str, Any] = {"messages": self.build_messages(entries)}

        base_params = dict(params)
        system_prompt = base_params.pop("system", None)
        if system_prompt:
            request["system"] = system_prompt

        # Anthropic requires max_tokens
        base_params.setdefault("max_tokens", 4096)
        request.update(base_params)

        # None means "no tools field", an empty catalog is sent as []
        if tools is not None:
            request["tools"] = [self.tool_schema(tool) for tool in tools]

        return request

    def build_messages(self, entries: Sequence[TranscriptEntry]) -> list[dict[str, Any]]:
        """
        Group entries into alternating user/assistant messages.

        Consecutive entries of the same role share one message: assistant text
        and tool_use blocks from one response, or the tool_result blocks that
        answer them.
        """
        messages: list[dict[str, Any]] = []

        for entry in entries:
            role, block = self._block_for(entry)
            if messages and messages[-1]["role"] == role:
                messages[-1]["content"].append(block)
            else:
                messages.append({"role": role, "content": [block]})

        # A lone text block is sent as a plain string
        for msg in messages:
            content = msg["content"]
            if len(content) == 1 and content[0]["type"] == "text":
                msg["content"] = content[0]["text"]

        return messages

    @staticmethod
    def _block_for(entry: TranscriptEntry) -> tuple[str, dict[str, Any]]:
        if isinstance(entry, UserText):
            return "user", {"type": "text", "text": entry.content}
        if isinstance(entry, AssistantText):
            return "assistant", {"type": "text", "text": entry.content}
        if isinstance(entry, AssistantToolRequest):
            return "assistant", {
                "type": "tool_use",
                "id": entry.id,
                "name": entry.tool_name,
                "input": entry.arguments,
            }
        if isinstance(entry, ToolResult):
            block: dict[str, Any] = {
                "type": "tool_result",
                "tool_use_id": entry.request_id,
                "content": entry.content,
            }
            if entry.is_error:
                block["is_error"] = True
            return "user", block
        raise TypeError(f"Unsupported transcript entry: {type(entry).__name__}")

    @staticmethod
    def tool_schema(tool: ToolDescriptor) -> dict[str, Any]:
        return {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.input_schema,
        }

    def from_provider(self, raw: Message) -> ModelResponse:
        """Convert an Anthropic Message to a ModelResponse."""
        text_segments: list[str] = []
        tool_requests: list[AssistantToolRequest] = []

        for block in raw.content or []:
            if block.type == "text":
                text_segments.append(block.text)
            elif block.type == "tool_use":
                tool_requests.append(
                    AssistantToolRequest(
                        id=block.id,
                        tool_name=block.name,
                        arguments=dict(block.input) if hasattr(block.input, "items") else {},
                    )
                )
            # thinking and server-side blocks carry no answer text

        return ModelResponse(
            text_segments=tuple(text_segments),
            tool_requests=tuple(tool_requests),
            stop_reason=raw.stop_reason,
            raw=raw,
        )
