"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from openai.types.chat import ChatCompletion

from mcp_bridge.types import (
    AssistantText,
    AssistantToolRequest,
    ModelResponse,
    ToolDescriptor,
    ToolResult,
    TranscriptEntry,
    UserText,
)

logger = logging.getLogger(__name__)

# Chat Completions has no error flag on tool messages
ERROR_PREFIX = "ERROR: "


class OpenAIRequestAdapter:
    """Adapter for converting between transcript entries and OpenAI format."""

    max_tokens_field = "max_completion_tokens"

    def to_provider(
        self,
        entries: Sequence[TranscriptEntry],
        tools: Sequence[ToolDescriptor] | None,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """Convert transcript entries, tools and params to an OpenAI request."""
        base_params = dict(params)
        system_prompt = base_params.pop("system", None)

        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend(self.build_messages(entries))

        if "max_tokens" in base_params:
            base_params[self.max_tokens_field] = base_params.pop("max_tokens")

        request: dict[str, Any] = {"messages": messages, **base_params}
        if tools is not None:
            request["tools"] = [self.tool_schema(tool) for tool in tools]
        return request

    def build_messages(self, entries: Sequence[TranscriptEntry]) -> list[dict[str, Any]]:
        """Convert entries to chat messages, folding one response into one assistant message."""
        messages: list[dict[str, Any]] = []

        for entry in entries:
            if isinstance(entry, UserText):
                messages.append({"role": "user", "content": entry.content})
            elif isinstance(entry, (AssistantText, AssistantToolRequest)):
                if not messages or messages[-1]["role"] != "assistant":
                    messages.append({"role": "assistant", "content": None})
                current = messages[-1]
                if isinstance(entry, AssistantText):
                    current["content"] = (
                        entry.content
                        if current["content"] is None
                        else f"{current['content']}\n{entry.content}"
                    )
                else:
                    current.setdefault("tool_calls", []).append(
                        {
                            "id": entry.id,
                            "type": "function",
                            "function": {
                                "name": entry.tool_name,
                                "arguments": json.dumps(entry.arguments),
                            },
                        }
                    )
            elif isinstance(entry, ToolResult):
                content = entry.content
                if entry.is_error:
                    content = ERROR_PREFIX + content
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": entry.request_id,
                        "content": content,
                    }
                )
            else:
                raise TypeError(f"Unsupported transcript entry: {type(entry).__name__}")

        # Ensure content is set for assistant messages without tool calls
        for msg in messages:
            if msg["role"] == "assistant" and msg["content"] is None and not msg.get("tool_calls"):
                msg["content"] = ""

        return messages

    @staticmethod
    def tool_schema(tool: ToolDescriptor) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }

    def from_provider(self, raw: ChatCompletion) -> ModelResponse:
        """Convert an OpenAI ChatCompletion to a ModelResponse."""
        if not raw.choices or not raw.choices[0].message:
            return ModelResponse(raw=raw)

        choice = raw.choices[0]
        message = choice.message
        text_segments = (message.content,) if message.content else ()

        tool_requests: list[AssistantToolRequest] = []
        for tc in message.tool_calls or []:
            function = getattr(tc, "function", None)
            if function is None:
                continue  # custom tools are not dispatched
            tool_requests.append(
                AssistantToolRequest(
                    id=tc.id,
                    tool_name=function.name,
                    arguments=self._parse_arguments(function.name, function.arguments),
                )
            )

        return ModelResponse(
            text_segments=text_segments,
            tool_requests=tuple(tool_requests),
            stop_reason=choice.finish_reason,
            raw=raw,
        )

    @staticmethod
    def _parse_arguments(name: str, raw_args: Any) -> dict[str, Any]:
        if isinstance(raw_args, dict):
            return raw_args
        if not isinstance(raw_args, str) or not raw_args.strip():
            return {}
        try:
            arguments = json.loads(raw_args)
        except json.JSONDecodeError:
            # Keep the call so it still gets a paired result
            logger.warning("Malformed arguments for tool %s: %.200s", name, raw_args)
            return {}
        return arguments if isinstance(arguments, dict) else {}
