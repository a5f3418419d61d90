"""Shared fakes: a scripted model gateway and an in-memory tool transport."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Sequence

import pytest
from anthropic.types import Message
from openai.types.chat import ChatCompletion

from mcp_bridge.errors import NotConnectedError, ToolInvocationError
from mcp_bridge.types import (
    AssistantToolRequest,
    ConnectionState,
    ModelResponse,
    ToolDescriptor,
    ToolOutcome,
    TranscriptEntry,
)

ToolHandler = Callable[[dict[str, Any]], Awaitable[str] | str]


def text_response(*segments: str) -> ModelResponse:
    return ModelResponse(text_segments=segments, stop_reason="end_turn")


def tool_response(*requests: AssistantToolRequest, text: Sequence[str] = ()) -> ModelResponse:
    return ModelResponse(
        text_segments=tuple(text), tool_requests=requests, stop_reason="tool_use"
    )


def anthropic_message(*content, stop_reason="end_turn"):
    return Message.model_validate(
        {
            "id": "msg_1",
            "type": "message",
            "role": "assistant",
            "model": "claude-3-5-sonnet-20241022",
            "content": list(content),
            "stop_reason": stop_reason,
            "stop_sequence": None,
            "usage": {"input_tokens": 10, "output_tokens": 5},
        }
    )


def chat_completion(content=None, tool_calls=None, finish_reason="stop"):
    message = {"role": "assistant", "content": content}
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    return ChatCompletion.model_validate(
        {
            "id": "cmpl-1",
            "object": "chat.completion",
            "created": 0,
            "model": "gpt-4.1-mini",
            "choices": [{"index": 0, "finish_reason": finish_reason, "message": message}],
        }
    )


def function_call(call_id, name, arguments):
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}


class FakeGateway:
    """Returns scripted responses and records what it was sent."""

    def __init__(self, *responses: ModelResponse | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        transcript: Sequence[TranscriptEntry],
        available_tools: Sequence[ToolDescriptor] | None = None,
    ) -> ModelResponse:
        self.calls.append(
            {
                "transcript": tuple(transcript),
                "tools": None if available_tools is None else tuple(available_tools),
                "tools_given": available_tools is not None,
            }
        )
        if not self.responses:
            raise AssertionError("FakeGateway ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeTransport:
    """In-memory ToolTransport; handlers may return text or raise."""

    def __init__(self, handlers: dict[str, ToolHandler] | None = None, *, connected: bool = True) -> None:
        self.handlers = dict(handlers or {})
        self._connected = connected
        self.invocations: list[tuple[str, dict[str, Any]]] = []
        self.disconnect_calls = 0

    @property
    def state(self) -> ConnectionState:
        return ConnectionState.CONNECTED if self._connected else ConnectionState.DISCONNECTED

    def is_connected(self) -> bool:
        return self._connected

    async def connect(self, locator: str) -> ConnectionState:
        self._connected = True
        return self.state

    def list_tools(self) -> tuple[ToolDescriptor, ...]:
        if not self._connected:
            return ()
        return tuple(
            ToolDescriptor(name=name, description=f"{name} tool") for name in self.handlers
        )

    async def invoke(self, tool_name: str, arguments: dict[str, Any]) -> ToolOutcome:
        if not self._connected:
            raise NotConnectedError(f"Cannot call tool {tool_name!r}: not connected")
        self.invocations.append((tool_name, arguments))
        handler = self.handlers.get(tool_name)
        if handler is None:
            raise ToolInvocationError(tool_name, "unknown tool")
        result = handler(arguments)
        if hasattr(result, "__await__"):
            result = await result
        return ToolOutcome(content=result)

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._connected = False


@pytest.fixture
def lookup_request() -> AssistantToolRequest:
    return AssistantToolRequest(id="toolu_1", tool_name="lookup", arguments={"term": "x"})
