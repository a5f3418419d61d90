"""
Conversation controller: drives one query from user text to final answer.

    AWAITING_USER_INPUT -> MODEL_CALL -> {TOOL_DISPATCH -> MODEL_CALL}* -> DONE

The model is re-queried once per batch of tool results, and only after a
response that requested at least one tool.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from enum import StrEnum
from typing import Optional, Sequence

from mcp_bridge.dispatcher import ToolDispatcher
from mcp_bridge.errors import ToolLoopExceededError
from mcp_bridge.gateway import ModelGateway
from mcp_bridge.transcript import Transcript
from mcp_bridge.transport import ToolTransport
from mcp_bridge.types import (
    AssistantText,
    AssistantToolRequest,
    ToolDescriptor,
    ToolResult,
    UserText,
)

__all__ = ["ConversationState", "ConversationController"]


class ConversationState(StrEnum):
    AWAITING_USER_INPUT = "awaiting_user_input"
    MODEL_CALL = "model_call"
    TOOL_DISPATCH = "tool_dispatch"
    DONE = "done"


class ConversationController:
    """
    Orchestrates a single query over a gateway, a dispatcher and a transport.

    Each ``process_query`` call owns a fresh Transcript. The transcript of the
    most recent query stays available as ``last_transcript``.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        transport: ToolTransport,
        *,
        dispatcher: Optional[ToolDispatcher] = None,
        max_tool_rounds: int = 10,
        annotate_tool_calls: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.gateway = gateway
        self.transport = transport
        self.dispatcher = dispatcher or ToolDispatcher(transport)
        self.max_tool_rounds = max_tool_rounds
        self.annotate_tool_calls = annotate_tool_calls
        self.logger = logger or logging.getLogger(__name__)
        self.state = ConversationState.AWAITING_USER_INPUT
        self.last_transcript: Transcript | None = None

    def available_tools(self) -> tuple[ToolDescriptor, ...] | None:
        """The catalog to offer the model, or None to omit tools entirely."""
        if not self.transport.is_connected():
            return None
        tools = self.transport.list_tools()
        return tools or None

    async def process_query(self, query: str) -> str:
        """
        Run one query to completion and return the newline-joined answer text.

        Raises:
            GatewayError: The model call failed; the query is aborted.
            ToolLoopExceededError: The model kept requesting tools.
        """
        transcript = Transcript()
        self.last_transcript = transcript
        output: list[str] = []
        rounds = 0

        transcript.append(UserText(query))
        self._enter(ConversationState.MODEL_CALL)

        try:
            while True:
                response = await self.gateway.complete(transcript, self.available_tools())

                output.extend(response.text_segments)
                transcript.extend(AssistantText(text) for text in response.text_segments)

                if not response.has_tool_requests:
                    break

                if rounds >= self.max_tool_rounds:
                    # The unanswered requests are left out so the transcript stays paired
                    raise ToolLoopExceededError(self.max_tool_rounds)
                rounds += 1

                self._enter(ConversationState.TOOL_DISPATCH)
                requests = self._unique_requests(transcript, response.tool_requests)
                results = await self._dispatch(requests, output)
                transcript.extend([*requests, *results])

                self._enter(ConversationState.MODEL_CALL)
        finally:
            self._enter(ConversationState.DONE)

        self.logger.debug(
            "Query finished after %d tool rounds, %d transcript entries", rounds, len(transcript)
        )
        return "\n".join(output)

    def _unique_requests(
        self, transcript: Transcript, requests: Sequence[AssistantToolRequest]
    ) -> tuple[AssistantToolRequest, ...]:
        """
        Give requests whose id repeats an earlier one a fresh id.

        Both adapters send back whatever id the transcript holds, so the
        re-keyed request and its result stay paired for the provider.
        """
        taken = set(transcript.request_ids())
        unique: list[AssistantToolRequest] = []
        for request in requests:
            if request.id in taken:
                n = 2
                while f"{request.id}_{n}" in taken:
                    n += 1
                new_id = f"{request.id}_{n}"
                self.logger.warning(
                    "Model reused tool call id %r; dispatching as %r", request.id, new_id
                )
                request = replace(request, id=new_id)
            taken.add(request.id)
            unique.append(request)
        return tuple(unique)

    async def _dispatch(
        self, requests: Sequence[AssistantToolRequest], output: list[str]
    ) -> list[ToolResult]:
        self.logger.info(
            "Model requested %d tool call(s): %s",
            len(requests),
            ", ".join(r.tool_name for r in requests),
        )
        results = await self.dispatcher.dispatch_all(requests)

        for request, result in zip(requests, results):
            if self.annotate_tool_calls:
                output.append(self._call_note(request))
            if result.is_error:
                output.append(f"[Tool {request.tool_name} failed: {result.content}]")
        return results

    @staticmethod
    def _call_note(request: AssistantToolRequest) -> str:
        args = json.dumps(request.arguments, default=str)
        return f"[Calling tool {request.tool_name} with args {args}]"

    def _enter(self, state: ConversationState) -> None:
        self.logger.debug("Conversation state %s -> %s", self.state, state)
        self.state = state
