"""
Tool dispatcher.

Turns each AssistantToolRequest into exactly one ToolResult. Failures never
escape: they come back as ``ToolResult(is_error=True)`` so the model can see
what went wrong and react.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import secrets
from typing import Optional, Sequence

from mcp_bridge.errors import MCPBridgeError
from mcp_bridge.transport import ToolTransport
from mcp_bridge.types import AssistantToolRequest, ToolResult

__all__ = ["CallIdGenerator", "ToolDispatcher"]


class CallIdGenerator:
    """Unique result ids for one session: a random session token plus a counter."""

    def __init__(self, prefix: str = "toolres") -> None:
        self.prefix = prefix
        self._session = secrets.token_hex(4)
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        n = next(self._counter)
        return f"{self.prefix}_{self._session}_{n:04d}"


class ToolDispatcher:
    """Runs tool requests against a transport and captures their outcome."""

    def __init__(
        self,
        transport: ToolTransport,
        *,
        concurrent: bool = False,
        id_generator: Optional[CallIdGenerator] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.transport = transport
        self.concurrent = concurrent
        self.id_generator = id_generator or CallIdGenerator()
        self.logger = logger or logging.getLogger(__name__)

    async def dispatch(self, request: AssistantToolRequest) -> ToolResult:
        """Invoke one tool request. Never raises for tool-side failures."""
        result_id = self.id_generator()
        try:
            outcome = await self.transport.invoke(request.tool_name, request.arguments)
        except MCPBridgeError as exc:
            self.logger.warning("Tool %s failed: %s", request.tool_name, exc)
            return self._failure(result_id, request, str(exc))
        except Exception as exc:
            # Tool servers can fail in arbitrary ways; the model gets told, the query goes on
            self.logger.exception("Unexpected error while calling tool %s", request.tool_name)
            return self._failure(result_id, request, f"{exc.__class__.__name__}: {exc}")

        return ToolResult(
            id=result_id,
            request_id=request.id,
            content=outcome.content,
            is_error=outcome.is_error,
        )

    async def dispatch_all(self, requests: Sequence[AssistantToolRequest]) -> list[ToolResult]:
        """Dispatch one batch; results come back in request order."""
        if not requests:
            return []
        if self.concurrent and len(requests) > 1:
            return list(await asyncio.gather(*(self.dispatch(r) for r in requests)))
        return [await self.dispatch(r) for r in requests]

    @staticmethod
    def _failure(result_id: str, request: AssistantToolRequest, diagnostic: str) -> ToolResult:
        return ToolResult(
            id=result_id,
            request_id=request.id,
            content=diagnostic,
            is_error=True,
        )
