"""
MCP transport connector.

Resolves a server locator into a ServerTarget once, opens a stdio or SSE
session to the tool server, caches its tool catalog and invokes tools by
name. All session resources live on one AsyncExitStack so disconnect()
releases the subprocess and streams together.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, AsyncContextManager, Optional, Protocol, Sequence

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client

from mcp_bridge.errors import (
    NotConnectedError,
    ServerConnectionError,
    ToolInvocationError,
    UnsupportedServerTypeError,
)
from mcp_bridge.types import ConnectionState, ToolDescriptor, ToolOutcome

__all__ = [
    "ServerKind",
    "ServerTarget",
    "ToolTransport",
    "MCPConnector",
    "resolve_server",
]


DEFAULT_CONNECT_TIMEOUT = 30.0


class ServerKind(StrEnum):
    PYTHON = "python"
    NODE = "node"
    SSE = "sse"


_SCRIPT_SUFFIXES: dict[str, ServerKind] = {
    ".py": ServerKind.PYTHON,
    ".js": ServerKind.NODE,
    ".mjs": ServerKind.NODE,
    ".cjs": ServerKind.NODE,
}


@dataclass(frozen=True, slots=True)
class ServerTarget:
    """Where and how to reach a tool server."""

    kind: ServerKind
    locator: str
    command: Optional[str] = None
    args: tuple[str, ...] = ()
    url: Optional[str] = None
    env: Optional[dict[str, str]] = field(default=None, compare=False)

    @property
    def is_stdio(self) -> bool:
        return self.kind is not ServerKind.SSE


def resolve_server(locator: str) -> ServerTarget:
    """
    Map a server locator to a ServerTarget.

    ``*.py`` scripts run under the Python interpreter, ``*.js``/``*.mjs``/``*.cjs``
    under node, both over stdio; ``http(s)://`` URLs are MCP SSE endpoints.

    Raises:
        UnsupportedServerTypeError: For anything else.
    """
    if not isinstance(locator, str) or not locator.strip():
        raise UnsupportedServerTypeError("Server locator must be a non-empty string")

    locator = locator.strip()
    lowered = locator.lower()

    if lowered.startswith(("http://", "https://")):
        return ServerTarget(kind=ServerKind.SSE, locator=locator, url=locator)

    for suffix, kind in _SCRIPT_SUFFIXES.items():
        if lowered.endswith(suffix):
            if kind is ServerKind.PYTHON:
                command = "python" if sys.platform == "win32" else "python3"
            else:
                command = "node"
            return ServerTarget(kind=kind, locator=locator, command=command, args=(locator,))

    raise UnsupportedServerTypeError(
        f"Server script must be a .py or .js file or an http(s) SSE URL, got {locator!r}"
    )


class ToolTransport(Protocol):
    """Capability interface shared by every tool transport."""

    @property
    def state(self) -> ConnectionState: ...

    def is_connected(self) -> bool: ...

    async def connect(self, locator: str) -> ConnectionState: ...

    def list_tools(self) -> tuple[ToolDescriptor, ...]: ...

    async def invoke(self, tool_name: str, arguments: dict[str, Any]) -> ToolOutcome: ...

    async def disconnect(self) -> None: ...


def flatten_content(content: Sequence[Any] | None) -> str:
    """Join MCP content items into one text payload."""
    parts: list[str] = []
    for item in content or []:
        text = getattr(item, "text", None)
        parts.append(text if isinstance(text, str) else str(item))
    return "\n".join(parts)


class MCPConnector:
    """
    Connector for one MCP tool server.

    The catalog fetched at connect time is reused until the next connect;
    reconnecting replaces it wholesale.
    """

    def __init__(
        self,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.connect_timeout = connect_timeout
        self.logger = logger or logging.getLogger(__name__)
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._tools: tuple[ToolDescriptor, ...] = ()
        self._target: ServerTarget | None = None

    @property
    def state(self) -> ConnectionState:
        return ConnectionState.CONNECTED if self._session is not None else ConnectionState.DISCONNECTED

    @property
    def target(self) -> ServerTarget | None:
        return self._target

    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def list_tools(self) -> tuple[ToolDescriptor, ...]:
        """Snapshot of the cached tool catalog (empty when disconnected)."""
        return self._tools

    def _open_streams(self, target: ServerTarget) -> AsyncContextManager[Any]:
        if target.kind is ServerKind.SSE:
            return sse_client(target.url)
        params = StdioServerParameters(
            command=target.command,
            args=list(target.args),
            env=target.env,
        )
        return stdio_client(params)

    async def connect(self, locator: str) -> ConnectionState:
        """
        Open a session to the server at *locator* and fetch its tools.

        Raises:
            UnsupportedServerTypeError: If the locator kind is not recognized.
            ServerConnectionError: If the session cannot be established.
        """
        target = resolve_server(locator)

        if self._session is not None:
            self.logger.info("Reconnecting: closing session to %s", self._target.locator)
            await self.disconnect()

        stack = AsyncExitStack()
        try:
            async with asyncio.timeout(self.connect_timeout):
                streams = await stack.enter_async_context(self._open_streams(target))
                read_stream, write_stream = streams[0], streams[1]
                session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
                await session.initialize()
                tools_result = await session.list_tools()
        except asyncio.CancelledError:
            await self._close_stack(stack)
            raise
        except Exception as exc:
            await self._close_stack(stack)
            self.logger.error("Failed to connect to MCP server %s: %s", locator, exc)
            raise ServerConnectionError(
                f"Failed to connect to MCP server {locator!r}: {str(exc) or exc.__class__.__name__}"
            ) from exc

        self._stack = stack
        self._session = session
        self._target = target
        self._tools = tuple(ToolDescriptor.from_mcp(tool) for tool in tools_result.tools)

        self.logger.info(
            "Connected to server with tools: %s", [tool.name for tool in self._tools]
        )
        return self.state

    async def invoke(self, tool_name: str, arguments: dict[str, Any]) -> ToolOutcome:
        """
        Call *tool_name* on the connected server.

        Raises:
            NotConnectedError: If no session is open (no I/O is attempted).
            ToolInvocationError: For unknown tools and transport failures.
        """
        session = self._session
        if session is None:
            raise NotConnectedError(f"Cannot call tool {tool_name!r}: not connected")

        if tool_name not in {tool.name for tool in self._tools}:
            raise ToolInvocationError(tool_name, "unknown tool")

        self.logger.debug("Calling tool %s with %s", tool_name, arguments)
        try:
            result = await session.call_tool(tool_name, arguments or {})
        except Exception as exc:
            raise ToolInvocationError(tool_name, str(exc) or exc.__class__.__name__) from exc

        outcome = ToolOutcome(
            content=flatten_content(result.content),
            is_error=bool(getattr(result, "isError", False)),
        )
        if outcome.is_error:
            self.logger.warning("Tool %s reported an error: %.200s", tool_name, outcome.content)
        return outcome

    async def disconnect(self) -> None:
        """Release the session and the server process. Safe to call multiple times."""
        stack, self._stack = self._stack, None
        self._session = None
        self._tools = ()
        if stack is None:
            return
        await self._close_stack(stack)
        self.logger.info("Disconnected from MCP server %s", self._target.locator if self._target else "")

    async def _close_stack(self, stack: AsyncExitStack) -> None:
        try:
            await stack.aclose()
        except Exception as exc:
            # The session is gone either way; closing must not mask the caller's error
            self.logger.warning("Error while closing MCP session: %s", exc)

    async def __aenter__(self) -> "MCPConnector":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()
