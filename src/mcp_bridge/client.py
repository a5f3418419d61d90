"""
MCPClient: the public facade tying settings, gateway, transport and
controller together.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Self

from mcp_bridge.config import ClientSettings
from mcp_bridge.controller import ConversationController
from mcp_bridge.dispatcher import ToolDispatcher
from mcp_bridge.gateway import BaseModelGateway, ModelGateway, create_gateway
from mcp_bridge.providers import get_api_key
from mcp_bridge.transcript import Transcript
from mcp_bridge.transport import MCPConnector, ToolTransport
from mcp_bridge.types import ConnectionState, ToolDescriptor

__all__ = ["MCPClient"]


class MCPClient:
    """
    Mediates between a language model and the tools of one MCP server.

    Queries work with or without a connected server; without one the model
    is called with no tools at all. Queries on one client run one at a time.

    Example:
        async with MCPClient() as client:
            await client.connect_to_server("weather_server.py")
            print(await client.process_query("Weather in Zurich?"))
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        settings: Optional[ClientSettings] = None,
        gateway: Optional[ModelGateway] = None,
        transport: Optional[ToolTransport] = None,
        client: Any = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            api_key: Provider API key; falls back to ``settings.api_key`` and
                then to the provider's environment variable.
            settings: Client settings; defaults to ``ClientSettings()``.
            gateway: Pre-built model gateway (skips credential lookup).
            transport: Tool transport; defaults to an ``MCPConnector``.
            client: Pre-configured SDK client handed to ``create_gateway``.
            logger: Optional custom logger.

        Raises:
            MissingCredentialError: If no gateway or SDK client is given and
                no API key can be resolved.
        """
        settings = settings or ClientSettings()
        self.logger = logger or logging.getLogger(__name__)

        if gateway is None and client is None:
            key = get_api_key(settings.provider, api_key or settings.api_key)
            settings = settings.copy(api_key=key)
        elif api_key:
            settings = settings.copy(api_key=api_key)
        self.settings = settings

        if settings.debug_logging:
            self.logger.setLevel(logging.DEBUG)

        self.gateway: ModelGateway = gateway or create_gateway(
            settings.provider,
            settings.model,
            api_key=settings.api_key,
            client=client,
            logger=self.logger,
            max_tokens=settings.max_output_tokens,
            system_prompt=settings.system_prompt,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
        )
        self.transport: ToolTransport = transport or MCPConnector(
            connect_timeout=settings.connect_timeout, logger=self.logger
        )
        self.controller = ConversationController(
            self.gateway,
            self.transport,
            dispatcher=ToolDispatcher(
                self.transport,
                concurrent=settings.concurrent_tool_calls,
                logger=self.logger,
            ),
            max_tool_rounds=settings.max_tool_rounds,
            annotate_tool_calls=settings.annotate_tool_calls,
            logger=self.logger,
        )
        self._query_lock = asyncio.Lock()

    # --- connection -------------------------------------------------------
    async def connect_to_server(self, server_locator: str) -> None:
        """
        Connect to an MCP server script (``.py``/``.js``) or SSE URL.

        Raises:
            UnsupportedServerTypeError: Unrecognized locator kind.
            ServerConnectionError: The server could not be started or reached.
        """
        await self.transport.connect(server_locator)

    def is_connected(self) -> bool:
        return self.transport.is_connected()

    @property
    def connection_state(self) -> ConnectionState:
        return self.transport.state

    def get_tools(self) -> tuple[ToolDescriptor, ...]:
        """Read-only snapshot of the connected server's tools."""
        return tuple(self.transport.list_tools())

    # --- queries ----------------------------------------------------------
    async def process_query(self, query: str) -> str:
        """
        Answer *query*, calling server tools as the model requests them.

        Raises:
            GatewayError: The model endpoint failed; the query is aborted.
            ToolLoopExceededError: The model exceeded ``max_tool_rounds``.
        """
        async with self._query_lock:
            return await self.controller.process_query(query)

    @property
    def last_transcript(self) -> Transcript | None:
        return self.controller.last_transcript

    # --- lifecycle --------------------------------------------------------
    async def cleanup(self) -> None:
        """Disconnect from the server and close the model client. Safe to call multiple times."""
        try:
            await self.transport.disconnect()
        finally:
            if isinstance(self.gateway, BaseModelGateway):
                await self.gateway.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()
