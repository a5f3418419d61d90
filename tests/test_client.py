"""Tests for the MCPClient facade."""

import asyncio
import logging

import pytest

from conftest import FakeGateway, FakeTransport, text_response, tool_response
from mcp_bridge.client import MCPClient
from mcp_bridge.config import ClientSettings
from mcp_bridge.errors import MissingCredentialError, ToolLoopExceededError
from mcp_bridge.gateway import AnthropicGateway
from mcp_bridge.transport import MCPConnector
from mcp_bridge.types import ConnectionState


@pytest.fixture
def no_credentials(monkeypatch):
    monkeypatch.setattr("mcp_bridge.providers.load_dotenv", lambda *a, **kw: False)
    for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY"):
        monkeypatch.delenv(var, raising=False)


class TestConstruction:
    def test_missing_credentials(self, no_credentials):
        with pytest.raises(MissingCredentialError):
            MCPClient()

    def test_explicit_key(self, no_credentials):
        client = MCPClient("k1")
        assert client.settings.api_key == "k1"
        assert isinstance(client.gateway, AnthropicGateway)
        assert isinstance(client.transport, MCPConnector)
        assert client.connection_state is ConnectionState.DISCONNECTED

    def test_key_from_environment(self, no_credentials, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "env-key")
        client = MCPClient(settings=ClientSettings(provider="openai"))
        assert client.settings.api_key == "env-key"

    def test_injected_gateway_needs_no_key(self, no_credentials):
        client = MCPClient(gateway=FakeGateway())
        assert client.settings.api_key is None

    def test_settings_reach_the_controller(self, no_credentials):
        settings = ClientSettings(max_tool_rounds=3, annotate_tool_calls=True, concurrent_tool_calls=True)
        client = MCPClient(settings=settings, gateway=FakeGateway(), transport=FakeTransport())

        assert client.controller.max_tool_rounds == 3
        assert client.controller.annotate_tool_calls is True
        assert client.controller.dispatcher.concurrent is True

    def test_debug_logging(self, no_credentials):
        logger = logging.getLogger("test.mcp_bridge.debug")
        MCPClient(settings=ClientSettings(debug_logging=True), gateway=FakeGateway(), logger=logger)
        assert logger.level == logging.DEBUG


class TestQueries:
    @pytest.mark.asyncio
    async def test_query_without_server(self):
        gateway = FakeGateway(text_response("2 + 2 = 4."))
        client = MCPClient(gateway=gateway)

        assert not client.is_connected()
        assert client.get_tools() == ()
        assert await client.process_query("What is 2+2?") == "2 + 2 = 4."
        assert gateway.calls[0]["tools_given"] is False

    @pytest.mark.asyncio
    async def test_query_with_tools(self, lookup_request):
        gateway = FakeGateway(tool_response(lookup_request), text_response("x is y"))
        transport = FakeTransport({"lookup": lambda args: "y"}, connected=False)
        client = MCPClient(gateway=gateway, transport=transport)

        await client.connect_to_server("server.py")

        assert client.connection_state is ConnectionState.CONNECTED
        assert [t.name for t in client.get_tools()] == ["lookup"]
        assert await client.process_query("what is x?") == "x is y"
        assert client.last_transcript.is_consistent

    @pytest.mark.asyncio
    async def test_loop_guard_setting(self, lookup_request):
        gateway = FakeGateway(tool_response(lookup_request))
        client = MCPClient(
            settings=ClientSettings(max_tool_rounds=0),
            gateway=gateway,
            transport=FakeTransport({"lookup": lambda args: "y"}),
        )
        with pytest.raises(ToolLoopExceededError):
            await client.process_query("x?")

    @pytest.mark.asyncio
    async def test_queries_are_serialized(self):
        active = 0
        peak = 0

        class SlowGateway(FakeGateway):
            async def complete(self, transcript, available_tools=None):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1
                return await super().complete(transcript, available_tools)

        client = MCPClient(gateway=SlowGateway(text_response("a"), text_response("b")))

        answers = await asyncio.gather(client.process_query("1"), client.process_query("2"))

        assert sorted(answers) == ["a", "b"]
        assert peak == 1


class TestCleanup:
    @pytest.mark.asyncio
    async def test_cleanup_disconnects(self):
        transport = FakeTransport({"lookup": lambda args: "y"})
        client = MCPClient(gateway=FakeGateway(), transport=transport)

        await client.cleanup()
        await client.cleanup()

        assert transport.disconnect_calls == 2
        assert not client.is_connected()

    @pytest.mark.asyncio
    async def test_context_manager_closes_gateway(self, monkeypatch):
        client = MCPClient("k1", transport=FakeTransport())
        closed = []

        async def close():
            closed.append(True)

        monkeypatch.setattr(client.gateway._client, "close", close)
        async with client:
            pass
        assert closed == [True]
