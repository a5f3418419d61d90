"""
MCP Bridge - Tool-use mediator between LLM providers and MCP tool servers.
"""

__version__ = "0.1.0"

from .client import MCPClient
from .config import ClientSettings
from .controller import ConversationController, ConversationState
from .dispatcher import CallIdGenerator, ToolDispatcher
from .errors import (
    GatewayError,
    MCPBridgeError,
    MissingCredentialError,
    NotConnectedError,
    ServerConnectionError,
    ToolInvocationError,
    ToolLoopExceededError,
    UnsupportedServerTypeError,
)
from .gateway import (
    AnthropicGateway,
    BaseModelGateway,
    GeminiGateway,
    OpenAIGateway,
    create_gateway,
)
from .providers import Provider, get_api_key
from .transcript import Transcript
from .transport import MCPConnector, ServerKind, ServerTarget, resolve_server
from .types import (
    AssistantText,
    AssistantToolRequest,
    ConnectionState,
    ModelResponse,
    ToolDescriptor,
    ToolOutcome,
    ToolResult,
    TranscriptEntry,
    UserText,
)

__all__ = [
    "MCPClient",
    "ClientSettings",
    "ConversationController",
    "ConversationState",
    "CallIdGenerator",
    "ToolDispatcher",
    "MCPBridgeError",
    "MissingCredentialError",
    "UnsupportedServerTypeError",
    "ServerConnectionError",
    "NotConnectedError",
    "GatewayError",
    "ToolInvocationError",
    "ToolLoopExceededError",
    "BaseModelGateway",
    "AnthropicGateway",
    "OpenAIGateway",
    "GeminiGateway",
    "create_gateway",
    "Provider",
    "get_api_key",
    "Transcript",
    "MCPConnector",
    "ServerKind",
    "ServerTarget",
    "resolve_server",
    "AssistantText",
    "AssistantToolRequest",
    "ConnectionState",
    "ModelResponse",
    "ToolDescriptor",
    "ToolOutcome",
    "ToolResult",
    "TranscriptEntry",
    "UserText",
]
