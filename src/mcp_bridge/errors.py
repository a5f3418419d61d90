"""
Error taxonomy for mcp-bridge, plus translation of noisy provider tracebacks
into a unified `GatewayError` that preserves the original exception.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Type

from anthropic import (
    APIConnectionError as AnthropicConnectionError,
    APIError as AnthropicAPIError,
    AuthenticationError as AnthropicAuthError,
    BadRequestError as AnthropicBadRequestError,
    RateLimitError as AnthropicRateLimitError,
)
from openai import (
    APIConnectionError as OpenAIConnectionError,
    APIError as OpenAIAPIError,
    AuthenticationError as OpenAIAuthError,
    BadRequestError as OpenAIBadRequestError,
    RateLimitError as OpenAIRateLimitError,
)

__all__: tuple[str, ...] = (
    "MCPBridgeError",
    "MissingCredentialError",
    "UnsupportedServerTypeError",
    "ServerConnectionError",
    "NotConnectedError",
    "GatewayError",
    "ToolInvocationError",
    "ToolLoopExceededError",
    "classify_error",
)


class MCPBridgeError(RuntimeError):
    """Base class for every error raised by mcp-bridge."""


class MissingCredentialError(MCPBridgeError):
    """No API key could be resolved from the argument or the environment."""


class UnsupportedServerTypeError(MCPBridgeError):
    """The server locator is not a recognized script kind or endpoint."""


class ServerConnectionError(MCPBridgeError):
    """Establishing the tool server session failed."""


class NotConnectedError(MCPBridgeError):
    """A transport operation was attempted while disconnected."""


class GatewayError(MCPBridgeError):
    """Public gateway-level exception.

    Attributes:
        original_exc: The underlying provider exception.
    """

    original_exc: Exception

    def __init__(self, message: str, original_exc: Exception) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        self.__cause__ = original_exc


class ToolInvocationError(MCPBridgeError):
    """A tool call failed before producing an outcome."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class ToolLoopExceededError(MCPBridgeError):
    """The model kept requesting tools past the configured round limit."""

    def __init__(self, max_rounds: int) -> None:
        super().__init__(
            f"Model requested tools for more than {max_rounds} consecutive rounds"
        )
        self.max_rounds = max_rounds


RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAIRateLimitError,
    AnthropicRateLimitError,
)

AUTH_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAIAuthError,
    AnthropicAuthError,
)

BAD_REQUEST_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAIBadRequestError,
    AnthropicBadRequestError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAIConnectionError,
    AnthropicConnectionError,
    TimeoutError,
    ConnectionError,
)

API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAIAPIError,
    AnthropicAPIError,
)


def classify_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> GatewayError:
    """Wrap an SDK exception in GatewayError with a friendly, concise message."""
    log = logger or logging.getLogger("mcp_bridge.errors")

    # Order matters: the specific SDK errors subclass APIError.
    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded, please retry later"
    elif isinstance(exc, AUTH_ERRORS):
        msg = "Authentication failed, check the API key"
    elif isinstance(exc, BAD_REQUEST_ERRORS):
        msg = "Provider rejected the request"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem, unable to reach the LLM provider"
    elif isinstance(exc, API_ERRORS):
        msg = "Provider reported an internal error"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping provider exception: %s", msg, extra={"exc": exc})
    return GatewayError(f"{msg}: {exc}", exc)
