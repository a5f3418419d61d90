"""
Model gateways with a unified, stateless complete() method.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol, Self, Sequence, Type

from anthropic import AsyncAnthropic
from anthropic.types import Message
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from mcp_bridge.adapters import (
    AnthropicRequestAdapter,
    GeminiRequestAdapter,
    OpenAIRequestAdapter,
)
from mcp_bridge.errors import classify_error
from mcp_bridge.providers import Provider, get_api_key
from mcp_bridge.types import ModelResponse, ToolDescriptor, TranscriptEntry

__all__ = [
    "ModelGateway",
    "RequestAdapter",
    "BaseModelGateway",
    "AnthropicGateway",
    "OpenAIGateway",
    "GeminiGateway",
    "create_gateway",
]


class RequestAdapter(Protocol):
    """Protocol for adapting between transcript entries and provider-specific format."""

    def to_provider(
        self,
        entries: Sequence[TranscriptEntry],
        tools: Sequence[ToolDescriptor] | None,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """Convert entries, the optional tool catalog and params to request kwargs."""
        ...

    def from_provider(self, raw: Any) -> ModelResponse:
        """Convert a provider response to a ModelResponse."""
        ...


class ModelGateway(Protocol):
    """What the conversation controller needs from a model endpoint."""

    async def complete(
        self,
        transcript: Sequence[TranscriptEntry],
        available_tools: Sequence[ToolDescriptor] | None = None,
    ) -> ModelResponse: ...


class BaseModelGateway(ABC):
    """
    Abstract base class for async-first model gateways.
    """

    def __init__(
        self,
        model: str,
        *,
        max_tokens: int = 1000,
        system_prompt: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    @abstractmethod
    async def _complete_impl(self, request: dict[str, Any]) -> Any:
        """
        Send one provider request and return the raw provider response.
        This method must be implemented by subclasses.

        Args:
            request: Provider-specific keyword arguments built by the adapter.
        """
        ...

    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        """Request adapter for this provider."""
        ...

    def build_request(
        self,
        transcript: Sequence[TranscriptEntry],
        available_tools: Sequence[ToolDescriptor] | None = None,
    ) -> dict[str, Any]:
        """Build the provider request without sending it."""
        params: dict[str, Any] = {"max_tokens": self.max_tokens}
        if self.system_prompt:
            params["system"] = self.system_prompt
        return {
            "model": self.model,
            **self.adapter.to_provider(list(transcript), available_tools, params),
        }

    async def complete(
        self,
        transcript: Sequence[TranscriptEntry],
        available_tools: Sequence[ToolDescriptor] | None = None,
    ) -> ModelResponse:
        """
        Send the transcript and return the model's structured response.

        ``available_tools=None`` sends no tool field at all; an empty sequence
        is sent as an empty tool list.

        Raises:
            GatewayError: On any provider-side failure.
        """
        request = self.build_request(transcript, available_tools)
        self._log(
            f"Sending {len(transcript)} entries to {self.model} "
            f"(tools: {'omitted' if available_tools is None else len(available_tools)})",
            logging.DEBUG,
        )

        try:
            raw = await self._complete_impl(request)
            response = self.adapter.from_provider(raw)
        except Exception as exc:
            raise classify_error(exc, self.logger) from exc

        self._log(
            f"Received {len(response.text_segments)} text segments, "
            f"{len(response.tool_requests)} tool requests (stop: {response.stop_reason})",
            logging.DEBUG,
        )
        return response

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close underlying async HTTP clients to avoid cleanup after the loop closes.
        Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class AnthropicGateway(BaseModelGateway):
    """
    Anthropic Messages API gateway (async-only).

    Use ``AnthropicGateway.from_client`` when you already have an ``AsyncAnthropic`` instance.
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        max_tokens: int = 1000,
        system_prompt: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(
            model, max_tokens=max_tokens, system_prompt=system_prompt, logger=logger, name=name
        )
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = AnthropicRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncAnthropic,
        *,
        max_tokens: int = 1000,
        system_prompt: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Wrap an existing ``AsyncAnthropic`` client.
        """
        if not isinstance(client, AsyncAnthropic):
            raise TypeError(
                f"AnthropicGateway.from_client expects AsyncAnthropic; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseModelGateway.__init__(
            self, model, max_tokens=max_tokens, system_prompt=system_prompt, logger=logger, name=name
        )
        self._client = client
        self._adapter = AnthropicRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _complete_impl(self, request: dict[str, Any]) -> Message:
        return await self._client.messages.create(**request)


class OpenAIGateway(BaseModelGateway):
    """
    OpenAI Chat Completions gateway (async-only).

    Use ``OpenAIGateway.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    adapter_class: Type[OpenAIRequestAdapter] = OpenAIRequestAdapter
    default_base_url: Optional[str] = None

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        max_tokens: int = 1000,
        system_prompt: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(
            model, max_tokens=max_tokens, system_prompt=system_prompt, logger=logger, name=name
        )
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url or self.default_base_url,
        )
        self._adapter = self.adapter_class()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncOpenAI,
        *,
        max_tokens: int = 1000,
        system_prompt: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Build a gateway around an already-configured ``AsyncOpenAI`` client.
        """
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"{cls.__name__}.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseModelGateway.__init__(
            self, model, max_tokens=max_tokens, system_prompt=system_prompt, logger=logger, name=name
        )
        self._client = client
        self._adapter = cls.adapter_class()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _complete_impl(self, request: dict[str, Any]) -> ChatCompletion:
        return await self._client.chat.completions.create(**request)


_DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class GeminiGateway(OpenAIGateway):
    """
    Gemini gateway via the OpenAI-compatible endpoint.
    """

    adapter_class = GeminiRequestAdapter
    default_base_url = _DEFAULT_GEMINI_BASE_URL


# Factory for creating gateway instances

_GATEWAY_REGISTRY: dict[Provider, Type[BaseModelGateway]] = {
    Provider.ANTHROPIC: AnthropicGateway,
    Provider.OPENAI: OpenAIGateway,
    Provider.GEMINI: GeminiGateway,
}


def create_gateway(
    provider: Provider,
    model: str,
    *,
    api_key: str | None = None,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: logging.Logger | None = None,
    **provider_kwargs: Any,
) -> BaseModelGateway:
    """
    Factory for creating any supported model gateway.

    Args:
        provider: Which provider to use (ANTHROPIC, OPENAI, GEMINI).
        model: Model identifier (e.g. "claude-3-5-sonnet-20241022").
        api_key: Overrides automatic lookup; if omitted, pulled from env.
        client: Optional pre-configured SDK client to use.
            - For Provider.ANTHROPIC: an AsyncAnthropic instance
            - For Provider.OPENAI and Provider.GEMINI: an AsyncOpenAI instance
        logger: Optional custom logger.
        **provider_kwargs: Extra args passed through (max_tokens, system_prompt,
            and, without a client, timeout, max_retries, base_url).

    Raises:
        MissingCredentialError: If no client is given and no key can be resolved.
    """
    try:
        gateway_cls = _GATEWAY_REGISTRY[Provider(provider)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unsupported provider: {provider}") from exc

    if client is not None:  # use caller-supplied client verbatim
        for key in ("timeout", "max_retries", "base_url"):
            provider_kwargs.pop(key, None)
        return gateway_cls.from_client(model, client, logger=logger, **provider_kwargs)

    key = get_api_key(provider, api_key)
    return gateway_cls(model, api_key=key, logger=logger, **provider_kwargs)
