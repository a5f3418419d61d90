"""Client settings shared by the gateway, the dispatcher and the controller."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, replace
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from mcp_bridge.providers import DEFAULT_MODELS, Provider

__all__ = ["ClientSettings", "ENV_PREFIX"]

ENV_PREFIX = "MCP_BRIDGE_"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ClientSettings:
    """Settings for one client instance.

    ``api_key`` may stay ``None`` here; the client resolves it from the
    environment at construction and fails with MissingCredentialError if
    none is found.
    """

    api_key: Optional[str] = None
    provider: Provider = Provider.ANTHROPIC
    model: Optional[str] = None
    max_output_tokens: int = 1000
    debug_logging: bool = False
    system_prompt: Optional[str] = None

    # Tool loop
    max_tool_rounds: int = 10
    concurrent_tool_calls: bool = False
    annotate_tool_calls: bool = False

    # Transport / HTTP
    timeout: float = 60.0
    max_retries: int = 2
    connect_timeout: float = 30.0

    def __post_init__(self) -> None:
        self.provider = Provider(self.provider)
        if self.model is None:
            self.model = DEFAULT_MODELS[self.provider]
        if self.max_output_tokens <= 0:
            raise ValueError("max_output_tokens must be positive")
        if self.max_tool_rounds < 0:
            raise ValueError("max_tool_rounds must not be negative")

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: Any
    ) -> "ClientSettings":
        """
        Build settings from ``MCP_BRIDGE_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ`` (``.env`` is
                only loaded when reading the real environment).
            **overrides: Explicit values, winning over the environment.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        def get(name: str) -> str | None:
            value = environ.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        values: dict[str, Any] = {}
        if (provider := get("PROVIDER")) is not None:
            values["provider"] = Provider(provider.lower())
        if (model := get("MODEL")) is not None:
            values["model"] = model
        if (max_tokens := get("MAX_OUTPUT_TOKENS")) is not None:
            values["max_output_tokens"] = int(max_tokens)
        if (debug := get("DEBUG")) is not None:
            values["debug_logging"] = debug.lower() in _TRUTHY
        if (rounds := get("MAX_TOOL_ROUNDS")) is not None:
            values["max_tool_rounds"] = int(rounds)
        if (prompt := get("SYSTEM_PROMPT")) is not None:
            values["system_prompt"] = prompt

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def as_dict(self, exclude_none: bool = True) -> dict[str, Any]:
        result = asdict(self)
        if exclude_none:
            return {k: v for k, v in result.items() if v is not None}
        return result

    def copy(self, **kwargs: Any) -> "ClientSettings":
        """Create a copy of these settings with optional overrides.

        Switching provider without naming a model picks that provider's
        default model.
        """
        if "provider" in kwargs and "model" not in kwargs:
            kwargs["model"] = DEFAULT_MODELS[Provider(kwargs["provider"])]
        return replace(self, **kwargs)

    def __repr__(self) -> str:
        shown = {k: v for k, v in self.as_dict().items() if k != "api_key"}
        key = "***" if self.api_key else None
        fields = ", ".join(f"{k}={v!r}" for k, v in shown.items())
        return f"{self.__class__.__name__}(api_key={key!r}, {fields})"
