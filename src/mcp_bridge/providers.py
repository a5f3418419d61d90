from __future__ import annotations

import os
from enum import StrEnum
from typing import Final

from dotenv import load_dotenv

from mcp_bridge.errors import MissingCredentialError


class Provider(StrEnum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"


_ENV_VARS: Final[dict[Provider, str]] = {
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
}

DEFAULT_MODELS: Final[dict[Provider, str]] = {
    Provider.ANTHROPIC: "claude-3-5-sonnet-20241022",
    Provider.OPENAI: "gpt-4.1-mini",
    Provider.GEMINI: "gemini-2.0-flash",
}


def get_api_key(provider: Provider, api_key: str | None = None) -> str:
    """Return *api_key* if given, else the key for *provider* from the environment.

    A ``.env`` file in the working directory is loaded first; variables that are
    already set are not overridden.
    """
    if api_key:
        return api_key

    try:
        env_var = _ENV_VARS[Provider(provider)]
    except (KeyError, ValueError):
        raise MissingCredentialError(f"No config for {provider!s}") from None

    load_dotenv()
    key = os.environ.get(env_var)
    if not key:
        raise MissingCredentialError(
            f"{env_var} is not set. Provide it via argument or environment variable."
        )
    return key


__all__ = ["Provider", "DEFAULT_MODELS", "get_api_key"]
