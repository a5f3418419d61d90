"""Gemini adapter for pure request/response transformations.

Gemini is reached through its OpenAI-compatible endpoint, so this is the
OpenAI adapter with the token limit under its older name.
"""

from .openai import OpenAIRequestAdapter


class GeminiRequestAdapter(OpenAIRequestAdapter):
    max_tokens_field = "max_tokens"
