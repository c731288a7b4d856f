"""Provider adapters for assistant text generation."""

from __future__ import annotations

import os

from status_hub.llm.providers.base import GenerationRequest, GenerationResponse, TextGenerator
from status_hub.llm.providers.gemini import GeminiTextGenerator
from status_hub.llm.providers.local import LocalTextGenerator
from status_hub.shared.settings import AssistantSettings


def build_text_generator_from_env(env: dict[str, str] | None = None) -> TextGenerator:
    settings = AssistantSettings.from_env(os.environ if env is None else env)
    if settings.provider == "gemini":
        return GeminiTextGenerator(
            api_key=settings.api_key or "",
            admin_model=settings.admin_model,
            client_model=settings.client_model,
            timeout_s=settings.timeout_s,
        )
    if settings.provider != "local":
        raise ValueError(f"unknown_provider:{settings.provider}")
    return LocalTextGenerator()


__all__ = [
    "GeminiTextGenerator",
    "GenerationRequest",
    "GenerationResponse",
    "LocalTextGenerator",
    "TextGenerator",
    "build_text_generator_from_env",
]
