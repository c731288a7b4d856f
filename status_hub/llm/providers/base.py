"""Text-generation provider interface and normalized request/response contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class GenerationRequest:
    """Normalized provider request independent of vendor-specific APIs."""

    role: str
    system_instruction: str
    prompt: str
    context: dict[str, Any] = field(default_factory=dict)
    temperature: float = 0.2


@dataclass(frozen=True)
class GenerationResponse:
    text: str
    model: str
    provider: str


class TextGenerator(Protocol):
    """Provider adapter protocol for local and hosted implementations."""

    name: str

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Execute a single-shot request; raise ``TextGenerationError`` on failure."""
