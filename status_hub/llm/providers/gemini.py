"""Gemini REST adapter for hosted text generation."""

from __future__ import annotations

from typing import Any

import requests

from status_hub.errors import TextGenerationError
from status_hub.llm.providers.base import GenerationRequest, GenerationResponse, TextGenerator


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiTextGenerator(TextGenerator):
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        admin_model: str,
        client_model: str,
        timeout_s: float = 30.0,
        base_url: str = DEFAULT_BASE_URL,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("gemini_api_key_required")
        self.api_key = api_key
        self.admin_model = admin_model
        self.client_model = client_model
        self.timeout_s = timeout_s
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def _model_for(self, role: str) -> str:
        return self.admin_model if role == "admin" else self.client_model

    def _payload(self, request: GenerationRequest) -> dict[str, Any]:
        return {
            "systemInstruction": {"parts": [{"text": request.system_instruction}]},
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": {"temperature": request.temperature},
        }

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        model = self._model_for(request.role)
        url = f"{self.base_url}/models/{model}:generateContent"
        try:
            response = self.session.post(
                url,
                params={"key": self.api_key},
                json=self._payload(request),
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            raise TextGenerationError(
                f"Gemini request failed: {exc}", reason_code="transport_error"
            ) from exc

        if response.status_code >= 400:
            raise TextGenerationError(
                f"Gemini returned HTTP {response.status_code}",
                reason_code=f"http_{response.status_code}",
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise TextGenerationError(
                "Gemini returned a non-JSON body", reason_code="invalid_response"
            ) from exc
        candidates = body.get("candidates") or []
        parts = ((candidates[0].get("content") or {}).get("parts") or []) if candidates else []
        text = "".join(str(part.get("text", "")) for part in parts).strip()
        if not text:
            raise TextGenerationError("Gemini returned no text", reason_code="empty_response")
        return GenerationResponse(text=text, model=model, provider=self.name)
