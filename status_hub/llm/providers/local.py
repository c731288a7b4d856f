"""Deterministic local provider used as safe default and in tests."""

from __future__ import annotations

from typing import Any

from status_hub.llm.providers.base import GenerationRequest, GenerationResponse, TextGenerator


def _section_items(context: dict[str, Any], name: str) -> list[dict[str, Any]]:
    section = (context.get("sections") or {}).get(name) or {}
    return list(section.get("items") or [])


class LocalTextGenerator(TextGenerator):
    """Summarizes the scoped context without calling any external service."""

    name = "local"

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        context = request.context
        projects = _section_items(context, "projects")
        requests = _section_items(context, "change_requests")
        unavailable = list((context.get("manifest") or {}).get("unavailable") or [])

        lines = [f"{len(projects)} project(s) in view."]
        for project in projects:
            lines.append(f"- {project.get('name', '?')}: {project.get('status', '?')}")
        open_requests = [row for row in requests if row.get("status") in {"OPEN", "REVIEWING"}]
        lines.append(f"{len(open_requests)} open change request(s) of {len(requests)} total.")
        if request.role == "admin":
            lines.append(f"{len(_section_items(context, 'leads'))} lead(s) in the pipeline.")
        if unavailable:
            lines.append(f"Temporarily unavailable: {', '.join(unavailable)}.")

        return GenerationResponse(
            text="\n".join(lines),
            model="deterministic-summary",
            provider=self.name,
        )
