"""Single-shot assistant over a role-scoped context pack."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Sequence

from status_hub.context.context_pack import STATE_PENDING
from status_hub.errors import TextGenerationError
from status_hub.llm.providers.base import GenerationRequest, TextGenerator

logger = logging.getLogger(__name__)

REPLY_ANSWERED = "answered"
REPLY_PENDING = "pending_activation"
REPLY_UNAVAILABLE = "unavailable"

ADMIN_TEMPERATURE = 0.1
CLIENT_TEMPERATURE = 0.3

MAX_HISTORY_MESSAGES = 20

ADMIN_RULES = (
    "Answer only from the records above.",
    "Be analytical and point out operational risks such as stalled projects "
    "or open change requests.",
    "If a section is marked unavailable, say that its data could not be loaded.",
)

CLIENT_RULES = (
    "Avoid heavy technical jargon.",
    "Focus on the progress of the partnership.",
    "Only discuss the projects and updates listed above.",
)


@dataclass(frozen=True)
class AssistantReply:
    state: str
    text: str = ""
    provider: str = ""
    model: str = ""
    context_hash: str = ""
    reason_code: str = ""

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _section_json(context: dict[str, Any], name: str) -> str:
    section = context["sections"].get(name) or {"state": "ok", "items": []}
    if section.get("state") != "ok":
        return f"unavailable ({section.get('reason_code', 'unknown')})"
    return json.dumps(section["items"], sort_keys=True, ensure_ascii=False)


def render_system_instruction(context: dict[str, Any]) -> str:
    if context["role"] == "admin":
        header = "You are the project intelligence engineer of the status hub."
        labels = (
            ("Projects", "projects"),
            ("Logs", "logs"),
            ("Clients", "clients"),
            ("Change requests", "change_requests"),
            ("Leads", "leads"),
        )
        rules = ADMIN_RULES
    else:
        header = "You are the client status interpreter of the status hub."
        labels = (
            ("Client projects", "projects"),
            ("Visible updates", "updates"),
            ("Change requests", "change_requests"),
        )
        rules = CLIENT_RULES

    lines = [header, "", "SYSTEM CONTEXT:"]
    lines.extend(f"- {label}: {_section_json(context, name)}" for label, name in labels)
    lines.extend(["", "RULES:"])
    lines.extend(f"{index}. {rule}" for index, rule in enumerate(rules, start=1))
    return "\n".join(lines)


def render_prompt(prompt: str, history: Sequence[dict[str, str]] | None = None) -> str:
    """Prefix the question with caller-local history; nothing here is persisted."""

    recent = list(history or [])[-MAX_HISTORY_MESSAGES:]
    if not recent:
        return prompt
    lines = ["Conversation so far:"]
    for message in recent:
        speaker = "Assistant" if message.get("role") == "assistant" else "User"
        lines.append(f"{speaker}: {message.get('text', '')}")
    lines.extend(["", f"User: {prompt}"])
    return "\n".join(lines)


def ask_assistant(
    generator: TextGenerator,
    context: dict[str, Any],
    prompt: str,
    history: Sequence[dict[str, str]] | None = None,
) -> AssistantReply:
    if context.get("state") == STATE_PENDING:
        return AssistantReply(state=REPLY_PENDING, reason_code=context.get("reason_code", ""))
    if not prompt.strip():
        raise ValueError("prompt_required")

    role = context["role"]
    request = GenerationRequest(
        role=role,
        system_instruction=render_system_instruction(context),
        prompt=render_prompt(prompt, history),
        context=context,
        temperature=ADMIN_TEMPERATURE if role == "admin" else CLIENT_TEMPERATURE,
    )
    try:
        response = generator.generate(request)
    except TextGenerationError as exc:
        logger.exception("Assistant generation failed via %s", generator.name)
        return AssistantReply(
            state=REPLY_UNAVAILABLE,
            provider=generator.name,
            context_hash=context.get("hash", ""),
            reason_code=exc.reason_code,
        )

    return AssistantReply(
        state=REPLY_ANSWERED,
        text=response.text,
        provider=response.provider,
        model=response.model,
        context_hash=context.get("hash", ""),
    )
