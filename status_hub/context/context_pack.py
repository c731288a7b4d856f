"""Role-scoped context packs for the assistant, with budgeted truncation and hashing."""

from __future__ import annotations

import hashlib
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from status_hub.access.scoping import AccessScope, scope_for
from status_hub.entity_store import EntityStore
from status_hub.errors import (
    REASON_ADMIN_REQUIRED,
    REASON_CLIENT_REQUIRED,
    AccessDeniedError,
)
from status_hub.models.entities import DocumentModel
from status_hub.models.roles import PendingCaller, ResolvedCaller

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "status_context/v1"

STATE_READY = "ready"
STATE_PENDING = "pending_activation"
SECTION_OK = "ok"
SECTION_UNAVAILABLE = "unavailable"

DEFAULT_CHAR_BUDGET = 12000

SectionFetcher = Callable[[], list[DocumentModel]]


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _stable_hash(value: Any) -> str:
    return hashlib.sha256(_canonical_json(value).encode("utf-8")).hexdigest()


def pending_context(caller: PendingCaller) -> dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "state": STATE_PENDING,
        "subject_id": caller.subject_id,
        "reason_code": caller.reason_code,
    }


def _fetch_sections(fetchers: dict[str, SectionFetcher]) -> dict[str, dict[str, Any]]:
    """Run independent section reads concurrently; a failure empties only its section."""

    results: dict[str, dict[str, Any]] = {}
    with ThreadPoolExecutor(max_workers=max(len(fetchers), 1)) as pool:
        futures = {name: pool.submit(fetch) for name, fetch in fetchers.items()}
        for name, future in futures.items():
            try:
                items = future.result()
            except Exception as exc:
                logger.exception("Context section %s unavailable", name, extra={"section": name})
                results[name] = {
                    "state": SECTION_UNAVAILABLE,
                    "items": [],
                    "reason_code": getattr(exc, "reason_code", "section_fetch_failed"),
                }
                continue
            results[name] = {
                "state": SECTION_OK,
                "items": [item.to_document() for item in items],
            }
    return results


def _apply_budget(
    sections: dict[str, dict[str, Any]],
    order: tuple[str, ...],
    char_budget: int,
) -> tuple[dict[str, dict[str, Any]], dict[str, Any], int]:
    used_chars = 0
    included_counts: dict[str, int] = {}
    excluded_counts: dict[str, int] = {}
    bounded: dict[str, dict[str, Any]] = {}

    for name in order:
        section = sections[name]
        kept: list[dict[str, Any]] = []
        dropped = 0
        for item in section["items"]:
            size = len(_canonical_json(item))
            if used_chars + size > char_budget:
                dropped += 1
                continue
            kept.append(item)
            used_chars += size
        bounded[name] = {**section, "items": kept}
        included_counts[name] = len(kept)
        excluded_counts[name] = dropped

    manifest = {
        "included": included_counts,
        "excluded": excluded_counts,
        "unavailable": sorted(
            name for name in order if sections[name]["state"] == SECTION_UNAVAILABLE
        ),
    }
    return bounded, manifest, used_chars


def _assemble(
    role: str,
    tenant_id: str | None,
    fetchers: dict[str, SectionFetcher],
    char_budget: int,
) -> dict[str, Any]:
    if char_budget <= 0:
        raise ValueError("char_budget must be positive")

    order = tuple(fetchers)
    sections, manifest, used_chars = _apply_budget(_fetch_sections(fetchers), order, char_budget)
    payload = {
        "schema_version": SCHEMA_VERSION,
        "state": STATE_READY,
        "role": role,
        "tenant_id": tenant_id,
        "sections": sections,
        "budget": {
            "max_chars": char_budget,
            "used_chars": used_chars,
            "strategy": "truncate_section_tail",
        },
        "manifest": manifest,
    }
    return {**payload, "hash": _stable_hash(payload)}


def build_admin_context(
    entities: EntityStore,
    scope: AccessScope,
    include_archived: bool = False,
    char_budget: int = DEFAULT_CHAR_BUDGET,
) -> dict[str, Any]:
    if not scope.is_admin:
        raise AccessDeniedError(REASON_ADMIN_REQUIRED)

    fetchers: dict[str, SectionFetcher] = {
        "projects": lambda: entities.list_projects(scope, include_archived=include_archived),
        "logs": lambda: entities.list_logs(scope),
        "clients": lambda: entities.list_clients(scope),
        "change_requests": lambda: entities.list_change_requests(scope),
        "leads": entities.list_leads,
    }
    return _assemble("admin", None, fetchers, char_budget)


def build_client_context(
    entities: EntityStore,
    scope: AccessScope,
    char_budget: int = DEFAULT_CHAR_BUDGET,
) -> dict[str, Any]:
    if scope.is_admin:
        raise AccessDeniedError(REASON_CLIENT_REQUIRED)

    fetchers: dict[str, SectionFetcher] = {
        "projects": lambda: entities.list_projects(scope),
        "change_requests": lambda: entities.list_change_requests(scope),
        "updates": lambda: entities.list_logs(scope),
    }
    return _assemble("client", scope.tenant_id, fetchers, char_budget)


def build_context_pack(
    entities: EntityStore,
    caller: ResolvedCaller,
    include_archived: bool = False,
    char_budget: int = DEFAULT_CHAR_BUDGET,
) -> dict[str, Any]:
    """Dispatch once on the caller variant and build the matching pack."""

    if isinstance(caller, PendingCaller):
        return pending_context(caller)
    scope = scope_for(caller.role)
    if scope.is_admin:
        return build_admin_context(
            entities, scope, include_archived=include_archived, char_budget=char_budget
        )
    return build_client_context(entities, scope, char_budget=char_budget)
