"""Document store contracts, filter primitives, and factory helpers."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from typing import Any, Protocol

from status_hub.errors import StoreUnavailableError
from status_hub.shared.settings import get_storage_settings


USERS = "users"
CLIENTS = "clients"
PROJECTS = "projects"
PROJECT_LOGS = "projectLogs"
CHANGE_REQUESTS = "changeRequests"
AUDIT_LOGS = "auditLogs"
LEADS = "leads"

COLLECTIONS = (USERS, CLIENTS, PROJECTS, PROJECT_LOGS, CHANGE_REQUESTS, AUDIT_LOGS, LEADS)

SUPPORTED_OPERATORS = {"==", "in"}


@dataclass(frozen=True)
class Where:
    field: str
    value: Any
    op: str = "=="

    def __post_init__(self) -> None:
        if self.op not in SUPPORTED_OPERATORS:
            raise ValueError(f"unsupported_filter_operator:{self.op}")

    def matches(self, document: dict[str, Any]) -> bool:
        current = document.get(self.field)
        if self.op == "in":
            return current in self.value
        return current == self.value


def deep_merge(target: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Merge ``patch`` into a copy of ``target``; nested dicts merge key by key."""

    merged = copy.deepcopy(target)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class DocumentStore(Protocol):
    """Store contract for all persistence implementations."""

    def insert(self, collection: str, document: dict[str, Any]) -> str: ...

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    def list(
        self,
        collection: str,
        where: list[Where] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...

    def merge_update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None: ...

    def delete(self, collection: str, doc_id: str) -> None: ...


def build_store_from_env(env: dict[str, str] | None = None) -> DocumentStore:
    env_map = os.environ if env is None else env
    settings = get_storage_settings(env_map)

    if settings.backend == "sqlite":
        from status_hub.store.document_store_sqlite import SQLiteDocumentStore

        return SQLiteDocumentStore(settings.sqlite_path)
    if settings.backend not in {"in_memory", "memory"}:
        raise ValueError(f"unknown_store_backend:{settings.backend}")

    from status_hub.store.document_store_inmemory import InMemoryDocumentStore

    return InMemoryDocumentStore()


__all__ = [
    "AUDIT_LOGS",
    "CHANGE_REQUESTS",
    "CLIENTS",
    "COLLECTIONS",
    "DocumentStore",
    "LEADS",
    "PROJECTS",
    "PROJECT_LOGS",
    "StoreUnavailableError",
    "USERS",
    "Where",
    "build_store_from_env",
    "deep_merge",
]
