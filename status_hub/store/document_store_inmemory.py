"""In-memory document store for deterministic tests."""

from __future__ import annotations

import copy
import uuid
from typing import Any

from status_hub.errors import StoreUnavailableError
from status_hub.store.document_store import Where, deep_merge


class InMemoryDocumentStore:
    """Dict-backed store with optional per-collection failure injection."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.failing_reads: set[str] = set()
        self.failing_writes: set[str] = set()
        self.executed_writes: list[tuple[str, str, str]] = []

    def _check_read(self, collection: str) -> None:
        if collection in self.failing_reads:
            raise StoreUnavailableError(
                f"Read failure injected for {collection}", reason_code="read_unavailable"
            )

    def _check_write(self, collection: str) -> None:
        if collection in self.failing_writes:
            raise StoreUnavailableError(
                f"Write failure injected for {collection}", reason_code="write_unavailable"
            )

    def insert(self, collection: str, document: dict[str, Any]) -> str:
        self._check_write(collection)
        doc_id = uuid.uuid4().hex
        stored = copy.deepcopy(document)
        stored["id"] = doc_id
        self.collections.setdefault(collection, {})[doc_id] = stored
        self.executed_writes.append(("insert", collection, doc_id))
        return doc_id

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        self._check_read(collection)
        document = self.collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    def list(
        self,
        collection: str,
        where: list[Where] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self._check_read(collection)
        documents = [
            copy.deepcopy(doc)
            for doc in self.collections.get(collection, {}).values()
            if all(clause.matches(doc) for clause in where or [])
        ]
        if order_by:
            documents.sort(key=lambda doc: str(doc.get(order_by) or ""), reverse=descending)
        if limit is not None:
            documents = documents[:limit]
        return documents

    def merge_update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self._check_write(collection)
        bucket = self.collections.setdefault(collection, {})
        current = bucket.get(doc_id, {"id": doc_id})
        merged = deep_merge(current, fields)
        merged["id"] = doc_id
        bucket[doc_id] = merged
        self.executed_writes.append(("merge_update", collection, doc_id))

    def delete(self, collection: str, doc_id: str) -> None:
        self._check_write(collection)
        self.collections.get(collection, {}).pop(doc_id, None)
        self.executed_writes.append(("delete", collection, doc_id))
