"""SQLite persistence for portal documents, one JSON payload per row."""

from __future__ import annotations

import json
import re
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from status_hub.errors import StoreUnavailableError
from status_hub.store.document_store import Where, deep_merge


_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _json_path(field: str) -> str:
    if not _FIELD_RE.match(field):
        raise ValueError(f"invalid_field_name:{field}")
    return f"$.{field}"


def _bind(value: Any) -> Any:
    # json_extract yields 1/0 for JSON booleans.
    if isinstance(value, bool):
        return 1 if value else 0
    return value


class SQLiteDocumentStore:
    """Small SQLite wrapper storing every collection in one ``documents`` table."""

    def __init__(self, db_path: Path | str = ":memory:") -> None:
        self.db_path = str(db_path)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._init_schema()

    def _init_schema(self) -> None:
        if self.db_path != ":memory:":
            self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA busy_timeout=5000")
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                payload_json TEXT NOT NULL,
                PRIMARY KEY (collection, doc_id)
            );

            CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);
            """
        )
        self.conn.commit()

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            with self._lock:
                yield
        except sqlite3.Error as exc:
            raise StoreUnavailableError(
                f"SQLite {operation} failed: {exc}", reason_code=f"sqlite_{operation}_failed"
            ) from exc

    def insert(self, collection: str, document: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        payload = dict(document)
        payload["id"] = doc_id
        with self._guard("insert"):
            self.conn.execute(
                "INSERT INTO documents (collection, doc_id, payload_json) VALUES (?, ?, ?)",
                (collection, doc_id, json.dumps(payload, sort_keys=True)),
            )
            self.conn.commit()
        return doc_id

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._guard("read"):
            row = self.conn.execute(
                "SELECT payload_json FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    def list(
        self,
        collection: str,
        where: list[Where] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        clauses = ["collection = ?"]
        params: list[Any] = [collection]
        for clause in where or []:
            path = _json_path(clause.field)
            if clause.op == "in":
                values = list(clause.value)
                if not values:
                    return []
                placeholders = ", ".join("?" for _ in values)
                clauses.append(f"json_extract(payload_json, '{path}') IN ({placeholders})")
                params.extend(_bind(value) for value in values)
            elif clause.value is None:
                clauses.append(f"json_extract(payload_json, '{path}') IS NULL")
            else:
                clauses.append(f"json_extract(payload_json, '{path}') = ?")
                params.append(_bind(clause.value))

        sql = f"SELECT payload_json FROM documents WHERE {' AND '.join(clauses)}"
        if order_by:
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY json_extract(payload_json, '{_json_path(order_by)}') {direction}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        with self._guard("read"):
            rows = self.conn.execute(sql, tuple(params)).fetchall()
        return [json.loads(row[0]) for row in rows]

    def merge_update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        with self._guard("merge_update"):
            row = self.conn.execute(
                "SELECT payload_json FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
            current = json.loads(row[0]) if row is not None else {"id": doc_id}
            merged = deep_merge(current, fields)
            merged["id"] = doc_id
            self.conn.execute(
                """
                INSERT INTO documents (collection, doc_id, payload_json)
                VALUES (?, ?, ?)
                ON CONFLICT(collection, doc_id) DO UPDATE SET
                  payload_json=excluded.payload_json
                """,
                (collection, doc_id, json.dumps(merged, sort_keys=True)),
            )
            self.conn.commit()

    def delete(self, collection: str, doc_id: str) -> None:
        with self._guard("delete"):
            self.conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            self.conn.commit()
