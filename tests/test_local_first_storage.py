import logging
from pathlib import Path

import pytest

from status_hub.app import StatusHubApp
from status_hub.errors import StoreUnavailableError
from status_hub.shared.logging_config import JSONFormatter, configure_logging
from status_hub.shared.settings import (
    AssistantSettings,
    StorageSettings,
    WorkflowSettings,
    get_storage_settings,
)
from status_hub.store import (
    InMemoryDocumentStore,
    SQLiteDocumentStore,
    Where,
    build_store_from_env,
)


def test_storage_settings_create_local_first_directories(tmp_path: Path) -> None:
    env = {
        "STATUS_HUB_STORE": "sqlite",
        "STATUS_HUB_DATA_DIR": str(tmp_path / "data"),
        "STATUS_HUB_SQLITE_PATH": str(tmp_path / "data" / "db" / "status_hub.sqlite"),
    }

    settings = get_storage_settings(env)

    assert settings.backend == "sqlite"
    assert settings.data_dir.exists()
    assert settings.sqlite_path.parent.exists()


def test_settings_defaults_without_environment() -> None:
    storage = StorageSettings.from_env({})
    assistant = AssistantSettings.from_env({})

    assert storage.backend == "in_memory"
    assert storage.sqlite_path == Path("./data") / "status_hub.sqlite"
    assert assistant.provider == "local"
    assert assistant.api_key is None
    assert assistant.context_budget == 12000
    assert WorkflowSettings.from_env({}).strict_transitions is False
    assert WorkflowSettings.from_env({"STATUS_HUB_STRICT_TRANSITIONS": "yes"}).strict_transitions


def test_build_store_from_env_selects_backend(tmp_path: Path) -> None:
    assert isinstance(build_store_from_env({}), InMemoryDocumentStore)
    sqlite_store = build_store_from_env(
        {"STATUS_HUB_STORE": "sqlite", "STATUS_HUB_SQLITE_PATH": str(tmp_path / "hub.sqlite")}
    )
    assert isinstance(sqlite_store, SQLiteDocumentStore)

    with pytest.raises(ValueError, match="unknown_store_backend:firestore"):
        build_store_from_env({"STATUS_HUB_STORE": "firestore"})


def test_sqlite_connection_uses_wal_and_busy_timeout(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "hub.sqlite")

    journal_mode = store.conn.execute("PRAGMA journal_mode").fetchone()[0]
    busy_timeout = store.conn.execute("PRAGMA busy_timeout").fetchone()[0]

    assert str(journal_mode).lower() == "wal"
    assert int(busy_timeout) == 5000


def test_sqlite_filters_match_booleans_nulls_and_membership(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "hub.sqlite")
    visible = store.insert("projects", {"name": "A", "clientId": "c1", "isArchived": False})
    store.insert("projects", {"name": "B", "clientId": "c1", "isArchived": True})
    internal = store.insert("projects", {"name": "C", "clientId": None, "isArchived": False})

    active = store.list("projects", where=[Where("clientId", "c1"), Where("isArchived", False)])
    assert [row["id"] for row in active] == [visible]
    assert [row["id"] for row in store.list("projects", where=[Where("clientId", None)])] == [
        internal
    ]
    members = store.list("projects", where=[Where("id", [visible, internal], op="in")])
    assert {row["id"] for row in members} == {visible, internal}
    assert store.list("projects", where=[Where("id", [], op="in")]) == []
    assert store.list("clients") == []


def test_sqlite_orders_limits_and_deep_merges(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "hub.sqlite")
    for second in range(3):
        store.insert(
            "projectLogs", {"title": f"t{second}", "createdAt": f"2026-01-01T00:00:0{second}"}
        )
    project_id = store.insert("projects", {"name": "A", "urls": {"production": "p"}})

    newest = store.list("projectLogs", order_by="createdAt", descending=True, limit=2)
    store.merge_update("projects", project_id, {"urls": {"staging": "s"}})
    store.merge_update("users", "subject-1", {"name": "Created by merge"})

    assert [row["title"] for row in newest] == ["t2", "t1"]
    assert store.get("projects", project_id)["urls"] == {"production": "p", "staging": "s"}
    assert store.get("users", "subject-1") == {"id": "subject-1", "name": "Created by merge"}

    store.delete("users", "subject-1")
    assert store.get("users", "subject-1") is None


def test_sqlite_rejects_unsafe_field_names(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "hub.sqlite")

    with pytest.raises(ValueError, match="invalid_field_name"):
        store.list("projects", where=[Where("name') OR 1=1 --", "x")])


def test_sqlite_errors_surface_as_store_unavailable(tmp_path: Path) -> None:
    store = SQLiteDocumentStore(tmp_path / "hub.sqlite")
    store.conn.close()

    with pytest.raises(StoreUnavailableError) as excinfo:
        store.get("projects", "p1")
    assert excinfo.value.reason_code == "sqlite_read_failed"


def test_portal_scoping_holds_on_sqlite(tmp_path: Path) -> None:
    hub = StatusHubApp(store=SQLiteDocumentStore(tmp_path / "hub.sqlite"))
    hub.entities.save_user("admin-1", {"name": "Ana", "role": "ADMIN"}, actor="bootstrap")
    c1 = hub.create_client("admin-1", {"companyName": "Acme"})
    hub.save_user("admin-1", "carla", {"role": "CLIENT", "clientId": c1})
    p1 = hub.create_project("admin-1", {"name": "P1", "clientId": c1, "visibilityForClient": True})
    hub.create_project("admin-1", {"name": "P2", "clientId": c1})
    hub.add_log("admin-1", {"projectId": p1, "title": "Hidden", "visibleToClient": False})

    assert [project.id for project in hub.list_projects("carla")] == [p1]
    assert {log.title for log in hub.list_logs("carla")} == {"Project created"}
    pack = hub.context_pack("carla")
    assert pack["manifest"]["unavailable"] == []


def test_configure_logging_installs_single_json_handler() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging("debug", json_output=True)

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_json_formatter_carries_structured_fields() -> None:
    record = logging.LogRecord("status_hub.audit", logging.WARNING, __file__, 1, "boom", (), None)
    record.action = "DELETE_USER"

    formatted = JSONFormatter().format(record)

    assert '"action": "DELETE_USER"' in formatted
    assert '"level": "WARNING"' in formatted
