import logging

import pytest

from status_hub.app import StatusHubApp
from status_hub.audit import AuditRecorder
from status_hub.models.entities import AuditEntityType
from status_hub.store import InMemoryDocumentStore
from status_hub.store.document_store import AUDIT_LOGS

ADMIN = "admin-1"


def _hub() -> tuple[StatusHubApp, InMemoryDocumentStore]:
    store = InMemoryDocumentStore()
    hub = StatusHubApp(store=store)
    hub.entities.save_user(ADMIN, {"name": "Ana Admin", "role": "ADMIN"}, actor="bootstrap")
    return hub, store


def test_audit_failure_does_not_block_the_mutation(caplog: pytest.LogCaptureFixture) -> None:
    hub, store = _hub()
    store.failing_writes.add(AUDIT_LOGS)

    with caplog.at_level(logging.WARNING, logger="status_hub.audit"):
        project_id = hub.create_project(ADMIN, {"name": "Portal"})

    assert hub.get_project(ADMIN, project_id).name == "Portal"
    assert [event.action for event in hub.audit.failed_events] == ["CREATE_PROJECT"]
    assert "Audit write failed for CREATE_PROJECT" in caplog.text


def test_failed_events_can_be_replayed_once_the_store_recovers() -> None:
    hub, store = _hub()
    store.failing_writes.add(AUDIT_LOGS)
    hub.create_client(ADMIN, {"companyName": "Acme"})
    hub.create_lead(ADMIN, {"name": "Initech"})

    assert hub.audit.replay_failed() == 0
    assert len(hub.audit.failed_events) == 2

    store.failing_writes.clear()
    assert hub.audit.replay_failed() == 2
    assert hub.audit.failed_events == []
    assert {entry.action for entry in hub.list_audit(ADMIN)} >= {"CREATE_CLIENT", "CREATE_LEAD"}


def test_every_mutation_emits_one_entry_with_actor_name() -> None:
    hub, _ = _hub()
    client_id = hub.create_client(ADMIN, {"companyName": "Acme"})
    hub.update_client(ADMIN, client_id, {"notes": "Prefers email", "isVip": True})
    project_id = hub.create_project(ADMIN, {"name": "Portal", "clientId": client_id})
    hub.archive_project(ADMIN, project_id)
    hub.add_log(ADMIN, {"projectId": project_id, "title": "Kickoff"})

    actions = sorted(entry.action for entry in hub.list_audit(ADMIN) if entry.action != "SAVE_USER")

    assert actions == [
        "ARCHIVE_PROJECT",
        "CREATE_CLIENT",
        "CREATE_LOG",
        "CREATE_PROJECT",
        "UPDATE_CLIENT",
    ]
    assert {entry.user_name for entry in hub.list_audit(ADMIN)} == {"bootstrap", "Ana Admin"}
    update = next(entry for entry in hub.list_audit(ADMIN) if entry.action == "UPDATE_CLIENT")
    assert update.details == "Fields updated: isVip, notes"
    assert update.entity_type == AuditEntityType.CLIENT


def test_list_recent_is_newest_first_and_limited() -> None:
    store = InMemoryDocumentStore()
    stamps = iter(f"2026-01-01T00:00:{second:02d}+00:00" for second in range(60))
    recorder = AuditRecorder(store, clock=lambda: next(stamps))
    for index in range(55):
        recorder.record("CREATE_LEAD", AuditEntityType.LEAD, f"lead-{index}", "Ana", "")

    recent = recorder.list_recent()

    assert len(recent) == 50
    assert recent[0].entity_id == "lead-54"
    assert recent[-1].entity_id == "lead-5"
    assert len(recorder.list_recent(limit=None)) == 55
