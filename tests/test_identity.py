import pytest

from status_hub.app import StatusHubApp
from status_hub.errors import AccessDeniedError, PendingActivationError
from status_hub.identity import resolve_caller
from status_hub.models.roles import AdminRole, Caller, ClientRole, PendingCaller
from status_hub.store import InMemoryDocumentStore

ADMIN = "admin-1"


def _hub() -> StatusHubApp:
    hub = StatusHubApp(store=InMemoryDocumentStore())
    hub.entities.save_user(ADMIN, {"name": "Ana Admin", "role": "ADMIN"}, actor="bootstrap")
    return hub


def test_unknown_subject_is_pending_not_denied() -> None:
    hub = _hub()

    caller = resolve_caller(hub.store, "ghost")

    assert caller == PendingCaller(subject_id="ghost", reason_code="no_user_record")


def test_client_without_resolvable_tenant_is_pending() -> None:
    hub = _hub()
    hub.save_user(ADMIN, "no-tenant", {"name": "Nia", "role": "CLIENT"})
    hub.save_user(ADMIN, "bad-tenant", {"name": "Bo", "role": "CLIENT", "clientId": "gone"})

    assert resolve_caller(hub.store, "no-tenant").reason_code == "client_without_tenant"
    assert resolve_caller(hub.store, "bad-tenant").reason_code == "client_tenant_not_found"


def test_admin_and_client_resolve_to_role_variants() -> None:
    hub = _hub()
    client_id = hub.create_client(ADMIN, {"companyName": "Acme"})
    hub.save_user(ADMIN, "carla", {"email": "carla@acme.io", "clientId": client_id})

    admin = resolve_caller(hub.store, ADMIN)
    client = resolve_caller(hub.store, "carla")

    assert admin == Caller(subject_id=ADMIN, display_name="Ana Admin", role=AdminRole())
    assert isinstance(client, Caller)
    assert client.role == ClientRole(tenant_id=client_id)
    assert client.display_name == "carla@acme.io"
    assert client.tenant_id == client_id and not client.is_admin


def test_inactive_user_is_denied() -> None:
    hub = _hub()
    hub.save_user(ADMIN, "former", {"name": "Former", "role": "ADMIN", "isActive": False})

    with pytest.raises(AccessDeniedError) as excinfo:
        hub.list_projects("former")
    assert excinfo.value.reason_code == "inactive_user"


def test_pending_subject_cannot_run_scoped_reads() -> None:
    hub = _hub()

    with pytest.raises(PendingActivationError) as excinfo:
        hub.list_projects("ghost")
    assert excinfo.value.subject_id == "ghost"
    assert excinfo.value.reason_code == "pending_activation"


def test_deleted_user_falls_back_to_pending() -> None:
    hub = _hub()
    hub.save_user(ADMIN, "U9", {"name": "Nine", "role": "ADMIN"})
    hub.delete_user(ADMIN, "U9")

    assert isinstance(resolve_caller(hub.store, "U9"), PendingCaller)
    assert "U9" not in {user.id for user in hub.list_users(ADMIN)}
    deletions = [
        entry
        for entry in hub.list_audit(ADMIN)
        if entry.action == "DELETE_USER" and entry.entity_id == "U9"
    ]
    assert len(deletions) == 1
