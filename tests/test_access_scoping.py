import pytest

from status_hub.access.scoping import AccessScope, scope_for
from status_hub.app import StatusHubApp
from status_hub.errors import AccessDeniedError
from status_hub.models.entities import Project, ProjectLog
from status_hub.models.roles import AdminRole, ClientRole, InternalOwner
from status_hub.store import InMemoryDocumentStore, Where

ADMIN = "admin-1"
CARLA = "client-carla"
OTTO = "client-otto"


def _hub() -> tuple[StatusHubApp, str, str]:
    hub = StatusHubApp(store=InMemoryDocumentStore())
    hub.entities.save_user(ADMIN, {"name": "Ana Admin", "role": "ADMIN"}, actor="bootstrap")
    c1 = hub.create_client(ADMIN, {"companyName": "Acme"})
    c2 = hub.create_client(ADMIN, {"companyName": "Globex"})
    hub.save_user(ADMIN, CARLA, {"name": "Carla", "role": "CLIENT", "clientId": c1})
    hub.save_user(ADMIN, OTTO, {"name": "Otto", "role": "CLIENT", "clientId": c2})
    return hub, c1, c2


def _project(**overrides) -> Project:
    payload = {
        "id": "p1",
        "createdAt": "2026-01-01T00:00:00+00:00",
        "name": "Portal",
        "clientId": "c1",
        "visibilityForClient": True,
    }
    payload.update(overrides)
    return Project.model_validate(payload)


def test_client_scope_pushes_tenant_and_visibility_filters() -> None:
    scope = scope_for(ClientRole(tenant_id="c1"))

    assert scope.project_filters() == [
        Where("clientId", "c1"),
        Where("visibilityForClient", True),
    ]
    assert scope.change_request_filters() == [Where("clientId", "c1")]
    assert scope.log_filters(["p2", "p1", "p1"]) == [
        Where("projectId", ["p1", "p2"], op="in"),
        Where("visibleToClient", True),
    ]


def test_admin_scope_has_no_tenant_filters() -> None:
    scope = scope_for(AdminRole())

    assert scope.project_filters() == [Where("isArchived", False)]
    assert scope.project_filters(include_archived=True) == []
    assert scope.log_filters(["p1"]) == []
    assert scope.can_read_users and scope.can_read_leads and scope.can_read_audit


def test_client_predicate_rejects_internal_hidden_and_foreign_projects() -> None:
    scope = AccessScope(role=ClientRole(tenant_id="c1"))

    assert scope.allows_project(_project())
    assert not scope.allows_project(_project(clientId=None))
    assert not scope.allows_project(_project(visibilityForClient=False))
    assert not scope.allows_project(_project(clientId="c2"))
    assert scope.allows_project(_project(isArchived=True))
    assert not scope.allows_project(_project(clientId=""))


def test_blank_tenant_never_matches_an_internal_project() -> None:
    scope = AccessScope(role=ClientRole(tenant_id=""))

    assert _project(clientId="").owner == InternalOwner()
    assert not scope.allows_project(_project(clientId=""))


def test_client_predicate_rejects_hidden_log_under_visible_project() -> None:
    scope = AccessScope(role=ClientRole(tenant_id="c1"))
    log = ProjectLog.model_validate(
        {"id": "l1", "createdAt": "x", "projectId": "p1", "visibleToClient": False}
    )

    assert not scope.allows_log(log, {"p1"})
    assert scope.allows_log(log.model_copy(update={"visible_to_client": True}), {"p1"})
    assert not scope.allows_log(log.model_copy(update={"visible_to_client": True}), {"p2"})


def test_scope_for_rejects_client_role_without_tenant() -> None:
    with pytest.raises(ValueError, match="client_role_requires_tenant_id"):
        scope_for(ClientRole(tenant_id=""))


def test_client_sees_only_visible_tenant_project() -> None:
    hub, c1, _ = _hub()
    p1 = hub.create_project(ADMIN, {"name": "P1", "clientId": c1, "visibilityForClient": True})
    hub.create_project(ADMIN, {"name": "P2", "clientId": c1, "visibilityForClient": False})

    assert [project.id for project in hub.list_projects(CARLA)] == [p1]


def test_internal_project_never_reaches_a_client() -> None:
    hub, c1, _ = _hub()
    internal = hub.create_project(ADMIN, {"name": "Ops", "visibilityForClient": True})
    hub.create_project(ADMIN, {"name": "Shared", "clientId": c1, "visibilityForClient": True})

    for subject in (CARLA, OTTO):
        assert internal not in {project.id for project in hub.list_projects(subject)}
        assert all(log.project_id != internal for log in hub.list_logs(subject))
    assert hub.get_project(CARLA, internal) is None
    assert hub.get_project(ADMIN, internal) is not None


def test_hidden_logs_stay_hidden_under_visible_projects() -> None:
    hub, c1, _ = _hub()
    p1 = hub.create_project(ADMIN, {"name": "P1", "clientId": c1, "visibilityForClient": True})
    hub.add_log(ADMIN, {"projectId": p1, "title": "Internal note", "visibleToClient": False})
    hub.add_log(ADMIN, {"projectId": p1, "title": "Demo ready", "visibleToClient": True})

    titles = {log.title for log in hub.list_logs(CARLA)}

    assert "Demo ready" in titles
    assert "Internal note" not in titles
    assert "Internal note" in {log.title for log in hub.list_logs(ADMIN, project_id=p1)}


def test_logs_of_hidden_project_are_not_visible_even_when_flagged() -> None:
    hub, c1, _ = _hub()
    hidden = hub.create_project(ADMIN, {"name": "P2", "clientId": c1})
    hub.add_log(ADMIN, {"projectId": hidden, "title": "Leaky", "visibleToClient": True})

    assert hub.list_logs(CARLA) == []
    assert hub.list_logs(CARLA, project_id=hidden) == []


def test_zero_visible_projects_yield_empty_reads() -> None:
    hub, _, _ = _hub()

    assert hub.list_projects(OTTO) == []
    assert hub.list_logs(OTTO) == []
    assert hub.list_change_requests(OTTO) == []


def test_change_requests_and_clients_are_tenant_scoped() -> None:
    hub, c1, c2 = _hub()
    p1 = hub.create_project(ADMIN, {"name": "P1", "clientId": c1, "visibilityForClient": True})
    p2 = hub.create_project(ADMIN, {"name": "P2", "clientId": c2, "visibilityForClient": True})
    hub.create_change_request(CARLA, {"projectId": p1, "title": "Dark mode", "type": "NEW_FEATURE"})
    hub.create_change_request(OTTO, {"projectId": p2, "title": "Typo", "type": "BUG"})

    assert [request.title for request in hub.list_change_requests(CARLA)] == ["Dark mode"]
    assert [client.id for client in hub.list_clients(CARLA)] == [c1]
    assert hub.get_client(CARLA, c2) is None
    assert len(hub.list_change_requests(ADMIN)) == 2
    assert [r.title for r in hub.list_change_requests(ADMIN, client_id=c2)] == ["Typo"]


def test_ticket_stays_visible_after_project_is_hidden() -> None:
    hub, c1, _ = _hub()
    p1 = hub.create_project(ADMIN, {"name": "P1", "clientId": c1, "visibilityForClient": True})
    hub.create_change_request(CARLA, {"projectId": p1, "title": "Export CSV"})
    hub.update_project(ADMIN, p1, {"visibilityForClient": False})

    assert hub.list_projects(CARLA) == []
    assert [request.title for request in hub.list_change_requests(CARLA)] == ["Export CSV"]


def test_archived_projects_leave_admin_listing_but_stay_with_client() -> None:
    hub, c1, _ = _hub()
    p1 = hub.create_project(ADMIN, {"name": "P1", "clientId": c1, "visibilityForClient": True})
    hub.add_log(ADMIN, {"projectId": p1, "title": "Launch", "visibleToClient": True})
    hub.archive_project(ADMIN, p1)

    assert hub.list_projects(ADMIN) == []
    assert [project.id for project in hub.list_projects(CARLA)] == [p1]
    assert "Launch" in {log.title for log in hub.list_logs(CARLA)}
    assert [project.id for project in hub.list_projects(ADMIN, include_archived=True)] == [p1]
    assert [project.id for project in hub.list_projects(CARLA, include_archived=True)] == [p1]

    hub.archive_project(ADMIN, p1, archived=False)
    assert [project.id for project in hub.list_projects(ADMIN)] == [p1]


def test_clients_cannot_read_admin_aggregates() -> None:
    hub, _, _ = _hub()

    for read in (hub.list_users, hub.list_leads, hub.list_audit):
        with pytest.raises(AccessDeniedError) as excinfo:
            read(CARLA)
        assert excinfo.value.reason_code == "admin_required"


def test_predicate_filters_records_a_store_failed_to_narrow() -> None:
    class _IgnoringStore(InMemoryDocumentStore):
        def list(self, collection, where=None, order_by=None, descending=False, limit=None):
            return super().list(collection, None, order_by, descending, limit)

    hub = StatusHubApp(store=_IgnoringStore())
    hub.entities.save_user(ADMIN, {"name": "Ana", "role": "ADMIN"}, actor="bootstrap")
    c1 = hub.create_client(ADMIN, {"companyName": "Acme"})
    hub.save_user(ADMIN, CARLA, {"role": "CLIENT", "clientId": c1})
    p1 = hub.create_project(ADMIN, {"name": "P1", "clientId": c1, "visibilityForClient": True})
    hub.create_project(ADMIN, {"name": "P2", "clientId": c1})
    hub.create_project(ADMIN, {"name": "Internal"})

    assert [project.id for project in hub.list_projects(CARLA)] == [p1]
    assert [client.id for client in hub.list_clients(CARLA)] == [c1]


@pytest.mark.parametrize(
    ("flag", "read"),
    [
        ("can_read_users", "list_users"),
        ("can_read_leads", "list_leads"),
        ("can_read_audit", "list_audit"),
    ],
)
def test_admin_aggregate_reads_are_gated_by_scope(
    monkeypatch: pytest.MonkeyPatch, flag: str, read: str
) -> None:
    hub, _, _ = _hub()
    monkeypatch.setattr(AccessScope, flag, property(lambda self: False))

    with pytest.raises(AccessDeniedError) as excinfo:
        getattr(hub, read)(ADMIN)
    assert excinfo.value.reason_code == "admin_required"
