"""Typed CRUD facade over the portal collections.

Creates stamp ``createdAt``/``updatedAt`` and let the store assign ids.
Updates are partial deep merges: only supplied keys are validated and
written, so a caller can never null out a field it did not mention.
Every successful mutation emits one audit event afterwards.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Callable, Iterable, TypeVar

from pydantic import TypeAdapter

from status_hub.access.scoping import AccessScope
from status_hub.audit import AuditRecorder, utc_now
from status_hub.models.entities import (
    AuditEntityType,
    AuditLog,
    ChangeRequest,
    ChangeRequestFields,
    Client,
    ClientFields,
    DocumentModel,
    Lead,
    LeadFields,
    LeadStatus,
    Project,
    ProjectFields,
    ProjectLog,
    ProjectLogFields,
    ProjectStatus,
    RequestStatus,
    User,
    UserFields,
    UserRole,
)
from status_hub.store.document_store import (
    CHANGE_REQUESTS,
    CLIENTS,
    LEADS,
    PROJECT_LOGS,
    PROJECTS,
    USERS,
    DocumentStore,
    Where,
)
from status_hub.workflow.state_machines import (
    INITIAL_REQUEST_STATUS,
    LEAD_TRANSITIONS,
    PROJECT_TRANSITIONS,
    REQUEST_TRANSITIONS,
    TransitionPolicy,
    coerce_status,
    creation_log,
    status_change_log,
)


M = TypeVar("M", bound=DocumentModel)

RECENT_LOG_WINDOW = 100
IMMUTABLE_FIELDS = {"id", "createdAt", "created_at", "updatedAt", "updated_at"}


@lru_cache(maxsize=None)
def _field_adapter(model: type[DocumentModel], name: str) -> TypeAdapter:
    info = model.model_fields[name]
    if info.metadata:
        return TypeAdapter(Annotated[(info.annotation, *info.metadata)])
    return TypeAdapter(info.annotation)


def normalize_patch(model: type[DocumentModel], patch: dict[str, Any]) -> dict[str, Any]:
    """Validate a partial update and return it keyed by document (camelCase) names."""

    lookup: dict[str, str] = {}
    for name, info in model.model_fields.items():
        lookup[name] = name
        lookup[info.alias or name] = name

    normalized: dict[str, Any] = {}
    for key, value in patch.items():
        if key in IMMUTABLE_FIELDS:
            raise ValueError(f"immutable_field:{key}")
        name = lookup.get(key)
        if name is None:
            raise ValueError(f"unknown_field:{model.__name__}:{key}")
        adapter = _field_adapter(model, name)
        validated = adapter.validate_python(value)
        alias = model.model_fields[name].alias or name
        normalized[alias] = adapter.dump_python(
            validated, mode="json", by_alias=True, exclude_unset=True
        )
    return normalized


def _without(fields: dict[str, Any], *names: str) -> dict[str, Any]:
    """Drop both snake_case and camelCase spellings of forced fields."""

    dropped = set(names)
    for name in names:
        head, *rest = name.split("_")
        dropped.add(head + "".join(part.title() for part in rest))
    return {key: value for key, value in fields.items() if key not in dropped}


def newest_first(items: Iterable[M]) -> list[M]:
    return sorted(
        items,
        key=lambda item: (getattr(item, "created_at", ""), getattr(item, "id", "")),
        reverse=True,
    )


class EntityStore:
    def __init__(
        self,
        store: DocumentStore,
        audit: AuditRecorder,
        policy: TransitionPolicy | None = None,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self.store = store
        self.audit = audit
        self.policy = policy or TransitionPolicy()
        self.clock = clock

    # -- helpers -----------------------------------------------------------

    def _insert(self, collection: str, fields: DocumentModel) -> str:
        now = self.clock()
        document = fields.to_document()
        document["createdAt"] = now
        document["updatedAt"] = now
        return self.store.insert(collection, document)

    def _merge(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        self.store.merge_update(collection, doc_id, {**patch, "updatedAt": self.clock()})

    def _require_existing(self, collection: str, doc_id: str, entity: str) -> None:
        # merge_update upserts; a stray id would leave a record no model can load.
        if self.store.get(collection, doc_id) is None:
            raise ValueError(f"unknown_{entity}:{doc_id}")

    def _get(self, collection: str, model: type[M], doc_id: str) -> M | None:
        row = self.store.get(collection, doc_id)
        return model.model_validate(row) if row is not None else None

    def _list(
        self,
        collection: str,
        model: type[M],
        where: list[Where] | None = None,
        limit: int | None = None,
    ) -> list[M]:
        rows = self.store.list(
            collection, where=where, order_by="createdAt", descending=True, limit=limit
        )
        return newest_first(model.model_validate(row) for row in rows)

    # -- clients -----------------------------------------------------------

    def create_client(self, fields: dict[str, Any], actor: str) -> str:
        client = ClientFields.model_validate(fields)
        client_id = self._insert(CLIENTS, client)
        self.audit.record(
            "CREATE_CLIENT",
            AuditEntityType.CLIENT,
            client_id,
            actor,
            f"Client {client.company_name} registered.",
        )
        return client_id

    def update_client(self, client_id: str, patch: dict[str, Any], actor: str) -> None:
        normalized = normalize_patch(ClientFields, patch)
        self._require_existing(CLIENTS, client_id, "client")
        self._merge(CLIENTS, client_id, normalized)
        self.audit.record(
            "UPDATE_CLIENT",
            AuditEntityType.CLIENT,
            client_id,
            actor,
            f"Fields updated: {', '.join(sorted(normalized))}",
        )

    def get_client(self, client_id: str) -> Client | None:
        return self._get(CLIENTS, Client, client_id)

    def list_clients(self, scope: AccessScope) -> list[Client]:
        clients = self._list(CLIENTS, Client, where=scope.client_filters())
        return [client for client in clients if scope.allows_client(client)]

    # -- projects ----------------------------------------------------------

    def create_project(self, fields: dict[str, Any], actor: str) -> str:
        project = ProjectFields.model_validate(
            {**_without(fields, "is_archived"), "isArchived": False}
        )
        project_id = self._insert(PROJECTS, project)
        self._insert_log(
            project_id,
            creation_log(project.status, project.visibility_for_client, actor),
        )
        self.audit.record(
            "CREATE_PROJECT",
            AuditEntityType.PROJECT,
            project_id,
            actor,
            f"Project {project.name} started.",
        )
        return project_id

    def update_project(self, project_id: str, patch: dict[str, Any], actor: str) -> None:
        """Merge project fields; a ``status`` key goes through the status transition."""

        self._require_existing(PROJECTS, project_id, "project")
        remaining = dict(patch)
        status = remaining.pop("status", None)
        if status is not None:
            coerce_status(ProjectStatus, status, "project")
        if remaining:
            normalized = normalize_patch(ProjectFields, remaining)
            self._merge(PROJECTS, project_id, normalized)
            self.audit.record(
                "UPDATE_PROJECT",
                AuditEntityType.PROJECT,
                project_id,
                actor,
                f"Fields updated: {', '.join(sorted(normalized))}",
            )
        if status is not None:
            self.change_project_status(project_id, status, actor)

    def change_project_status(self, project_id: str, status: Any, actor: str) -> bool:
        """Set a new project status and synthesize its UPDATE log.

        Returns ``False`` when the status is unchanged (no log, no audit).
        """

        project = self.get_project(project_id)
        if project is None:
            raise ValueError(f"unknown_project:{project_id}")
        target = coerce_status(ProjectStatus, status, "project")
        previous = project.status
        if target == previous:
            return False
        self.policy.check("project", PROJECT_TRANSITIONS, previous, target)

        self._merge(PROJECTS, project_id, {"status": target.value})
        self._insert_log(
            project_id,
            status_change_log(previous, target, project.visibility_for_client, actor),
        )
        self.audit.record(
            "UPDATE_PROJECT_STATUS",
            AuditEntityType.PROJECT,
            project_id,
            actor,
            f"{previous.value} -> {target.value}",
        )
        return True

    def set_project_archived(self, project_id: str, archived: bool, actor: str) -> None:
        self._require_existing(PROJECTS, project_id, "project")
        self._merge(PROJECTS, project_id, {"isArchived": bool(archived)})
        self.audit.record(
            "ARCHIVE_PROJECT" if archived else "UNARCHIVE_PROJECT",
            AuditEntityType.PROJECT,
            project_id,
            actor,
            "Project archived." if archived else "Project restored.",
        )

    def get_project(self, project_id: str) -> Project | None:
        return self._get(PROJECTS, Project, project_id)

    def list_projects(self, scope: AccessScope, include_archived: bool = False) -> list[Project]:
        projects = self._list(
            PROJECTS, Project, where=scope.project_filters(include_archived=include_archived)
        )
        return [
            project
            for project in projects
            if scope.allows_project(project, include_archived=include_archived)
        ]

    # -- project logs ------------------------------------------------------

    def _insert_log(self, project_id: str, draft: dict[str, Any]) -> str:
        log = ProjectLogFields.model_validate({**draft, "projectId": project_id})
        return self._insert(PROJECT_LOGS, log)

    def add_log(self, fields: dict[str, Any], actor: str) -> str:
        log = ProjectLogFields.model_validate(
            {**_without(fields, "created_by"), "createdBy": actor}
        )
        log_id = self._insert(PROJECT_LOGS, log)
        self.audit.record(
            "CREATE_LOG",
            AuditEntityType.LOG,
            log_id,
            actor,
            f"{log.log_type.value} log added to project {log.project_id}.",
        )
        return log_id

    def list_logs(
        self,
        scope: AccessScope,
        project_id: str | None = None,
        include_archived: bool = False,
    ) -> list[ProjectLog]:
        if scope.is_admin:
            if project_id is not None:
                return self._list(PROJECT_LOGS, ProjectLog, where=[Where("projectId", project_id)])
            return self._list(PROJECT_LOGS, ProjectLog, limit=RECENT_LOG_WINDOW)

        visible_ids = {
            project.id
            for project in self.list_projects(scope, include_archived=include_archived)
        }
        if project_id is not None:
            visible_ids &= {project_id}
        if not visible_ids:
            return []
        logs = self._list(PROJECT_LOGS, ProjectLog, where=scope.log_filters(visible_ids))
        return [log for log in logs if scope.allows_log(log, visible_ids)]

    # -- change requests ---------------------------------------------------

    def create_change_request(self, fields: dict[str, Any], actor: str) -> str:
        request = ChangeRequestFields.model_validate(
            {
                **_without(fields, "status", "admin_comment"),
                "status": INITIAL_REQUEST_STATUS.value,
                "adminComment": None,
            }
        )
        request_id = self._insert(CHANGE_REQUESTS, request)
        self.audit.record(
            "CREATE_REQUEST",
            AuditEntityType.REQUEST,
            request_id,
            actor,
            f"{request.type.value} request '{request.title}' opened.",
        )
        return request_id

    def transition_change_request(
        self,
        request_id: str,
        status: Any,
        admin_comment: str,
        actor: str,
    ) -> None:
        if not isinstance(admin_comment, str):
            raise ValueError("admin_comment_must_be_string")
        request = self.get_change_request(request_id)
        if request is None:
            raise ValueError(f"unknown_change_request:{request_id}")
        target = coerce_status(RequestStatus, status, "change_request")
        if target != request.status:
            self.policy.check("change_request", REQUEST_TRANSITIONS, request.status, target)

        self._merge(
            CHANGE_REQUESTS,
            request_id,
            {"status": target.value, "adminComment": admin_comment},
        )
        self.audit.record(
            "UPDATE_REQUEST_STATUS",
            AuditEntityType.REQUEST,
            request_id,
            actor,
            target.value,
        )

    def get_change_request(self, request_id: str) -> ChangeRequest | None:
        return self._get(CHANGE_REQUESTS, ChangeRequest, request_id)

    def list_change_requests(
        self, scope: AccessScope, client_id: str | None = None
    ) -> list[ChangeRequest]:
        where = scope.change_request_filters()
        if client_id is not None and scope.is_admin:
            where = [Where("clientId", client_id)]
        requests = self._list(CHANGE_REQUESTS, ChangeRequest, where=where)
        return [
            request
            for request in requests
            if scope.allows_change_request(request)
            and (client_id is None or request.client_id == client_id)
        ]

    # -- leads -------------------------------------------------------------

    def create_lead(self, fields: dict[str, Any], actor: str) -> str:
        lead = LeadFields.model_validate(fields)
        lead_id = self._insert(LEADS, lead)
        self.audit.record(
            "CREATE_LEAD",
            AuditEntityType.LEAD,
            lead_id,
            actor,
            f"Lead {lead.name} ({lead.status.value}) created.",
        )
        return lead_id

    def update_lead(self, lead_id: str, patch: dict[str, Any], actor: str) -> None:
        normalized = normalize_patch(LeadFields, patch)
        current = self.get_lead(lead_id)
        if current is None:
            raise ValueError(f"unknown_lead:{lead_id}")
        if "status" in normalized:
            target = coerce_status(LeadStatus, normalized["status"], "lead")
            if target != current.status:
                self.policy.check("lead", LEAD_TRANSITIONS, current.status, target)
        self._merge(LEADS, lead_id, normalized)
        self.audit.record(
            "UPDATE_LEAD",
            AuditEntityType.LEAD,
            lead_id,
            actor,
            f"Fields updated: {', '.join(sorted(normalized))}",
        )

    def get_lead(self, lead_id: str) -> Lead | None:
        return self._get(LEADS, Lead, lead_id)

    def list_leads(self) -> list[Lead]:
        return self._list(LEADS, Lead)

    # -- users -------------------------------------------------------------

    def save_user(self, user_id: str, fields: dict[str, Any], actor: str) -> None:
        """Upsert a user keyed by identity subject id; ADMIN users carry no tenant."""

        normalized = normalize_patch(UserFields, fields)
        existing = self.store.get(USERS, user_id)
        role = normalized.get("role") or (existing or {}).get("role") or UserRole.CLIENT.value
        if role == UserRole.ADMIN.value:
            normalized["clientId"] = None
        if existing is None:
            defaults = UserFields().to_document()
            normalized = {**defaults, **normalized, "role": role, "createdAt": self.clock()}
        self._merge(USERS, user_id, normalized)
        self.audit.record(
            "SAVE_USER",
            AuditEntityType.USER,
            user_id,
            actor,
            f"User {normalized.get('email') or user_id} created/updated.",
        )

    def get_user(self, user_id: str) -> User | None:
        return self._get(USERS, User, user_id)

    def list_users(self) -> list[User]:
        return self._list(USERS, User)

    def delete_user(self, user_id: str, actor: str) -> None:
        self.store.delete(USERS, user_id)
        self.audit.record(
            "DELETE_USER",
            AuditEntityType.USER,
            user_id,
            actor,
            "User access revoked.",
        )

    # -- audit -------------------------------------------------------------

    def list_audit(self, limit: int | None = 50) -> list[AuditLog]:
        return self.audit.list_recent(limit=limit)
