"""Role-scoped visibility rules for every entity collection.

A scope is derived from the caller role alone and holds no mutable state. It
produces two things per collection:

- push-down ``Where`` filters the store can use to narrow the fetch, and
- an in-process predicate that is always applied to what the store returns.

The predicate is authoritative. A store that ignores or mis-applies a filter
can return too much, but never leak it past the scope.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from status_hub.models.entities import ChangeRequest, Client, Project, ProjectLog
from status_hub.models.roles import AdminRole, ClientRole, Role, TenantOwner
from status_hub.store.document_store import Where


@dataclass(frozen=True)
class AccessScope:
    role: Role

    @property
    def is_admin(self) -> bool:
        return isinstance(self.role, AdminRole)

    @property
    def tenant_id(self) -> str | None:
        return self.role.tenant_id if isinstance(self.role, ClientRole) else None

    # Admin-only aggregates.

    @property
    def can_read_users(self) -> bool:
        return self.is_admin

    @property
    def can_read_leads(self) -> bool:
        return self.is_admin

    @property
    def can_read_audit(self) -> bool:
        return self.is_admin

    # Projects. Archived ones are an admin listing default; a tenant keeps
    # seeing its client-visible projects after they are archived.

    def project_filters(self, include_archived: bool = False) -> list[Where]:
        if self.is_admin:
            return [] if include_archived else [Where("isArchived", False)]
        return [Where("clientId", self.tenant_id), Where("visibilityForClient", True)]

    def allows_project(self, project: Project, include_archived: bool = False) -> bool:
        if self.is_admin:
            return include_archived or not project.is_archived
        return project.owner == TenantOwner(self.tenant_id) and project.visibility_for_client

    # Project logs. ``visible_project_ids`` comes from a scoped project read.

    def log_filters(self, visible_project_ids: Iterable[str]) -> list[Where]:
        if self.is_admin:
            return []
        return [
            Where("projectId", sorted(set(visible_project_ids)), op="in"),
            Where("visibleToClient", True),
        ]

    def allows_log(self, log: ProjectLog, visible_project_ids: Iterable[str]) -> bool:
        if self.is_admin:
            return True
        return log.visible_to_client and log.project_id in set(visible_project_ids)

    # Change requests carry no visibility gate for their own tenant.

    def change_request_filters(self) -> list[Where]:
        if self.is_admin:
            return []
        return [Where("clientId", self.tenant_id)]

    def allows_change_request(self, request: ChangeRequest) -> bool:
        if self.is_admin:
            return True
        return request.client_id == self.tenant_id

    # Tenants.

    def client_filters(self) -> list[Where]:
        if self.is_admin:
            return []
        return [Where("id", self.tenant_id)]

    def allows_client(self, client: Client) -> bool:
        return self.is_admin or client.id == self.tenant_id


def scope_for(role: Role) -> AccessScope:
    if isinstance(role, ClientRole) and not role.tenant_id:
        raise ValueError("client_role_requires_tenant_id")
    return AccessScope(role=role)
