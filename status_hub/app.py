"""Portal application facade: caller resolution, authorization and wiring."""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Sequence

from status_hub.access.scoping import AccessScope, scope_for
from status_hub.audit import AuditRecorder, utc_now
from status_hub.context.context_pack import build_context_pack
from status_hub.entity_store import EntityStore
from status_hub.errors import (
    REASON_ADMIN_REQUIRED,
    REASON_CLIENT_REQUIRED,
    REASON_PROJECT_NOT_VISIBLE,
    AccessDeniedError,
    PendingActivationError,
)
from status_hub.identity import resolve_caller
from status_hub.llm.providers import TextGenerator, build_text_generator_from_env
from status_hub.llm.service import ask_assistant
from status_hub.models.entities import (
    AuditLog,
    ChangeRequest,
    Client,
    Lead,
    Project,
    ProjectLog,
    User,
)
from status_hub.models.roles import Caller, PendingCaller, ResolvedCaller
from status_hub.shared.settings import AssistantSettings, WorkflowSettings
from status_hub.store import DocumentStore, InMemoryDocumentStore, build_store_from_env
from status_hub.workflow.state_machines import TransitionPolicy


logger = logging.getLogger(__name__)


class StatusHubApp:
    """Thin callable facade; every operation takes the acting subject id first."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        generator: TextGenerator | None = None,
        assistant_settings: AssistantSettings | None = None,
        workflow_settings: WorkflowSettings | None = None,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self.store = store if store is not None else InMemoryDocumentStore()
        self.assistant_settings = assistant_settings or AssistantSettings.from_env({})
        self.workflow_settings = workflow_settings or WorkflowSettings(strict_transitions=False)
        self.generator = generator or build_text_generator_from_env({})
        self.audit = AuditRecorder(self.store, clock=clock)
        self.entities = EntityStore(
            self.store,
            self.audit,
            policy=TransitionPolicy(strict=self.workflow_settings.strict_transitions),
            clock=clock,
        )

    # -- callers -----------------------------------------------------------

    def resolve(self, subject_id: str) -> ResolvedCaller:
        return resolve_caller(self.store, subject_id)

    def _require_caller(self, subject_id: str) -> Caller:
        caller = self.resolve(subject_id)
        if isinstance(caller, PendingCaller):
            raise PendingActivationError(subject_id)
        return caller

    def _require_admin(self, subject_id: str) -> Caller:
        caller = self._require_caller(subject_id)
        if not caller.is_admin:
            raise AccessDeniedError(REASON_ADMIN_REQUIRED)
        return caller

    def _require_client(self, subject_id: str) -> Caller:
        caller = self._require_caller(subject_id)
        if caller.is_admin:
            raise AccessDeniedError(REASON_CLIENT_REQUIRED)
        return caller

    def _scope(self, subject_id: str) -> AccessScope:
        return scope_for(self._require_caller(subject_id).role)

    # -- clients -----------------------------------------------------------

    def create_client(self, subject_id: str, fields: dict[str, Any]) -> str:
        caller = self._require_admin(subject_id)
        return self.entities.create_client(fields, actor=caller.display_name)

    def update_client(self, subject_id: str, client_id: str, patch: dict[str, Any]) -> None:
        caller = self._require_admin(subject_id)
        self.entities.update_client(client_id, patch, actor=caller.display_name)

    def get_client(self, subject_id: str, client_id: str) -> Client | None:
        scope = self._scope(subject_id)
        client = self.entities.get_client(client_id)
        if client is None or not scope.allows_client(client):
            return None
        return client

    def list_clients(self, subject_id: str) -> list[Client]:
        return self.entities.list_clients(self._scope(subject_id))

    # -- projects ----------------------------------------------------------

    def create_project(self, subject_id: str, fields: dict[str, Any]) -> str:
        caller = self._require_admin(subject_id)
        return self.entities.create_project(fields, actor=caller.display_name)

    def update_project(self, subject_id: str, project_id: str, patch: dict[str, Any]) -> None:
        caller = self._require_admin(subject_id)
        self.entities.update_project(project_id, patch, actor=caller.display_name)

    def change_project_status(self, subject_id: str, project_id: str, status: str) -> bool:
        caller = self._require_admin(subject_id)
        return self.entities.change_project_status(project_id, status, actor=caller.display_name)

    def archive_project(self, subject_id: str, project_id: str, archived: bool = True) -> None:
        caller = self._require_admin(subject_id)
        self.entities.set_project_archived(project_id, archived, actor=caller.display_name)

    def get_project(
        self, subject_id: str, project_id: str, include_archived: bool = False
    ) -> Project | None:
        scope = self._scope(subject_id)
        project = self.entities.get_project(project_id)
        if project is None or not scope.allows_project(project, include_archived=include_archived):
            return None
        return project

    def list_projects(self, subject_id: str, include_archived: bool = False) -> list[Project]:
        return self.entities.list_projects(
            self._scope(subject_id), include_archived=include_archived
        )

    # -- project logs ------------------------------------------------------

    def add_log(self, subject_id: str, fields: dict[str, Any]) -> str:
        caller = self._require_admin(subject_id)
        return self.entities.add_log(fields, actor=caller.display_name)

    def list_logs(
        self,
        subject_id: str,
        project_id: str | None = None,
        include_archived: bool = False,
    ) -> list[ProjectLog]:
        return self.entities.list_logs(
            self._scope(subject_id), project_id=project_id, include_archived=include_archived
        )

    # -- change requests ---------------------------------------------------

    def create_change_request(self, subject_id: str, fields: dict[str, Any]) -> str:
        """Open a ticket as a client against one of its visible projects."""

        caller = self._require_client(subject_id)
        scope = scope_for(caller.role)
        project_id = fields.get("projectId") or fields.get("project_id")
        project = self.entities.get_project(project_id) if project_id else None
        if project is None or not scope.allows_project(project):
            raise AccessDeniedError(REASON_PROJECT_NOT_VISIBLE)

        payload = {
            key: value
            for key, value in fields.items()
            if key not in {"clientId", "client_id", "projectId", "project_id"}
        }
        payload["projectId"] = project.id
        payload["clientId"] = scope.tenant_id
        return self.entities.create_change_request(payload, actor=caller.display_name)

    def transition_change_request(
        self,
        subject_id: str,
        request_id: str,
        status: str,
        admin_comment: str = "",
    ) -> None:
        caller = self._require_admin(subject_id)
        self.entities.transition_change_request(
            request_id, status, admin_comment, actor=caller.display_name
        )

    def list_change_requests(
        self, subject_id: str, client_id: str | None = None
    ) -> list[ChangeRequest]:
        return self.entities.list_change_requests(self._scope(subject_id), client_id=client_id)

    # -- leads -------------------------------------------------------------

    def create_lead(self, subject_id: str, fields: dict[str, Any]) -> str:
        caller = self._require_admin(subject_id)
        return self.entities.create_lead(fields, actor=caller.display_name)

    def update_lead(self, subject_id: str, lead_id: str, patch: dict[str, Any]) -> None:
        caller = self._require_admin(subject_id)
        self.entities.update_lead(lead_id, patch, actor=caller.display_name)

    def list_leads(self, subject_id: str) -> list[Lead]:
        if not self._scope(subject_id).can_read_leads:
            raise AccessDeniedError(REASON_ADMIN_REQUIRED)
        return self.entities.list_leads()

    # -- users -------------------------------------------------------------

    def save_user(self, subject_id: str, user_id: str, fields: dict[str, Any]) -> None:
        caller = self._require_admin(subject_id)
        self.entities.save_user(user_id, fields, actor=caller.display_name)

    def list_users(self, subject_id: str) -> list[User]:
        if not self._scope(subject_id).can_read_users:
            raise AccessDeniedError(REASON_ADMIN_REQUIRED)
        return self.entities.list_users()

    def delete_user(self, subject_id: str, user_id: str) -> None:
        caller = self._require_admin(subject_id)
        self.entities.delete_user(user_id, actor=caller.display_name)

    # -- audit -------------------------------------------------------------

    def list_audit(self, subject_id: str, limit: int | None = 50) -> list[AuditLog]:
        if not self._scope(subject_id).can_read_audit:
            raise AccessDeniedError(REASON_ADMIN_REQUIRED)
        return self.entities.list_audit(limit=limit)

    # -- assistant ---------------------------------------------------------

    def context_pack(self, subject_id: str, include_archived: bool = False) -> dict[str, Any]:
        return build_context_pack(
            self.entities,
            self.resolve(subject_id),
            include_archived=include_archived,
            char_budget=self.assistant_settings.context_budget,
        )

    def ask(
        self,
        subject_id: str,
        prompt: str,
        history: Sequence[dict[str, str]] | None = None,
    ) -> dict[str, Any]:
        context = self.context_pack(subject_id)
        reply = ask_assistant(self.generator, context, prompt, history=history)
        logger.info(
            "Assistant reply for %s: %s",
            subject_id,
            reply.state,
            extra={"subject_id": subject_id, "state": reply.state},
        )
        return reply.as_dict()


def create_app(env: dict[str, str] | None = None) -> StatusHubApp:
    source = dict(os.environ) if env is None else env
    return StatusHubApp(
        store=build_store_from_env(source),
        generator=build_text_generator_from_env(source),
        assistant_settings=AssistantSettings.from_env(source),
        workflow_settings=WorkflowSettings.from_env(source),
    )
