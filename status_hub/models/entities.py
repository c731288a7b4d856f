"""Pydantic contracts for the portal entities and their lifecycle enums."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from status_hub.models.roles import InternalOwner, Owner, TenantOwner


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    CLIENT = "CLIENT"


class ProjectStatus(str, Enum):
    IDEA = "IDEA"
    DEVELOPMENT = "DEVELOPMENT"
    TESTING = "TESTING"
    PRODUCTION = "PRODUCTION"
    MAINTENANCE = "MAINTENANCE"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"


class LogType(str, Enum):
    UPDATE = "UPDATE"
    ISSUE = "ISSUE"
    MILESTONE = "MILESTONE"
    NOTE = "NOTE"


class RequestType(str, Enum):
    BUG = "BUG"
    IMPROVEMENT = "IMPROVEMENT"
    NEW_FEATURE = "NEW_FEATURE"


class RequestStatus(str, Enum):
    OPEN = "OPEN"
    REVIEWING = "REVIEWING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DONE = "DONE"


class LeadStatus(str, Enum):
    PROSPECT = "PROSPECT"
    NEGOTIATING = "NEGOTIATING"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    WON = "WON"
    LOST = "LOST"


class AuditEntityType(str, Enum):
    PROJECT = "PROJECT"
    CLIENT = "CLIENT"
    USER = "USER"
    REQUEST = "REQUEST"
    LEAD = "LEAD"
    LOG = "LOG"


class DocumentModel(BaseModel):
    """Base for store documents: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        use_enum_values=False,
    )

    def to_document(self, **kwargs) -> dict:
        return self.model_dump(by_alias=True, mode="json", **kwargs)


class StoredRecord(DocumentModel):
    id: str = Field(min_length=1)
    created_at: str
    updated_at: str = ""


class LighthouseMetrics(DocumentModel):
    performance: int | None = Field(default=None, ge=0, le=100)
    accessibility: int | None = Field(default=None, ge=0, le=100)
    best_practices: int | None = Field(default=None, ge=0, le=100)
    seo: int | None = Field(default=None, ge=0, le=100)


class ProjectUrls(DocumentModel):
    production: str = ""
    staging: str = ""
    repository: str = ""
    design: str = ""
    docs: str = ""


class UserFields(DocumentModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    role: UserRole = UserRole.CLIENT
    is_active: bool = True
    client_id: str | None = None


class User(UserFields, StoredRecord):
    pass


class ClientFields(DocumentModel):
    company_name: str = Field(min_length=1)
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    notes: str = ""
    is_vip: bool = False


class Client(ClientFields, StoredRecord):
    pass


class ProjectFields(DocumentModel):
    name: str = Field(min_length=1)
    description: str = ""
    client_id: str | None = None
    project_type: str = ""
    stack: str = ""
    urls: ProjectUrls = Field(default_factory=ProjectUrls)
    status: ProjectStatus = ProjectStatus.IDEA
    visibility_for_client: bool = False
    lighthouse_metrics: LighthouseMetrics | None = None
    start_date: str = ""
    expected_end_date: str = ""
    is_archived: bool = False


class Project(ProjectFields, StoredRecord):
    @property
    def owner(self) -> Owner:
        if self.client_id:
            return TenantOwner(tenant_id=self.client_id)
        return InternalOwner()


class ProjectLogFields(DocumentModel):
    project_id: str = Field(min_length=1)
    log_type: LogType = LogType.NOTE
    title: str = ""
    description: str = ""
    visible_to_client: bool = False
    created_by: str = ""


class ProjectLog(ProjectLogFields, StoredRecord):
    pass


class ChangeRequestFields(DocumentModel):
    project_id: str = Field(min_length=1)
    client_id: str = Field(min_length=1)
    type: RequestType = RequestType.IMPROVEMENT
    title: str = Field(min_length=1)
    description: str = ""
    status: RequestStatus = RequestStatus.OPEN
    admin_comment: str | None = None


class ChangeRequest(ChangeRequestFields, StoredRecord):
    pass


class LeadFields(DocumentModel):
    name: str = Field(min_length=1)
    company: str = ""
    email: str = ""
    phone: str = ""
    status: LeadStatus = LeadStatus.PROSPECT
    estimated_value: float = Field(default=0.0, ge=0)
    notes: str = ""


class Lead(LeadFields, StoredRecord):
    pass


class AuditLog(DocumentModel):
    id: str = Field(min_length=1)
    action: str
    entity_type: AuditEntityType
    entity_id: str
    user_name: str = ""
    details: str = ""
    created_at: str
