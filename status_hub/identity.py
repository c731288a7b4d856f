"""Map identity-provider subjects onto portal callers."""

from __future__ import annotations

import logging

from status_hub.errors import REASON_INACTIVE_USER, AccessDeniedError
from status_hub.models.entities import User, UserRole
from status_hub.models.roles import AdminRole, Caller, ClientRole, PendingCaller, ResolvedCaller
from status_hub.store.document_store import CLIENTS, USERS, DocumentStore


logger = logging.getLogger(__name__)

REASON_NO_USER_RECORD = "no_user_record"
REASON_NO_TENANT = "client_without_tenant"
REASON_UNKNOWN_TENANT = "client_tenant_not_found"


def resolve_caller(store: DocumentStore, subject_id: str) -> ResolvedCaller:
    """Resolve a subject id to a ``Caller`` or a ``PendingCaller``.

    A missing User record, or a CLIENT user whose tenant cannot be resolved,
    is the expected pending-activation state. A deactivated user is denied.
    """

    row = store.get(USERS, subject_id)
    if row is None:
        return PendingCaller(subject_id=subject_id, reason_code=REASON_NO_USER_RECORD)

    user = User.model_validate(row)
    if not user.is_active:
        raise AccessDeniedError(REASON_INACTIVE_USER)

    display_name = user.name or user.email or subject_id
    if user.role == UserRole.ADMIN:
        return Caller(subject_id=subject_id, display_name=display_name, role=AdminRole())

    if not user.client_id:
        return PendingCaller(subject_id=subject_id, reason_code=REASON_NO_TENANT)
    if store.get(CLIENTS, user.client_id) is None:
        logger.info("Client user %s references missing tenant %s", subject_id, user.client_id)
        return PendingCaller(subject_id=subject_id, reason_code=REASON_UNKNOWN_TENANT)
    return Caller(
        subject_id=subject_id,
        display_name=display_name,
        role=ClientRole(tenant_id=user.client_id),
    )
