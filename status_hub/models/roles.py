"""Tagged variants for caller roles, project ownership and resolved identities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class AdminRole:
    pass


@dataclass(frozen=True)
class ClientRole:
    tenant_id: str


Role = Union[AdminRole, ClientRole]


@dataclass(frozen=True)
class InternalOwner:
    """Project with no tenant: admin-only."""


@dataclass(frozen=True)
class TenantOwner:
    tenant_id: str


Owner = Union[InternalOwner, TenantOwner]


@dataclass(frozen=True)
class Caller:
    """An authenticated subject mapped to an active User record."""

    subject_id: str
    display_name: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return isinstance(self.role, AdminRole)

    @property
    def tenant_id(self) -> str | None:
        if isinstance(self.role, ClientRole):
            return self.role.tenant_id
        return None


@dataclass(frozen=True)
class PendingCaller:
    """Valid session without a usable User record ("pending activation")."""

    subject_id: str
    reason_code: str


ResolvedCaller = Union[Caller, PendingCaller]
