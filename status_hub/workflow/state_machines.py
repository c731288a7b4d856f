"""Project, ticket and lead lifecycles.

Each lifecycle is an explicit allow-list: ``{from_status: {to_status, ...}}``.
Project moves are advisory unless the policy is strict; tickets and leads
are checked against their tables only in strict mode as well, so the default
behaviour matches "any admin may set any status".

Project status changes also synthesize a ProjectLog draft here so the
"one log per change" rule lives next to the table that defines a change.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from status_hub.errors import InvalidTransitionError
from status_hub.models.entities import (
    LeadStatus,
    LogType,
    ProjectStatus,
    RequestStatus,
)


E = TypeVar("E", bound=Enum)

_PROJECT_FLOW = (
    ProjectStatus.IDEA,
    ProjectStatus.DEVELOPMENT,
    ProjectStatus.TESTING,
    ProjectStatus.PRODUCTION,
    ProjectStatus.MAINTENANCE,
)


def _project_transitions() -> dict[ProjectStatus, frozenset[ProjectStatus]]:
    table: dict[ProjectStatus, frozenset[ProjectStatus]] = {}
    for index, status in enumerate(_PROJECT_FLOW):
        targets = {ProjectStatus.PAUSED, ProjectStatus.FINISHED}
        if index + 1 < len(_PROJECT_FLOW):
            targets.add(_PROJECT_FLOW[index + 1])
        table[status] = frozenset(targets)
    # Resuming a paused project may land on any stage of the main flow.
    table[ProjectStatus.PAUSED] = frozenset({*_PROJECT_FLOW, ProjectStatus.FINISHED})
    table[ProjectStatus.FINISHED] = frozenset()
    return table


PROJECT_TRANSITIONS = _project_transitions()

REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.OPEN: frozenset({RequestStatus.REVIEWING}),
    RequestStatus.REVIEWING: frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED}),
    RequestStatus.APPROVED: frozenset({RequestStatus.DONE}),
    RequestStatus.REJECTED: frozenset({RequestStatus.DONE}),
    RequestStatus.DONE: frozenset(),
}

LEAD_TRANSITIONS: dict[LeadStatus, frozenset[LeadStatus]] = {
    LeadStatus.PROSPECT: frozenset({LeadStatus.NEGOTIATING, LeadStatus.LOST}),
    LeadStatus.NEGOTIATING: frozenset({LeadStatus.PROPOSAL_SENT, LeadStatus.LOST}),
    LeadStatus.PROPOSAL_SENT: frozenset({LeadStatus.WON, LeadStatus.LOST}),
    LeadStatus.WON: frozenset(),
    LeadStatus.LOST: frozenset(),
}

INITIAL_REQUEST_STATUS = RequestStatus.OPEN


def coerce_status(enum_type: type[E], value: Any, entity: str) -> E:
    try:
        return enum_type(value)
    except ValueError as exc:
        raise InvalidTransitionError(entity, "?", str(value)) from exc


def validate_transition(
    table: dict[E, frozenset[E]],
    current: E,
    target: E,
) -> dict[str, Any]:
    """Check ``current -> target`` against an allow-list table.

    Returns ``{"valid", "from", "to", "reason"}``; never raises.
    """

    allowed = table.get(current, frozenset())
    if target in allowed:
        return {"valid": True, "from": current.value, "to": target.value, "reason": None}
    return {
        "valid": False,
        "from": current.value,
        "to": target.value,
        "reason": f"Cannot move from '{current.value}' to '{target.value}'",
    }


@dataclass(frozen=True)
class TransitionPolicy:
    strict: bool = False

    def check(self, entity: str, table: dict[E, frozenset[E]], current: E, target: E) -> None:
        if not self.strict:
            return
        result = validate_transition(table, current, target)
        if not result["valid"]:
            raise InvalidTransitionError(entity, result["from"], result["to"])


def creation_log(status: ProjectStatus, visible_to_client: bool, author: str) -> dict[str, Any]:
    return {
        "logType": LogType.MILESTONE.value,
        "title": "Project created",
        "description": f"Project initialized with status: {status.value}",
        "visibleToClient": visible_to_client,
        "createdBy": author,
    }


def status_change_log(
    previous: ProjectStatus,
    current: ProjectStatus,
    visible_to_client: bool,
    author: str,
) -> dict[str, Any]:
    return {
        "logType": LogType.UPDATE.value,
        "title": "Status changed",
        "description": f"Project status changed from {previous.value} to {current.value}",
        "visibleToClient": visible_to_client,
        "createdBy": author,
    }
