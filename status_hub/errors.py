"""Error taxonomy shared by the scoping, workflow and store layers."""

from __future__ import annotations


REASON_ADMIN_REQUIRED = "admin_required"
REASON_CLIENT_REQUIRED = "client_required"
REASON_PROJECT_NOT_VISIBLE = "project_not_visible"
REASON_INACTIVE_USER = "inactive_user"
REASON_PENDING_ACTIVATION = "pending_activation"


class AccessDeniedError(PermissionError):
    """Caller role or tenant does not permit the requested read or write."""

    def __init__(self, reason_code: str, message: str = "") -> None:
        super().__init__(message or f"Access denied: {reason_code}")
        self.reason_code = reason_code


class PendingActivationError(PermissionError):
    """Authenticated subject with no usable User record."""

    reason_code = REASON_PENDING_ACTIVATION

    def __init__(self, subject_id: str) -> None:
        super().__init__(f"Identity pending activation: {subject_id}")
        self.subject_id = subject_id


class InvalidTransitionError(ValueError):
    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(f"invalid_transition:{entity}:{current}->{target}")
        self.entity = entity
        self.current = current
        self.target = target


class StoreUnavailableError(RuntimeError):
    """Document store could not be reached or refused the operation."""

    def __init__(self, message: str, reason_code: str = "store_unavailable") -> None:
        super().__init__(message)
        self.reason_code = reason_code


class TextGenerationError(RuntimeError):
    def __init__(self, message: str, reason_code: str = "generation_failed") -> None:
        super().__init__(message)
        self.reason_code = reason_code
