"""Domain error taxonomy shared by repositories, services and routers.

Every error carries two flags used at the API boundary:
- retryable: the same request may succeed later (storage or remote outage)
- status_code: HTTP status used when the error reaches a router
"""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for domain errors."""

    retryable: bool = False
    status_code: int = 400

    def __init__(self, message: str, **context: object):
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def code(self) -> str:
        return type(self).__name__


class NotFoundError(DomainError):
    """Entity, version or policy absent."""

    status_code = 404

    def __init__(self, message: str, entity_type: str | None = None, entity_id: str | None = None):
        super().__init__(message, entity_type=entity_type, entity_id=entity_id)
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(DomainError):
    """Precondition on domain state failed (wrong status, empty line items, empty scope)."""

    status_code = 422

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, field=field)
        self.field = field


class InvalidStateTransitionError(DomainError):
    """Attempted transition is not permitted from the current status."""

    status_code = 409

    def __init__(self, message: str, from_state: str | None = None, to_state: str | None = None):
        super().__init__(message, from_state=from_state, to_state=to_state)
        self.from_state = from_state
        self.to_state = to_state


class PersistenceError(DomainError):
    """Storage operation failed."""

    retryable = True
    status_code = 503


class VersionConflictError(PersistenceError):
    """Saved version is not exactly one above the current version."""

    status_code = 409

    def __init__(self, business_key: str, expected: int, actual: int):
        super().__init__(
            f"Version conflict for {business_key}: expected {expected}, got {actual}",
            business_key=business_key,
        )
        self.business_key = business_key
        self.expected = expected
        self.actual = actual


class PayloadMutationError(PersistenceError):
    """A persisted version's payload was modified in place."""

    retryable = False
    status_code = 500


class NetworkError(DomainError):
    """Remote domain call failed."""

    retryable = True
    status_code = 502


class EmailError(DomainError):
    """Email dispatch failed."""

    retryable = True
    status_code = 502


class SignatureError(DomainError):
    """Remote signature/approval step rejected the request."""

    status_code = 502
