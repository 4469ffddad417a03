"""
Domain errors raised by the service layer.

Services never build HTTP responses themselves; each error carries the status
code and machine-readable ``error_code`` the API boundary renders.
"""

from typing import Any, Optional


class GiftTableError(Exception):
    status_code: int = 400
    error_code: str = "error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(GiftTableError):
    status_code = 400
    error_code = "validation_error"


class AuthorizationFailure(GiftTableError):
    status_code = 401
    error_code = "unauthorized"


class ClaimNotHeld(GiftTableError):
    """Release attempted on an item the attendee does not hold"""
    status_code = 403
    error_code = "not_claimant"


class NotFoundError(GiftTableError):
    status_code = 404
    error_code = "not_found"

    def __init__(self, resource: str = "Resource", details: Optional[Any] = None):
        super().__init__(f"{resource} not found", details)


class LifecycleViolation(GiftTableError):
    status_code = 409
    error_code = "lifecycle_violation"


class EventGoneError(GiftTableError):
    status_code = 410
    error_code = "event_archived"
