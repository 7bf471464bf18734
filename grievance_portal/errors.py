"""
Exception taxonomy shared by the validator, lifecycle engine, visibility
filter and record store.

Every error is scoped to the single request that raised it.
"""


class GrievancePortalError(Exception):
    """Base class for all domain errors."""


# ── Validation ───────────────────────────────────────────────────────

class ValidationError(GrievancePortalError, ValueError):
    """A candidate grievance is malformed."""


class InvalidCategory(ValidationError):
    pass


class InvalidSubcategory(ValidationError):
    pass


class MissingRequiredField(ValidationError):
    def __init__(self, field: str):
        super().__init__(f"Missing required field: {field}")
        self.field = field


# ── Authorization / lifecycle ────────────────────────────────────────

class AuthorizationError(GrievancePortalError):
    """The caller's identity is not allowed to perform the operation."""


class LifecycleError(GrievancePortalError):
    """A status change was rejected."""


class Unauthorized(LifecycleError, AuthorizationError):
    pass


class InvalidTransition(LifecycleError):
    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move grievance from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


# ── Store ────────────────────────────────────────────────────────────

class StoreError(GrievancePortalError):
    """The record store rejected or could not serve a request."""


class NotFound(StoreError):
    pass


class Conflict(StoreError):
    pass


class StoreUnavailable(StoreError):
    pass
