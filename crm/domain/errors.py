"""Domain errors raised by the service layer.

Every expected failure is a subclass of :class:`CrmError`; the API layer maps
them to stable HTTP status codes. None of them is transient, so nothing in
the service layer retries.
"""


class CrmError(Exception):
    """Base class for service-layer errors."""


class NotFoundError(CrmError):
    """Referenced customer, delete request or account does not exist."""


class ForbiddenError(CrmError):
    """Actor failed the access policy check."""


class AuthenticationError(CrmError):
    """Credentials are missing or wrong."""


class InvalidTransitionError(CrmError):
    """Requested status change is not a legal edge from the current status."""

    def __init__(self, message: str, from_status=None, to_status=None):
        super().__init__(message)
        self.from_status = from_status
        self.to_status = to_status


class ConflictError(CrmError):
    """Duplicate record, already-reviewed request or stale concurrent write."""


class ValidationFailedError(CrmError):
    """Input is well-formed but breaks a business rule (blank reason, bad phone)."""


class InvalidUpdateError(ValidationFailedError):
    """Field update touched an attribute that may not be changed that way."""


class InvariantViolationError(CrmError):
    """Storage is in a state the service layer should have made impossible."""
