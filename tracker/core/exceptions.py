"""
Application-wide exception hierarchy.

Services raise these; the handlers registered in ``tracker.utils.errors``
translate them to JSON error responses with a consistent status code, so
blueprints do not repeat try/except blocks around every service call.

Usage:
    from tracker.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("phase is required", details={"phase": "missing"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Project", "Document").
        resource_id: The key that was looked up. Logged, not returned.
        message: Optional override for the client-facing message.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.public_message = message or f"{resource} not found"
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is malformed or violates a business rule.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation conflicts with the current state. Maps to HTTP 409."""

    def __init__(self, message: str, resource: str | None = None) -> None:
        self.resource = resource
        super().__init__(message)


class PermissionDenied(Exception):
    """Raised when the current user may not perform the operation. Maps to HTTP 403."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class AuthenticationRequired(Exception):
    """Raised when an operation needs a session user and none was supplied. Maps to HTTP 401."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class InvalidPinError(Exception):
    """Raised when a share-link PIN does not match. Maps to HTTP 401."""

    def __init__(self, doc_id: int | None = None) -> None:
        self.doc_id = doc_id
        super().__init__("Invalid PIN")
