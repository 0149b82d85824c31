"""
Service-layer exception hierarchy.

Stores and services raise these; API blueprints register handlers against
them once and get consistent HTTP status codes everywhere.

Usage:
    from surveys.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Survey", resource_id=42)
    raise ValidationError("Title is required", details={"title": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Survey", "Question").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        tenant_id: Optional scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        tenant_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.tenant_id = tenant_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if tenant_id is not None:
            msg += f" (tenant={tenant_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is malformed or violates a business rule.

    ``status`` defaults to 400; pass 422 for well-formed input that breaks a rule.
    """

    def __init__(self, message: str, details: dict | None = None, status: int = 400) -> None:
        self.details = details or {}
        self.status = status
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value. Maps to HTTP 409."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class ForbiddenError(Exception):
    """Raised when the caller is authenticated but not allowed the operation. Maps to 403."""

    def __init__(self, operation: str, resource: str = "Survey", resource_id: int | None = None) -> None:
        self.operation = operation
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{operation} on {resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " is not allowed"
        super().__init__(msg)
