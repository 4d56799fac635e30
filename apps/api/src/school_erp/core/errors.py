"""
Service Error Taxonomy

Every error raised by the service layer derives from ServiceError and carries
a stable error code and HTTP status. The FastAPI exception handlers in
`school_erp.main` turn these into the JSON envelope
`{"success": false, "error": <code>, "message": <text>}`.

Taxonomy:
- InvalidTokenError      401  malformed, expired or tampered session token
- ForbiddenError         403  role insufficient, principal or school inactive
- NotFoundError          404  no row within the caller's tenant scope
- ConflictError          400  duplicate registration / unique constraint
- InvalidTransitionError 400  workflow state violation
- ValidationError        400  malformed input payload
- InternalError          500  unexpected store or transport failure
"""

from fastapi import status


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class InvalidTokenError(ServiceError):
    """Raised when a session token is missing, malformed, tampered or expired."""

    def __init__(self, message: str = "Invalid or expired authentication token."):
        super().__init__(
            message=message,
            error_code="INVALID_TOKEN",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ForbiddenError(ServiceError):
    """Raised when the principal may not perform the operation."""

    def __init__(self, message: str = "You do not have permission to perform this action."):
        super().__init__(
            message=message,
            error_code="FORBIDDEN",
            status_code=status.HTTP_403_FORBIDDEN,
        )


class NotFoundError(ServiceError):
    """
    Raised when a row does not exist within the caller's tenant scope.

    Rows that exist but belong to another tenant raise the same error.
    """

    def __init__(self, entity: str = "Resource", entity_id: object | None = None):
        message = f"{entity} {entity_id} not found" if entity_id else f"{entity} not found"
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
        )


class ConflictError(ServiceError):
    """Raised on duplicate registration or other unique constraint violations."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="CONFLICT",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class InvalidTransitionError(ServiceError):
    """Raised when a workflow transition is not allowed from the current state."""

    def __init__(self, current_status: str, new_status: str):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            message=f"Invalid status transition: {current_status} -> {new_status}.",
            error_code="INVALID_TRANSITION",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class ValidationError(ServiceError):
    """Raised when an input payload is malformed or violates a business rule."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class InternalError(ServiceError):
    """Raised on unexpected store or transport failures."""

    def __init__(self, message: str = "An unexpected error occurred."):
        super().__init__(
            message=message,
            error_code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


__all__ = [
    "ServiceError",
    "InvalidTokenError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "ValidationError",
    "InternalError",
]
