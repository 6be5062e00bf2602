"""
Application errors.

Services and dependencies raise these; the handlers registered in
``main.py`` render each one as an ``ErrorResponse`` using the class's HTTP
status and the instance's ``error_code``. Subclasses only override the
class-level defaults.
"""

from typing import Any


class AppException(Exception):
    """Base of every error the API reports with a stable code."""

    status_code: int = 500
    default_code: str = "APP_ERROR"
    default_message: str = "Unexpected application error"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.default_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_code!r}, {self.message!r})"


# 4xx

class BadRequestError(AppException):
    status_code = 400
    default_code = "BAD_REQUEST"
    default_message = "Invalid request"


class ValidationError(BadRequestError):
    """Input rejected after parsing.

    ``errors`` uses the ``{field, message, type}`` entries the
    request-validation handler emits, so clients render both alike.
    """

    default_code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = dict(details or {})
        if errors:
            details["validation_errors"] = errors
        super().__init__(message, error_code, details=details)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message, "type": "value_error"}])


class UnauthorizedError(AppException):
    """Bad credentials or a missing, invalid or expired session."""

    status_code = 401
    default_code = "UNAUTHORIZED"
    default_message = "Authentication required"


class ForbiddenError(AppException):
    status_code = 403
    default_code = "FORBIDDEN"
    default_message = "Permission denied"


class NotFoundError(AppException):
    status_code = 404
    default_code = "NOT_FOUND"
    default_message = "Resource not found"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = dict(details or {})
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message, error_code, details=details)


class ConflictError(AppException):
    """Duplicate record or a state that forbids the request."""

    status_code = 409
    default_code = "CONFLICT"
    default_message = "Resource conflict"


# 5xx

class ExternalServiceError(AppException):
    """A downstream service failed; reported as a bad gateway."""

    status_code = 502
    default_code = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        service_name: str,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = {**(details or {}), "service": service_name}
        super().__init__(
            message or f"External service '{service_name}' is unavailable or returned an error",
            error_code,
            details=details,
        )


# Domain

class IdentityProviderError(ExternalServiceError):
    default_code = "IDENTITY_PROVIDER_ERROR"

    def __init__(self, message: str | None = None, provider_code: str | None = None) -> None:
        super().__init__(
            "cognito",
            message or "Identity provider request failed",
            details={"provider_code": provider_code} if provider_code else None,
        )


class DoctorNotFoundError(NotFoundError):
    default_code = "DOCTOR_NOT_FOUND"

    def __init__(self, doctor_id: str | None = None, email: str | None = None) -> None:
        identifier = doctor_id or email
        super().__init__(
            f"Doctor application not found: {identifier}",
            resource_type="doctor",
            resource_id=identifier,
        )


class InvalidTransitionError(ConflictError):
    """The action is not defined for the application's current status."""

    default_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current_status: str, action: str) -> None:
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action.replace('_', ' ')} an application in status '{current_status}'",
            details={"current_status": current_status, "action": action},
        )
