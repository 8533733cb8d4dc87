"""Error taxonomy shared by the gateway service and the console client."""


class BackofficeError(Exception):
    """Base error carrying a human-readable message and an HTTP mapping."""

    status_code: int = 500
    code: str = "error"

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class ValidationError(BackofficeError):
    """Missing or malformed required fields."""

    status_code = 422
    code = "validation_error"

    def __init__(
        self,
        message: str,
        details: str | None = None,
        field_errors: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field_errors = field_errors or {}


class NotFoundError(BackofficeError):
    """The requested record does not exist."""

    status_code = 404
    code = "not_found"


class UnauthorizedError(BackofficeError):
    """Missing, invalid or insufficient credentials."""

    status_code = 401
    code = "unauthorized"


class ConflictError(BackofficeError):
    """Request clashes with existing data (duplicate email/cin, references)."""

    status_code = 409
    code = "conflict"


class InvalidStateError(BackofficeError):
    """Enrollment status transition not allowed from the current status."""

    status_code = 409
    code = "invalid_state"


class TransportError(BackofficeError):
    """Gateway unreachable (network failure, CORS, status 0)."""

    status_code = 0
    code = "transport_error"


class ServerError(BackofficeError):
    """Gateway answered with a 5xx status."""

    status_code = 500
    code = "server_error"


ERRORS_BY_CODE: dict[str, type[BackofficeError]] = {
    cls.code: cls
    for cls in (
        ValidationError,
        NotFoundError,
        UnauthorizedError,
        ConflictError,
        InvalidStateError,
        TransportError,
        ServerError,
    )
}


def error_for_status(status_code: int) -> type[BackofficeError]:
    """Pick the error class for an HTTP status without a ``code`` hint."""
    if status_code == 0:
        return TransportError
    if status_code in (401, 403):
        return UnauthorizedError
    if status_code == 404:
        return NotFoundError
    if status_code in (400, 409):
        return ConflictError
    if status_code == 422:
        return ValidationError
    if status_code >= 500:
        return ServerError
    return BackofficeError
