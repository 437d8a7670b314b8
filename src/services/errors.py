"""Domain errors raised by services and mapped to HTTP responses in src.main."""

from fastapi import status


class ServiceError(Exception):
    """Base class for errors a service reports back to the caller."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_REQUEST"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(ServiceError):
    """Input failed a domain rule."""


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class PermissionDeniedError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "NOT_AUTHORIZED"


class PrivateAccountError(PermissionDeniedError):
    code = "ACCOUNT_PRIVATE"

    def __init__(self, message: str = "This account is private") -> None:
        super().__init__(message)


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class RateLimitError(ServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMIT_EXCEEDED"


class ServiceUnavailableError(ServiceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "SERVICE_UNAVAILABLE"
