"""Error taxonomy shared by the domain, the use cases and the HTTP layer."""


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed or missing input (absent identity, bad amount, ...)."""

    status_code = 400
    code = "VALIDATION_ERROR"


class DomainError(AppError):
    """A domain invariant was violated."""

    status_code = 422
    code = "DOMAIN_ERROR"


class BusinessError(DomainError):
    code = "BUSINESS_ERROR"


class NotFoundError(DomainError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class RateLimitExceeded(AppError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class IntentServiceError(Exception):
    """The intent provider failed or returned output that could not be parsed."""
