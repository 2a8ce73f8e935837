"""Custom exceptions for the application."""


class BaseAPIException(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = None,
        details: dict = None,
        headers: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.headers = headers
        super().__init__(self.message)


class ValidationError(BaseAPIException):
    """Malformed or duplicate input the caller can correct."""

    def __init__(self, message: str = "Validation failed", details: dict = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details
        )


class AuthenticationError(BaseAPIException):
    """Authentication error."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: dict = None,
        error_code: str = "AUTHENTICATION_ERROR"
    ):
        super().__init__(
            message=message,
            status_code=401,
            error_code=error_code,
            details=details,
            headers={"WWW-Authenticate": "Bearer"}
        )


class NotAuthenticatedError(AuthenticationError):
    """No usable bearer credentials were sent."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message=message, error_code="NOT_AUTHENTICATED")


class InvalidTokenAuthError(AuthenticationError):
    """Bearer token was sent but is expired, malformed or revoked."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message=message, error_code="INVALID_TOKEN")
        self.headers = {"WWW-Authenticate": 'Bearer error="invalid_token"'}


class AuthorizationError(BaseAPIException):
    """Authorization error."""

    def __init__(self, message: str = "Insufficient permissions", details: dict = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code="AUTHORIZATION_ERROR",
            details=details
        )


class NotFoundError(BaseAPIException):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", details: dict = None):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND_ERROR",
            details=details
        )


class RateLimitExceeded(BaseAPIException):
    """Rate limit exceeded error."""

    def __init__(self, message: str = "Rate limit exceeded", details: dict = None):
        super().__init__(
            message=message,
            status_code=429,
            error_code="RATE_LIMIT_EXCEEDED",
            details=details
        )


class InvalidTokenError(Exception):
    """Raised by the token layer when a JWT cannot be trusted.

    ``reason`` is one of ``expired``, ``malformed`` or ``wrong_type`` and is
    only meant for logs; callers surface a uniform 401.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid token: {reason}")
