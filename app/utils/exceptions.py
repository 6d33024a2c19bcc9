"""
Application exception hierarchy
Each exception carries the HTTP status code the API responds with
"""

from typing import Optional


class AppException(Exception):
    """Base class for errors that map onto an API error response"""

    status_code: int = 500

    def __init__(self, message: str = "Internal server error", status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppException):
    status_code = 400

    def __init__(self, message: str = "Validation failed"):
        super().__init__(message)


class AuthenticationError(AppException):
    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class AuthorizationError(AppException):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFoundError(AppException):
    """Raised when a user, session or mentor does not exist"""

    status_code = 404

    def __init__(self, resource: str = "Resource", resource_id: Optional[str] = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} not found: {resource_id}"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(AppException):
    status_code = 409

    def __init__(self, message: str = "Resource conflict"):
        super().__init__(message)


class RateLimitError(AppException):
    status_code = 429

    def __init__(self, message: str = "Too many requests"):
        super().__init__(message)


class ExternalServiceError(AppException):
    """External calendar API failures that are surfaced to the caller"""

    status_code = 502

    def __init__(self, message: str = "External service error"):
        super().__init__(message)


class DatabaseError(AppException):
    status_code = 500

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)
