"""
Utility functions for common operations
"""

from .exceptions import (
    AppException,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    RateLimitError,
    ExternalServiceError,
    DatabaseError
)

from .database import (
    sanitize_user_record,
    get_user_record,
    require_user_record,
    list_users_except,
    update_user_fields,
    get_session_record,
    list_confirmed_sessions
)

from .datetime_utils import (
    parse_datetime,
    format_datetime,
    format_slot_label,
    get_current_timestamp,
    get_reference_timezone
)

from .rate_limiter import (
    RateLimiter,
    get_rate_limiter,
    check_rate_limit,
    rate_limit
)

from .request_validator import (
    validate_request_size
)

__all__ = [
    # Exceptions
    "AppException",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "ExternalServiceError",
    "DatabaseError",
    # Database utilities
    "sanitize_user_record",
    "get_user_record",
    "require_user_record",
    "list_users_except",
    "update_user_fields",
    "get_session_record",
    "list_confirmed_sessions",
    # Datetime utilities
    "parse_datetime",
    "format_datetime",
    "format_slot_label",
    "get_current_timestamp",
    "get_reference_timezone",
    # Rate limiter
    "RateLimiter",
    "get_rate_limiter",
    "check_rate_limit",
    "rate_limit",
    # Request validator
    "validate_request_size"
]
