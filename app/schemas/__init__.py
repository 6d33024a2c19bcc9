"""
Pydantic schemas for request/response validation
"""

from .common import (
    ApiResponse,
    success_response
)

from .user import (
    Availability,
    RegisterRequest,
    ProfileUpdateRequest,
    PublicProfileResponse,
    UserProfileResponse
)

from .session import (
    CalendarTokenRequest,
    BookSessionRequest,
    BookSessionResponse,
    RateSessionRequest,
    ReputationResponse
)

from .match import (
    DenyMentorRequest,
    Pagination,
    RedesignedMatch,
    MatchExplanation,
    MatchStats,
    PopularSkill
)

__all__ = [
    # Envelope
    "ApiResponse",
    "success_response",
    # User schemas
    "Availability",
    "RegisterRequest",
    "ProfileUpdateRequest",
    "PublicProfileResponse",
    "UserProfileResponse",
    # Calendar / session schemas
    "CalendarTokenRequest",
    "BookSessionRequest",
    "BookSessionResponse",
    "RateSessionRequest",
    "ReputationResponse",
    # Match schemas
    "DenyMentorRequest",
    "Pagination",
    "RedesignedMatch",
    "MatchExplanation",
    "MatchStats",
    "PopularSkill"
]
