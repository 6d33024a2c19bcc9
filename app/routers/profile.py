"""
Profile endpoints: own profile, public profiles, calendar sync,
session booking and rating, admin statistics and account deletion
"""

from fastapi import APIRouter, Depends
from typing import Any, Dict
import logging

from app.routers.deps import (
    get_booking_service,
    get_calendar_sync_service,
    get_current_user,
    get_user_service,
    require_role,
)
from app.schemas import (
    BookSessionRequest,
    CalendarTokenRequest,
    ProfileUpdateRequest,
    PublicProfileResponse,
    RateSessionRequest,
    UserProfileResponse,
    success_response,
)
from app.services.calendar_sync import CalendarSyncService
from app.services.session_booking import SessionBookingService
from app.services.user_service import UserService
from app.utils.rate_limiter import rate_limit
from app.utils.request_validator import validate_request_size

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profile"], dependencies=[Depends(rate_limit("profile"))])


@router.get("/me")
async def get_my_profile(user: Dict[str, Any] = Depends(get_current_user)):
    profile = UserProfileResponse.model_validate(user)
    return success_response({"user": profile.model_dump(mode="json")})


@router.post("/update")
async def update_profile(
    body: ProfileUpdateRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
    _: None = Depends(validate_request_size)
):
    updated = await users.update_profile(user["uid"], body)
    profile = UserProfileResponse.model_validate(updated)
    return success_response({"user": profile.model_dump(mode="json")}, "Profile updated successfully")


@router.get("/admin/stats")
async def get_admin_stats(
    admin: Dict[str, Any] = Depends(require_role("admin")),
    users: UserService = Depends(get_user_service)
):
    stats = await users.admin_stats()
    return success_response({"stats": stats})


@router.post("/calendar/connect")
async def connect_calendar(
    user: Dict[str, Any] = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    await users.mark_calendar_connected(user["uid"])
    return success_response(message="Calendar connected successfully")


@router.post("/calendar/sync")
async def sync_calendar(
    body: CalendarTokenRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    sync: CalendarSyncService = Depends(get_calendar_sync_service),
    _: None = Depends(validate_request_size)
):
    result = await sync.sync_calendar(user["uid"], body.access_token)
    return success_response(result, "Calendar synced successfully")


@router.post("/calendar/book-session")
async def book_session(
    body: BookSessionRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    booking: SessionBookingService = Depends(get_booking_service),
    _: None = Depends(validate_request_size)
):
    result = await booking.book_session(user, body)
    message = "Session booked successfully"
    if "calendarError" in result:
        message = "Session booked, but the calendar event could not be created"
    return success_response(result, message)


@router.post("/rate-session")
async def rate_session(
    body: RateSessionRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    booking: SessionBookingService = Depends(get_booking_service),
    _: None = Depends(validate_request_size)
):
    reputation = await booking.rate_session(user["uid"], body.session_id, body.mentor_uid, body.rating)
    return success_response({"mentor": reputation}, "Session rated successfully")


@router.get("/{uid}")
async def get_public_profile(uid: str, users: UserService = Depends(get_user_service)):
    user = await users.require_user(uid)
    profile = PublicProfileResponse.model_validate(user)
    return success_response({"user": profile.model_dump(mode="json")})


@router.delete("/{uid}")
async def delete_profile(
    uid: str,
    user: Dict[str, Any] = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    await users.delete_user(user, uid)
    return success_response(message="User deleted successfully")
