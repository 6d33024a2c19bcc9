"""
Session booking and rating

Booking confirms a session between two users; the confirmed interval becomes
busy time for both of them on their next availability computation.
Rating updates the mentor's running average through a conditional write
that is retried when another rating lands first.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import logging
import uuid

from supabase import Client

from app.config.settings import settings
from app.schemas.session import BookSessionRequest, BookSessionResponse, ReputationResponse
from app.services.availability_resolver import SLOT_LENGTH, TimeInterval
from app.services.cache_service import CacheService, user_cache_key
from app.services.calendar_service import GoogleCalendarClient
from app.services.match_cache import MatchCacheStore
from app.services.match_scorer import round_half_up
from app.utils.database import (
    SESSIONS_TABLE,
    get_user_record,
    require_user_record,
    update_user_fields,
    get_session_record,
)
from app.utils.datetime_utils import format_datetime, parse_datetime
from app.utils.exceptions import (
    AppException,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def prune_slots(slots: List[Any], start: datetime, end: datetime) -> List[Any]:
    """Drop stored slots whose hour overlaps [start, end)"""
    booked = TimeInterval(start, end)
    remaining = []
    for value in slots:
        slot_start = parse_datetime(value)
        if slot_start is not None and booked.overlaps(slot_start, slot_start + SLOT_LENGTH):
            continue
        remaining.append(value)
    return remaining


class SessionBookingService:
    def __init__(
        self,
        supabase: Client,
        cache: CacheService,
        calendar: Optional[GoogleCalendarClient] = None,
        match_cache: Optional[MatchCacheStore] = None,
        max_retries: Optional[int] = None,
    ):
        self.supabase = supabase
        self.cache = cache
        self.calendar = calendar
        self.match_cache = match_cache or MatchCacheStore(supabase)
        self.max_retries = max_retries if max_retries is not None else settings.rating_max_retries

    async def book_session(self, organizer: Dict[str, Any], request: BookSessionRequest) -> Dict[str, Any]:
        """
        Book a confirmed session between the organizer and a participant.

        Steps:
        1. Reject self-booking
        2. Insert the session with status confirmed in one database call that
           refuses intervals overlapping either user's confirmed sessions
        3. Optionally create a calendar event; a failure is reported, not rolled back
        4. Remove the booked hour from both users' stored slots and drop their caches
        """
        organizer_uid = organizer["uid"]
        if request.participant_uid == organizer_uid:
            raise ValidationError("You cannot book a session with yourself")

        participant = await require_user_record(self.supabase, request.participant_uid, resource="Participant")
        start, end = request.start_time, request.end_time

        session_id = str(uuid.uuid4())
        try:
            response = self.supabase.rpc("book_session", {
                "p_id": session_id,
                "p_organizer_uid": organizer_uid,
                "p_participant_uid": participant["uid"],
                "p_start_time": format_datetime(start),
                "p_end_time": format_datetime(end),
                "p_skill_topic": request.skill_topic,
                "p_session_type": request.session_type,
            }).execute()
        except Exception as e:
            raise DatabaseError(f"Error booking session: {str(e)}")

        outcome = response.data or {}
        if not outcome.get("booked"):
            raise ConflictError(
                f"Requested time overlaps an existing session for user {outcome.get('conflict_uid')}"
            )
        logger.info(f"[BOOKING] Session booked: {session_id} ({organizer_uid} with {participant['uid']})")

        result = BookSessionResponse(session_id=session_id)
        if request.access_token:
            await self._attach_calendar_event(result, request, participant)

        for uid in (organizer_uid, participant["uid"]):
            await self._release_slots(uid, start, end)

        return result.model_dump(by_alias=True, exclude_none=True)

    async def _attach_calendar_event(
        self,
        result: BookSessionResponse,
        request: BookSessionRequest,
        participant: Dict[str, Any],
    ) -> None:
        attendee = request.attendee_email or participant.get("email")
        if self.calendar is None:
            result.calendar_error = "Calendar event not created: calendar integration unavailable"
            return
        if not attendee:
            result.calendar_error = "Calendar event not created: no attendee email available"
            return

        try:
            event = await self.calendar.create_session_event(
                request.access_token,
                request.summary or f"SkillSwap session: {request.skill_topic}",
                request.start_time,
                request.end_time,
                str(attendee),
                request.description,
            )
        except ExternalServiceError as e:
            logger.warning(f"[BOOKING] Session {result.session_id} confirmed without calendar event: {e.message}")
            result.calendar_error = e.message
            return

        result.event_id = event.get("id")
        result.event_link = event.get("htmlLink")
        try:
            self.supabase.table(SESSIONS_TABLE).update({
                "calendar_event_id": result.event_id,
                "calendar_event_link": result.event_link,
            }).eq("id", result.session_id).execute()
        except Exception as e:
            logger.warning(f"[BOOKING] Could not store calendar event on session {result.session_id}: {e}")

    async def _release_slots(self, uid: str, start: datetime, end: datetime) -> None:
        try:
            user = await get_user_record(self.supabase, uid)
            if user and user["available_slots"]:
                remaining = prune_slots(user["available_slots"], start, end)
                if len(remaining) != len(user["available_slots"]):
                    await update_user_fields(self.supabase, uid, {"available_slots": remaining})
        except AppException as e:
            logger.warning(f"[BOOKING] Could not prune slots for user {uid}: {e.message}")

        await self.match_cache.clear(uid)
        await self.cache.delete(user_cache_key(uid))

    async def rate_session(self, rater_uid: str, session_id: str, mentor_uid: str, rating: int) -> Dict[str, Any]:
        """
        Record a 1-5 rating and fold it into the mentor's running average.

        The rating insert and the reputation update happen in one database
        function, conditional on the badge_count read here. When another
        rating wins the race the read is repeated.

        Raises:
            ValidationError: rating outside 1..5
            NotFoundError: unknown session or mentor
            ConflictError: retries exhausted
        """
        if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")

        if await get_session_record(self.supabase, session_id) is None:
            raise NotFoundError("Session", session_id)

        for attempt in range(1, self.max_retries + 1):
            mentor = await require_user_record(self.supabase, mentor_uid, resource="Mentor")
            badge_count = mentor["badge_count"] + 1
            total_points = mentor["total_badge_points"] + rating
            badge_score = round_half_up(total_points / badge_count, 2)

            try:
                response = self.supabase.rpc("apply_session_rating", {
                    "p_mentor_uid": mentor_uid,
                    "p_expected_count": mentor["badge_count"],
                    "p_badge_count": badge_count,
                    "p_total_points": total_points,
                    "p_badge_score": badge_score,
                    "p_session_id": session_id,
                    "p_rater_uid": rater_uid,
                    "p_rating": rating,
                }).execute()
            except Exception as e:
                raise DatabaseError(f"Error rating session: {str(e)}")

            if response.data:
                logger.info(f"[RATING] Session rated: {rating}/5 for mentor {mentor_uid}, new average: {badge_score:.2f}")
                await self.cache.delete(user_cache_key(mentor_uid))
                return ReputationResponse(
                    uid=mentor_uid,
                    badge_score=badge_score,
                    badge_count=badge_count,
                    total_badge_points=total_points,
                ).model_dump()

            logger.warning(f"[RATING] Concurrent rating for mentor {mentor_uid}, retrying ({attempt}/{self.max_retries})")

        raise ConflictError("Could not apply rating due to concurrent updates, please retry")
