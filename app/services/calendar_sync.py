"""
Calendar sync
Pulls busy data from the user's calendar, merges it with manual availability
and booked sessions, and stores the resolved slots on the user record
"""

from typing import Any, Dict, Optional
import logging

from supabase import Client

from app.services.availability_resolver import AvailabilityResolver
from app.services.calendar_service import GoogleCalendarClient
from app.services.events import EventBus, ProfileSkillsChanged
from app.utils.database import require_user_record, update_user_fields, list_confirmed_sessions
from app.utils.datetime_utils import get_current_timestamp, format_datetime

logger = logging.getLogger(__name__)


class CalendarSyncService:
    def __init__(
        self,
        supabase: Client,
        calendar: GoogleCalendarClient,
        events: EventBus,
        resolver: Optional[AvailabilityResolver] = None,
    ):
        self.supabase = supabase
        self.calendar = calendar
        self.events = events
        self.resolver = resolver or AvailabilityResolver()

    async def sync_calendar(self, uid: str, access_token: str) -> Dict[str, Any]:
        """
        Recompute and persist a user's available slots

        Returns:
            available_slots (ISO instants), slot_labels and busy_times_count
        """
        user = await require_user_record(self.supabase, uid)

        busy_times = await self.calendar.get_busy_times(access_token)
        booked = await list_confirmed_sessions(self.supabase, uid)
        slots = self.resolver.resolve(uid, user["availability"], busy_times, booked)

        await update_user_fields(self.supabase, uid, {
            "calendar_connected": True,
            "calendar_synced": True,
            "calendar_busy_times": busy_times,
            "available_slots": [slot.to_iso() for slot in slots],
            "last_calendar_sync": format_datetime(get_current_timestamp()),
        })
        logger.info(f"[CALENDAR] Synced {len(slots)} slots ({len(booked)} booked sessions) for user {uid}")

        await self.events.publish(ProfileSkillsChanged(
            uid=uid,
            previous_offered=tuple(user["skills_offered"]),
            current_offered=tuple(user["skills_offered"]),
            changed_fields=("available_slots",),
        ))

        return {
            "available_slots": [slot.to_iso() for slot in slots],
            "slot_labels": [slot.label(self.resolver.tz) for slot in slots],
            "busy_times_count": len(busy_times),
        }
