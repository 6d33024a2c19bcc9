"""
Availability resolver
Merges manual day/time preferences, external calendar busy intervals and
booked sessions into concrete one-hour slots for a single user
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple
from zoneinfo import ZoneInfo
import logging

from app.config.settings import settings
from app.utils.datetime_utils import (
    get_current_timestamp,
    get_reference_timezone,
    parse_datetime,
    format_slot_label,
)

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
WEEKEND = {5, 6}
SLOT_LENGTH = timedelta(hours=1)

_DAY_LOOKUP = {name[:3].lower(): name for name in WEEKDAY_NAMES}


def normalize_day_name(day: Any) -> Optional[str]:
    """Accept "Monday", "monday" or "Mon"; return the full weekday name or None"""
    if not isinstance(day, str) or len(day.strip()) < 3:
        return None
    return _DAY_LOOKUP.get(day.strip()[:3].lower())


def parse_slot_hour(time_range: Any) -> Optional[int]:
    """Leading hour of a "HH:MM-HH:MM" entry; minutes are ignored"""
    if not isinstance(time_range, str):
        return None
    head = time_range.strip().split(":", 1)[0]
    if not head.isdigit():
        return None
    hour = int(head)
    return hour if 0 <= hour < 24 else None


@dataclass(frozen=True)
class TimeInterval:
    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        # Strict overlap: touching intervals do not conflict
        return start < self.end and self.start < end

    @classmethod
    def from_values(cls, start: Any, end: Any) -> Optional["TimeInterval"]:
        start_dt = parse_datetime(start)
        end_dt = parse_datetime(end)
        if start_dt is None or end_dt is None or start_dt >= end_dt:
            return None
        return cls(start_dt, end_dt)


@dataclass(frozen=True)
class AvailableSlot:
    start: datetime

    @property
    def end(self) -> datetime:
        return self.start + SLOT_LENGTH

    def to_iso(self) -> str:
        return self.start.isoformat()

    def label(self, tz: Optional[ZoneInfo] = None) -> str:
        return format_slot_label(self.start, tz)


def busy_intervals_from(entries: Optional[Iterable[Dict[str, Any]]]) -> List[TimeInterval]:
    """Intervals from external busy entries ({start, end}); malformed entries are skipped"""
    intervals: List[TimeInterval] = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        interval = TimeInterval.from_values(entry.get("start"), entry.get("end"))
        if interval is None:
            logger.warning(f"[AVAILABILITY] Skipping malformed busy interval: {entry}")
            continue
        intervals.append(interval)
    return intervals


def session_intervals_from(sessions: Optional[Iterable[Dict[str, Any]]]) -> List[TimeInterval]:
    """Intervals of confirmed booked sessions"""
    intervals: List[TimeInterval] = []
    for session in sessions or []:
        if not isinstance(session, dict):
            continue
        if session.get("status", "confirmed") != "confirmed":
            continue
        interval = TimeInterval.from_values(session.get("start_time"), session.get("end_time"))
        if interval is not None:
            intervals.append(interval)
    return intervals


def slot_instants(slots: Optional[Iterable[Any]]) -> Set[datetime]:
    """
    Stored slot values as comparable UTC instants
    Two users share a slot when the instants are equal, regardless of how they were rendered
    """
    instants: Set[datetime] = set()
    for value in slots or []:
        parsed = parse_datetime(value)
        if parsed is not None:
            instants.add(parsed.astimezone(timezone.utc))
    return instants


class AvailabilityResolver:
    """Builds the ordered list of free one-hour slots for the next few days"""

    def __init__(
        self,
        tz: Optional[ZoneInfo] = None,
        working_hours: Optional[Tuple[int, int]] = None,
        horizon_days: Optional[int] = None,
        clock: Callable[[], datetime] = get_current_timestamp,
    ):
        self.tz = tz or get_reference_timezone()
        self.working_hours = working_hours or (settings.working_hours_start, settings.working_hours_end)
        self.horizon_days = horizon_days if horizon_days is not None else settings.availability_horizon_days
        self.clock = clock

    def _candidate_hours(self, times: Sequence[Any]) -> List[int]:
        if times:
            hours = {hour for hour in (parse_slot_hour(t) for t in times) if hour is not None}
            return sorted(hours)
        start, end = self.working_hours
        return list(range(start, end))

    def resolve(
        self,
        uid: str,
        manual_availability: Optional[Dict[str, Any]] = None,
        busy_intervals: Optional[Iterable[Dict[str, Any]]] = None,
        booked_sessions: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> List[AvailableSlot]:
        """
        Resolve available slots for one user.

        - weekends are always skipped
        - an empty `days` preference means every weekday is allowed
        - `times` entries contribute their leading hour; empty means working hours
        - a slot survives only if it overlaps neither a busy interval nor a booked session

        Missing inputs are treated as empty and never raise.
        """
        manual_availability = manual_availability or {}
        allowed_days = {
            day for day in (normalize_day_name(d) for d in manual_availability.get("days") or []) if day
        }
        hours = self._candidate_hours(manual_availability.get("times") or [])
        blocked = busy_intervals_from(busy_intervals) + session_intervals_from(booked_sessions)

        today = self.clock().astimezone(self.tz).date()
        slots: List[AvailableSlot] = []

        for offset in range(self.horizon_days):
            day = today + timedelta(days=offset)
            if day.weekday() in WEEKEND:
                continue
            if allowed_days and WEEKDAY_NAMES[day.weekday()] not in allowed_days:
                continue

            for hour in hours:
                slot_start = datetime(day.year, day.month, day.day, hour, tzinfo=self.tz)
                slot = AvailableSlot(slot_start)
                if any(interval.overlaps(slot.start, slot.end) for interval in blocked):
                    continue
                slots.append(slot)

        logger.info(f"[AVAILABILITY] Resolved {len(slots)} slots for user {uid}")
        return slots
