"""
Datetime helpers
All slot arithmetic happens in one reference timezone
"""

from datetime import datetime, timezone
from typing import Any, Optional
import re
from zoneinfo import ZoneInfo

from app.config.settings import settings

# Fractional seconds are padded to six digits before parsing
FRACTION_PATTERN = re.compile(r"\.(\d+)")


def get_reference_timezone() -> ZoneInfo:
    return ZoneInfo(settings.reference_timezone)


def get_current_timestamp() -> datetime:
    """Current instant as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (or pass through a datetime) into an aware datetime.
    Naive values are interpreted as UTC. Returns None for empty or malformed input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = FRACTION_PATTERN.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_datetime(value: datetime) -> str:
    """ISO-8601 string for storage"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def format_slot_label(value: datetime, tz: Optional[ZoneInfo] = None) -> str:
    """
    Human readable slot label in the reference timezone,
    e.g. "Monday, 20/10/2026, 10:00 am"
    """
    local = value.astimezone(tz or get_reference_timezone())
    hour = local.hour % 12 or 12
    meridiem = "am" if local.hour < 12 else "pm"
    return f"{local.strftime('%A, %d/%m/%Y')}, {hour:02d}:{local.minute:02d} {meridiem}"
