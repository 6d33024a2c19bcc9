"""
Google Calendar client
Reads free/busy data and creates session events using a user's access token
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
import logging

import httpx

from app.config.settings import settings
from app.utils.datetime_utils import get_current_timestamp, format_datetime
from app.utils.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """Thin async wrapper over the Calendar v3 REST API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        timezone_name: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = get_current_timestamp,
    ):
        self.base_url = (base_url or settings.calendar_api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.calendar_timeout_seconds
        self.timezone_name = timezone_name or settings.reference_timezone
        self.transport = transport
        self.clock = clock

    def _client(self, access_token: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    async def get_busy_times(self, access_token: str, days: Optional[int] = None) -> List[Dict[str, str]]:
        """
        Busy intervals of the primary calendar for the next `days` days.
        A timeout yields an empty list: missing busy data must not block every slot.
        """
        days = days if days is not None else settings.availability_horizon_days
        now = self.clock()
        body = {
            "timeMin": format_datetime(now),
            "timeMax": format_datetime(now + timedelta(days=days)),
            "timeZone": self.timezone_name,
            "items": [{"id": "primary"}],
        }

        try:
            async with self._client(access_token) as client:
                response = await client.post("/freeBusy", json=body)
        except httpx.TimeoutException:
            logger.warning("[CALENDAR] freeBusy timed out; continuing without busy data")
            return []
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Failed to fetch calendar data: {e}")

        if response.status_code != 200:
            logger.error(f"[CALENDAR] freeBusy failed with status {response.status_code}")
            raise ExternalServiceError("Failed to fetch calendar data")

        calendars = response.json().get("calendars", {})
        busy = [
            {"start": period.get("start"), "end": period.get("end")}
            for period in calendars.get("primary", {}).get("busy", [])
        ]
        logger.info(f"[CALENDAR] Retrieved {len(busy)} busy slots")
        return busy

    async def create_session_event(
        self,
        access_token: str,
        summary: str,
        start_time: datetime,
        end_time: datetime,
        attendee_email: str,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an event on the organizer's primary calendar and invite the attendee"""
        event = {
            "summary": summary,
            "description": description or "SkillSwap Learning Session",
            "start": {"dateTime": start_time.isoformat(), "timeZone": self.timezone_name},
            "end": {"dateTime": end_time.isoformat(), "timeZone": self.timezone_name},
            "attendees": [{"email": attendee_email}],
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": "email", "minutes": 24 * 60},
                    {"method": "popup", "minutes": 10},
                ],
            },
        }

        try:
            async with self._client(access_token) as client:
                response = await client.post(
                    "/calendars/primary/events",
                    json=event,
                    params={"sendUpdates": "all"},
                )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Failed to create calendar event: {e}")

        if response.status_code not in (200, 201):
            logger.error(f"[CALENDAR] Event creation failed with status {response.status_code}")
            raise ExternalServiceError("Failed to create calendar event")

        data = response.json()
        logger.info(f"[CALENDAR] Created calendar event: {data.get('id')}")
        return {"id": data.get("id"), "htmlLink": data.get("htmlLink")}


def get_calendar_client() -> GoogleCalendarClient:
    return GoogleCalendarClient()
