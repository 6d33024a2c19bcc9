"""
Calendar, booking and rating schemas
Request bodies use the camelCase field names of the public API
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator, field_validator
from typing import Optional, Literal
from datetime import datetime

from app.utils.datetime_utils import get_reference_timezone


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CalendarTokenRequest(_CamelModel):
    access_token: str = Field(alias="accessToken", min_length=1)


class BookSessionRequest(_CamelModel):
    """
    Booking request; the calendar fields are optional because the session
    is confirmed even when no calendar event can be created
    """
    participant_uid: str = Field(alias="participantUid", min_length=1, max_length=128)
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    skill_topic: str = Field(alias="skillTopic", min_length=1, max_length=100)
    session_type: Literal["learning", "teaching"] = Field(default="learning", alias="sessionType")
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    summary: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    attendee_email: Optional[EmailStr] = Field(default=None, alias="attendeeEmail")

    @field_validator("start_time", "end_time")
    @classmethod
    def assume_reference_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=get_reference_timezone())
        return value

    @model_validator(mode="after")
    def check_interval(self) -> "BookSessionRequest":
        if self.start_time >= self.end_time:
            raise ValueError("startTime must be before endTime")
        return self


class RateSessionRequest(_CamelModel):
    session_id: str = Field(alias="sessionId", min_length=1)
    mentor_uid: str = Field(alias="mentorUid", min_length=1)
    rating: int = Field(ge=1, le=5)


class BookSessionResponse(_CamelModel):
    session_id: str = Field(serialization_alias="sessionId")
    event_id: Optional[str] = Field(default=None, serialization_alias="eventId")
    event_link: Optional[str] = Field(default=None, serialization_alias="eventLink")
    calendar_error: Optional[str] = Field(default=None, serialization_alias="calendarError")


class ReputationResponse(BaseModel):
    uid: str
    badge_score: float
    badge_count: int
    total_badge_points: float
