"""
User profile schemas
Pydantic models for request/response validation
"""

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, StringConstraints, field_validator, model_validator
from typing import Optional, List, Literal, Annotated
from datetime import datetime
import re

from app.services.availability_resolver import normalize_day_name


CLOCK_TIME = r"(?:[01]\d|2[0-3]):[0-5]\d"
TIME_RANGE_PATTERN = re.compile(rf"^{CLOCK_TIME}-{CLOCK_TIME}$")

SkillName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
DisplayName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]


class Availability(BaseModel):
    """
    Manual availability preference
    Days accept full or three-letter weekday names and are stored in full form
    """
    days: List[str] = Field(default_factory=list)
    times: List[str] = Field(default_factory=list)

    @field_validator("days")
    @classmethod
    def normalize_days(cls, value: List[str]) -> List[str]:
        days: List[str] = []
        for day in value:
            name = normalize_day_name(day)
            if name is None:
                raise ValueError(f"Invalid day format: {day}")
            if name not in days:
                days.append(name)
        return days

    @field_validator("times")
    @classmethod
    def validate_times(cls, value: List[str]) -> List[str]:
        times: List[str] = []
        for entry in value:
            entry = entry.strip()
            if not TIME_RANGE_PATTERN.match(entry):
                raise ValueError(f"Invalid time range (expected HH:MM-HH:MM): {entry}")
            if entry not in times:
                times.append(entry)
        return times


class RegisterRequest(BaseModel):
    name: DisplayName
    role: Literal["student", "mentor"] = "student"
    avatar_url: Optional[HttpUrl] = None
    skills_offered: List[SkillName] = Field(default_factory=list, max_length=10)
    skills_wanted: List[SkillName] = Field(default_factory=list, max_length=10)
    availability: Availability = Field(default_factory=Availability)


class ProfileUpdateRequest(BaseModel):
    """Partial update; at least one field is required"""
    name: Optional[DisplayName] = None
    avatar_url: Optional[HttpUrl] = None
    skills_offered: Optional[List[SkillName]] = Field(default=None, max_length=10)
    skills_wanted: Optional[List[SkillName]] = Field(default=None, max_length=10)
    availability: Optional[Availability] = None

    @model_validator(mode="after")
    def require_any_field(self) -> "ProfileUpdateRequest":
        if not self.model_fields_set or all(
            getattr(self, name) is None for name in self.model_fields_set
        ):
            raise ValueError("At least one field must be provided for update")
        return self

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True, exclude_none=True, mode="json")
        return data


class PublicProfileResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    uid: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str = "student"
    skills_offered: List[str] = Field(default_factory=list)
    badge_count: int = 0
    badge_score: float = 0.0
    availability: Availability = Field(default_factory=Availability)


class UserProfileResponse(PublicProfileResponse):
    """Full profile as seen by its owner"""
    email: Optional[str] = None
    skills_wanted: List[str] = Field(default_factory=list)
    total_badge_points: float = 0.0
    calendar_connected: bool = False
    calendar_synced: bool = False
    calendar_busy_times: List[dict] = Field(default_factory=list)
    available_slots: List[str] = Field(default_factory=list)
    last_calendar_sync: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
