"""
Match schemas
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class DenyMentorRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mentor_uid: str = Field(alias="mentorUid", min_length=1, max_length=128)


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    limit: int
    offset: int
    total: int
    has_more: bool = Field(serialization_alias="hasMore")

    @classmethod
    def of(cls, limit: int, offset: int, total: int) -> "Pagination":
        return cls(limit=limit, offset=offset, total=total, has_more=offset + limit < total)


class RedesignedMatch(BaseModel):
    """Mentor card with the score breakdown of the redesigned policy"""
    uid: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    skills_offered: List[str] = Field(default_factory=list)
    matching_skills: List[str] = Field(default_factory=list)
    badge_score: float = 0.0
    availability: Any = None
    calendar_synced: bool = False
    match_score: float
    skill_match_points: int
    availability_points: int
    reputation_points: float


class MatchExplanation(BaseModel):
    match_score: int
    mutual_skills: bool
    skills_a_wants_from_b: List[str]
    skills_b_wants_from_a: List[str]
    availability_overlap: int
    role_compatibility: bool
    breakdown: Dict[str, float] = Field(default_factory=dict)


class MatchStats(BaseModel):
    total_matches: int
    average_match_score: int
    highest_match_score: int
    skills_offered_count: int
    skills_wanted_count: int


class PopularSkill(BaseModel):
    name: Optional[str] = None
    popularity: int = 0
