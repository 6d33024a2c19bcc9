"""
Match scoring policies

RedesignedMatchPolicy: flat skill bonus + scaled reputation + availability bonus,
used for mentor search.
LegacyMatchPolicy: proportional 0-100 model used for the cached match list.

Both are pure functions of the two user records passed in.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List

from app.services.availability_resolver import normalize_day_name, slot_instants
from app.services.skill_overlap import intersect


def round_half_up(value: float, places: int = 0) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _days(availability: Dict[str, Any]) -> set:
    return {day for day in (normalize_day_name(d) for d in availability.get("days") or []) if day}


def _times(availability: Dict[str, Any]) -> set:
    return {t.strip() for t in availability.get("times") or [] if isinstance(t, str) and t.strip()}


def manual_overlap(a: Dict[str, Any], b: Dict[str, Any]) -> tuple:
    """(shared days, shared time ranges) between two manual availability preferences"""
    availability_a = a.get("availability") or {}
    availability_b = b.get("availability") or {}
    return (
        _days(availability_a) & _days(availability_b),
        _times(availability_a) & _times(availability_b),
    )


@dataclass
class RedesignedScore:
    total: float
    skill_points: int
    availability_points: int
    reputation_points: float
    matching_skills: List[str] = field(default_factory=list)


class RedesignedMatchPolicy:
    """Learner/mentor score: skill match (+5), badge_score * 3/5, shared availability (+2)"""

    SKILL_MATCH_POINTS = 5
    AVAILABILITY_POINTS = 2

    def reputation_points(self, mentor: Dict[str, Any]) -> float:
        return float(mentor.get("badge_score") or 0) * 3 / 5

    def availability_overlaps(self, learner: Dict[str, Any], mentor: Dict[str, Any]) -> bool:
        if learner.get("calendar_synced") and mentor.get("calendar_synced"):
            # Synced slots already exclude booked sessions
            shared = slot_instants(learner.get("available_slots")) & slot_instants(mentor.get("available_slots"))
            return bool(shared)
        common_days, common_times = manual_overlap(learner, mentor)
        return bool(common_days) and bool(common_times)

    def score(self, learner: Dict[str, Any], mentor: Dict[str, Any]) -> RedesignedScore:
        matching = intersect(learner.get("skills_wanted") or [], mentor.get("skills_offered") or [])
        skill_points = self.SKILL_MATCH_POINTS if matching else 0
        reputation = self.reputation_points(mentor)
        availability_points = self.AVAILABILITY_POINTS if self.availability_overlaps(learner, mentor) else 0

        return RedesignedScore(
            total=round_half_up(skill_points + reputation + availability_points, 1),
            skill_points=skill_points,
            availability_points=availability_points,
            reputation_points=reputation,
            matching_skills=matching,
        )


@dataclass
class LegacyScore:
    total: int
    skill_points: int
    availability_points: int
    role_points: int
    reputation_points: float
    skills_a_wants_from_b: List[str]
    skills_b_wants_from_a: List[str]
    availability_overlap: int
    role_compatible: bool

    @property
    def mutual(self) -> bool:
        return bool(self.skills_a_wants_from_b) and bool(self.skills_b_wants_from_a)

    def breakdown(self) -> Dict[str, float]:
        return {
            "skill_points": self.skill_points,
            "availability_points": self.availability_points,
            "role_points": self.role_points,
            "reputation_points": self.reputation_points,
        }


class LegacyMatchPolicy:
    """
    Symmetric-in-principle 0..100 score, computed from user A's perspective:
      mutual skills: +50, +10 per skill on each side
      one-way skills: +25, +5 per skill on the larger side
      availability: +20, +5 per shared day or shared time range
      role compatibility: +10
      reputation: avg badge_count * 2, capped at 10
    """

    MAX_SCORE = 100

    def roles_compatible(self, role_a: str, role_b: str) -> bool:
        if {role_a, role_b} == {"student", "mentor"}:
            return True
        return role_a == role_b

    def availability_overlap(self, a: Dict[str, Any], b: Dict[str, Any]) -> int:
        common_days, common_times = manual_overlap(a, b)
        return len(common_days) + len(common_times)

    def score(self, user_a: Dict[str, Any], user_b: Dict[str, Any]) -> LegacyScore:
        a_wants_from_b = intersect(user_a.get("skills_wanted") or [], user_b.get("skills_offered") or [])
        b_wants_from_a = intersect(user_b.get("skills_wanted") or [], user_a.get("skills_offered") or [])

        skill_points = 0
        if a_wants_from_b and b_wants_from_a:
            skill_points = 50 + len(a_wants_from_b) * 10 + len(b_wants_from_a) * 10
        elif a_wants_from_b or b_wants_from_a:
            skill_points = 25 + max(len(a_wants_from_b), len(b_wants_from_a)) * 5

        overlap = self.availability_overlap(user_a, user_b)
        availability_points = 20 + overlap * 5 if overlap > 0 else 0

        compatible = self.roles_compatible(user_a.get("role") or "", user_b.get("role") or "")
        role_points = 10 if compatible else 0

        average_badges = (int(user_a.get("badge_count") or 0) + int(user_b.get("badge_count") or 0)) / 2
        reputation_points = min(average_badges * 2, 10)

        raw = skill_points + availability_points + role_points + reputation_points
        total = int(round_half_up(raw))
        total = max(0, min(total, self.MAX_SCORE))

        return LegacyScore(
            total=total,
            skill_points=skill_points,
            availability_points=availability_points,
            role_points=role_points,
            reputation_points=reputation_points,
            skills_a_wants_from_b=a_wants_from_b,
            skills_b_wants_from_a=b_wants_from_a,
            availability_overlap=overlap,
            role_compatible=compatible,
        )


redesigned_policy = RedesignedMatchPolicy()
legacy_policy = LegacyMatchPolicy()
