"""
Matching service
Ranks candidate partners for a learner under the legacy (cached, 0-100) and
redesigned (mentor search) policies, honoring the learner's denial list
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from supabase import Client

from app.schemas.match import Pagination, RedesignedMatch, MatchExplanation, MatchStats
from app.services.match_cache import MatchCacheStore, DenialStore
from app.services.match_scorer import (
    LegacyMatchPolicy,
    RedesignedMatchPolicy,
    legacy_policy,
    redesigned_policy,
    round_half_up,
)
from app.services.skill_popularity import SkillPopularityLedger
from app.utils.database import require_user_record, list_users_except
from app.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


def paginate(items: List[Dict[str, Any]], limit: int, offset: int) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    page = items[offset:offset + limit]
    pagination = Pagination.of(limit=limit, offset=offset, total=len(items))
    return page, pagination.model_dump(by_alias=True)


def _rank(entries: List[Dict[str, Any]], key: str) -> List[Dict[str, Any]]:
    # Highest score first; uid keeps equal scores in a stable, reproducible order
    return sorted(entries, key=lambda entry: (-entry.get(key, 0), entry.get("uid") or ""))


def mentor_availability(mentor: Dict[str, Any]) -> Any:
    """Resolved slots for synced mentors, manual preference otherwise"""
    if mentor.get("calendar_synced") and mentor.get("available_slots"):
        return mentor["available_slots"]
    return mentor.get("availability") or {"days": [], "times": []}


class MatchingService:
    def __init__(
        self,
        supabase: Client,
        match_cache: Optional[MatchCacheStore] = None,
        denials: Optional[DenialStore] = None,
        legacy: LegacyMatchPolicy = legacy_policy,
        redesigned: RedesignedMatchPolicy = redesigned_policy,
    ):
        self.supabase = supabase
        self.match_cache = match_cache or MatchCacheStore(supabase)
        self.denials = denials or DenialStore(supabase)
        self.legacy = legacy
        self.redesigned = redesigned

    def _legacy_entry(self, learner: Dict[str, Any], candidate: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = self.legacy.score(learner, candidate)
        if result.skill_points <= 0 or result.total <= 0:
            return None
        return {
            "uid": candidate["uid"],
            "name": candidate.get("name"),
            "avatar_url": candidate.get("avatar_url"),
            "role": candidate.get("role"),
            "skills_offered": candidate["skills_offered"],
            "skills_wanted": candidate["skills_wanted"],
            "availability": candidate["availability"],
            "badge_count": candidate["badge_count"],
            "score": result.total,
            "skills_they_can_teach": result.skills_a_wants_from_b,
            "skills_i_can_teach": result.skills_b_wants_from_a,
            "breakdown": result.breakdown(),
        }

    async def compute_matches(self, learner: Dict[str, Any], denied: set) -> List[Dict[str, Any]]:
        """Score every other user from the learner's perspective"""
        candidates = await list_users_except(self.supabase, learner["uid"])
        entries = []
        for candidate in candidates:
            if candidate["uid"] in denied:
                continue
            entry = self._legacy_entry(learner, candidate)
            if entry is not None:
                entries.append(entry)
        return _rank(entries, "score")

    async def get_matches(self, learner_uid: str, limit: int = 10, offset: int = 0) -> Dict[str, Any]:
        """
        Cached legacy match list.

        A cached set younger than the staleness window is served as is (minus
        mentors denied since it was written); otherwise the list is recomputed
        and the cached set replaced as a whole.

        Time Complexity: O(n) in the number of users on a cache miss
        """
        learner = await require_user_record(self.supabase, learner_uid)
        denied = await self.denials.denied_mentors(learner_uid)

        cached = await self.match_cache.load(learner_uid)
        if cached and self.match_cache.is_fresh(cached):
            matches = _rank(
                [
                    {k: v for k, v in entry.items() if k != "cached_at"}
                    for entry in cached
                    if entry.get("uid") not in denied
                ],
                "score",
            )
            logger.info(f"[MATCH] Using cached matches for user {learner_uid}")
        else:
            logger.info(f"[MATCH] Computing matches for user {learner_uid}")
            matches = await self.compute_matches(learner, denied)
            await self.match_cache.replace(learner_uid, matches)

        page, pagination = paginate(matches, limit, offset)
        logger.info(f"[MATCH] Retrieved {len(page)} matches for user {learner_uid}")
        return {"matches": page, "pagination": pagination}

    async def refresh_matches(self, learner_uid: str) -> None:
        await self.match_cache.clear(learner_uid)

    async def deny_mentor(self, learner_uid: str, mentor_uid: str) -> None:
        """Permanently exclude a mentor from the learner's results"""
        if learner_uid == mentor_uid:
            raise ValidationError("You cannot deny yourself")
        await require_user_record(self.supabase, mentor_uid, resource="Mentor")
        await self.denials.deny(learner_uid, mentor_uid)
        await self.match_cache.clear(learner_uid)

    async def redesigned_matches(self, learner_uid: str, limit: int = 10, offset: int = 0) -> Dict[str, Any]:
        """
        Mentor search under the redesigned policy.
        Denied mentors and mentors offering nothing are skipped before scoring;
        candidates scoring 0 or less are dropped.
        """
        learner = await require_user_record(self.supabase, learner_uid)
        denied = await self.denials.denied_mentors(learner_uid)
        candidates = await list_users_except(self.supabase, learner_uid)

        matches = []
        for mentor in candidates:
            if mentor["uid"] in denied or not mentor["skills_offered"]:
                continue
            result = self.redesigned.score(learner, mentor)
            if result.total <= 0:
                continue
            matches.append(RedesignedMatch(
                uid=mentor["uid"],
                name=mentor.get("name"),
                avatar_url=mentor.get("avatar_url"),
                skills_offered=mentor["skills_offered"],
                matching_skills=result.matching_skills,
                badge_score=mentor["badge_score"],
                availability=mentor_availability(mentor),
                calendar_synced=mentor["calendar_synced"],
                match_score=result.total,
                skill_match_points=result.skill_points,
                availability_points=result.availability_points,
                reputation_points=result.reputation_points,
            ).model_dump())

        ranked = _rank(matches, "match_score")
        logger.info(f"[MATCH] Computed {len(ranked)} redesigned matches for user {learner_uid}")
        page, pagination = paginate(ranked, limit, offset)
        return {"matches": page, "pagination": pagination}

    async def explain(self, learner_uid: str, other_uid: str) -> Dict[str, Any]:
        learner = await require_user_record(self.supabase, learner_uid)
        other = await require_user_record(self.supabase, other_uid)
        result = self.legacy.score(learner, other)
        return MatchExplanation(
            match_score=result.total,
            mutual_skills=result.mutual,
            skills_a_wants_from_b=result.skills_a_wants_from_b,
            skills_b_wants_from_a=result.skills_b_wants_from_a,
            availability_overlap=result.availability_overlap,
            role_compatibility=result.role_compatible,
            breakdown=result.breakdown(),
        ).model_dump()

    async def stats(self, learner_uid: str) -> Dict[str, Any]:
        learner = await require_user_record(self.supabase, learner_uid)
        entries = await self.match_cache.load(learner_uid) or []
        scores = [entry.get("score") or 0 for entry in entries]
        average = int(round_half_up(sum(scores) / len(scores))) if scores else 0
        return MatchStats(
            total_matches=len(entries),
            average_match_score=average,
            highest_match_score=max(scores) if scores else 0,
            skills_offered_count=len(learner["skills_offered"]),
            skills_wanted_count=len(learner["skills_wanted"]),
        ).model_dump()

    async def mentor_profile(self, mentor_uid: str) -> Dict[str, Any]:
        mentor = await require_user_record(self.supabase, mentor_uid, resource="Mentor")
        return {
            "uid": mentor["uid"],
            "name": mentor.get("name"),
            "avatar_url": mentor.get("avatar_url"),
            "skills_offered": mentor["skills_offered"],
            "badge_score": mentor["badge_score"],
            "availability": mentor_availability(mentor),
            "calendar_synced": mentor["calendar_synced"],
        }

    async def popular_skills(self, limit: int = 20) -> List[Dict[str, Any]]:
        return await SkillPopularityLedger(self.supabase).popular(limit)
