"""
Skill popularity ledger
Global per-skill counters keyed by the lowercased name
"""

from typing import Any, Dict, Iterable, List
import logging

from supabase import Client

from app.schemas.match import PopularSkill
from app.services.events import ProfileSkillsChanged
from app.services.skill_overlap import normalize_skill
from app.utils.exceptions import DatabaseError

logger = logging.getLogger(__name__)

SKILL_POPULARITY_TABLE = "skill_popularity"


class SkillPopularityLedger:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def adjust(self, skill: str, delta: int) -> None:
        """Atomically add delta to a skill's counter, creating it when missing"""
        try:
            self.supabase.rpc(
                "adjust_skill_popularity",
                {"p_key": normalize_skill(skill), "p_name": skill.strip(), "p_delta": delta},
            ).execute()
        except Exception as e:
            raise DatabaseError(f"Error updating skill popularity: {str(e)}")
        logger.info(f"[POPULARITY] {skill.strip()} {'+' if delta > 0 else ''}{delta}")

    async def apply_change(self, previous: Iterable[str], current: Iterable[str]) -> None:
        """Increment newly offered skills and decrement removed ones"""
        previous_keys = {normalize_skill(s): s for s in previous if s and s.strip()}
        current_keys = {normalize_skill(s): s for s in current if s and s.strip()}

        for key, skill in previous_keys.items():
            if key not in current_keys:
                await self.adjust(skill, -1)
        for key, skill in current_keys.items():
            if key not in previous_keys:
                await self.adjust(skill, 1)

    async def handle(self, event: ProfileSkillsChanged) -> None:
        if event.deleted:
            await self.apply_change(event.previous_offered, ())
        else:
            await self.apply_change(event.previous_offered, event.current_offered)

    async def popular(self, limit: int = 20) -> List[Dict[str, Any]]:
        try:
            response = (
                self.supabase.table(SKILL_POPULARITY_TABLE)
                .select("*")
                .order("count", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Error fetching popular skills: {str(e)}")
        return [
            PopularSkill(name=row.get("name"), popularity=row.get("count") or 0).model_dump()
            for row in (response.data or [])
        ]
