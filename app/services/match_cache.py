"""
Match cache and denial store

Cached match entries live in the cached_matches table and are always replaced
as a whole through the replace_cached_matches function (delete-all then insert-all
in one transaction), so readers see either the old set or the new one.

Cache failures degrade to a miss. Denial failures propagate, since a denied
mentor reappearing is a correctness problem rather than a performance one.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set
import logging

from supabase import Client

from app.config.settings import settings
from app.utils.datetime_utils import get_current_timestamp, parse_datetime, format_datetime
from app.utils.exceptions import DatabaseError

logger = logging.getLogger(__name__)

CACHED_MATCHES_TABLE = "cached_matches"
DENIALS_TABLE = "denials"


class MatchCacheStore:
    """Per-learner snapshot of computed candidates with a staleness window"""

    def __init__(
        self,
        supabase: Client,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = get_current_timestamp,
    ):
        self.supabase = supabase
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.match_cache_ttl_seconds
        self.clock = clock

    async def load(self, learner_uid: str) -> Optional[List[Dict[str, Any]]]:
        """Cached entries ordered by score, or None when the cache could not be read"""
        try:
            response = (
                self.supabase.table(CACHED_MATCHES_TABLE)
                .select("*")
                .eq("learner_uid", learner_uid)
                .order("score", desc=True)
                .execute()
            )
        except Exception as e:
            logger.warning(f"[CACHE] Could not read cached matches for {learner_uid}: {e}")
            return None

        entries = []
        for row in response.data or []:
            entry = dict(row.get("entry") or {})
            entry["uid"] = row.get("candidate_uid", entry.get("uid"))
            entry["cached_at"] = row.get("cached_at")
            entries.append(entry)
        return entries

    def is_fresh(self, entries: List[Dict[str, Any]]) -> bool:
        """True when the newest entry is younger than the staleness window"""
        timestamps = [ts for ts in (parse_datetime(e.get("cached_at")) for e in entries) if ts is not None]
        if not timestamps:
            return False
        age = (self.clock() - max(timestamps)).total_seconds()
        return age < self.ttl_seconds

    async def replace(self, learner_uid: str, entries: List[Dict[str, Any]]) -> None:
        """Atomically swap the learner's cached set for `entries`"""
        cached_at = format_datetime(self.clock())
        payload = [
            {
                "candidate_uid": entry["uid"],
                "score": entry.get("score", 0),
                "entry": {k: v for k, v in entry.items() if k != "cached_at"},
                "cached_at": cached_at,
            }
            for entry in entries
        ]
        try:
            self.supabase.rpc(
                "replace_cached_matches",
                {"p_learner_uid": learner_uid, "p_entries": payload},
            ).execute()
            logger.info(f"[CACHE] Cached {len(payload)} matches for user {learner_uid}")
        except Exception as e:
            logger.warning(f"[CACHE] Could not cache matches for {learner_uid}: {e}")

    async def clear(self, learner_uid: str) -> None:
        try:
            self.supabase.table(CACHED_MATCHES_TABLE).delete().eq("learner_uid", learner_uid).execute()
            logger.info(f"[CACHE] Cleared cached matches for user {learner_uid}")
        except Exception as e:
            logger.warning(f"[CACHE] Could not clear cached matches for {learner_uid}: {e}")


class DenialStore:
    """Permanent learner → mentor exclusions"""

    def __init__(self, supabase: Client, clock: Callable[[], datetime] = get_current_timestamp):
        self.supabase = supabase
        self.clock = clock

    async def deny(self, learner_uid: str, mentor_uid: str) -> None:
        """Record a denial; repeating it is a no-op"""
        record = {
            "learner_uid": learner_uid,
            "mentor_uid": mentor_uid,
            "denied_at": format_datetime(self.clock()),
            "reason": "user_rejection",
        }
        try:
            self.supabase.table(DENIALS_TABLE).upsert(
                record, on_conflict="learner_uid,mentor_uid"
            ).execute()
        except Exception as e:
            raise DatabaseError(f"Error storing denial: {str(e)}")
        logger.info(f"[MATCH] Stored denial: {learner_uid} rejected {mentor_uid}")

    async def denied_mentors(self, learner_uid: str) -> Set[str]:
        try:
            response = (
                self.supabase.table(DENIALS_TABLE)
                .select("mentor_uid")
                .eq("learner_uid", learner_uid)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Error fetching denials: {str(e)}")
        return {row["mentor_uid"] for row in (response.data or []) if row.get("mentor_uid")}
