"""
User service
Registration, profile reads/updates and account deletion
Downstream effects of a profile write (cached matches, skill popularity,
hot cache) are handled by ProfileSkillsChanged subscribers
"""

from typing import Any, Dict, Optional
import logging

from supabase import Client

from app.schemas.user import RegisterRequest, ProfileUpdateRequest
from app.services.cache_service import CacheService, user_cache_key
from app.services.events import EventBus, ProfileSkillsChanged
from app.services.identity import VerifiedIdentity
from app.services.skill_overlap import dedupe_skills, normalize_skill
from app.services.skill_popularity import SkillPopularityLedger
from app.utils.database import (
    get_user_record,
    require_user_record,
    insert_user_record,
    update_user_fields,
    delete_user_record,
    list_all_users,
)
from app.utils.datetime_utils import get_current_timestamp, format_datetime
from app.utils.exceptions import AuthorizationError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)

SKILL_FIELDS = ("skills_offered", "skills_wanted")


class UserService:
    def __init__(self, supabase: Client, cache: CacheService, events: EventBus):
        self.supabase = supabase
        self.cache = cache
        self.events = events

    async def create_user(self, identity: VerifiedIdentity, request: RegisterRequest) -> Dict[str, Any]:
        """
        Create the user record for a verified identity

        Raises:
            ConflictError: a record already exists for this uid
        """
        if await get_user_record(self.supabase, identity.uid):
            raise ConflictError("User already registered")

        now = format_datetime(get_current_timestamp())
        record = {
            "uid": identity.uid,
            "email": (identity.email or "").lower() or None,
            "name": request.name,
            "role": request.role,
            "avatar_url": str(request.avatar_url) if request.avatar_url else None,
            "skills_offered": dedupe_skills(request.skills_offered),
            "skills_wanted": dedupe_skills(request.skills_wanted),
            "availability": request.availability.model_dump(),
            "badge_score": 0,
            "badge_count": 0,
            "total_badge_points": 0,
            "calendar_connected": False,
            "calendar_synced": False,
            "calendar_busy_times": [],
            "available_slots": [],
            "created_at": now,
            "updated_at": now,
        }
        user = await insert_user_record(self.supabase, record)
        logger.info(f"[AUTH] Registered user {identity.uid} as {request.role}")

        await self.events.publish(ProfileSkillsChanged(
            uid=identity.uid,
            current_offered=tuple(user["skills_offered"]),
            changed_fields=("skills_offered", "skills_wanted", "availability"),
        ))
        return user

    async def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        """User record, served from the hot cache when possible"""
        key = user_cache_key(uid)
        cached = await self.cache.get_json(key)
        if cached is not None:
            return cached

        user = await get_user_record(self.supabase, uid)
        if user is not None:
            await self.cache.set_json(key, user)
        return user

    async def require_user(self, uid: str) -> Dict[str, Any]:
        user = await self.get_user(uid)
        if user is None:
            raise NotFoundError("User", uid)
        return user

    async def update_profile(self, uid: str, request: ProfileUpdateRequest) -> Dict[str, Any]:
        previous = await require_user_record(self.supabase, uid)
        changes = request.changes()
        for field in SKILL_FIELDS:
            if field in changes:
                changes[field] = dedupe_skills(changes[field])

        updated = await update_user_fields(self.supabase, uid, changes)
        logger.info(f"[PROFILE] Updated {sorted(changes)} for user {uid}")

        await self.events.publish(ProfileSkillsChanged(
            uid=uid,
            previous_offered=tuple(previous["skills_offered"]),
            current_offered=tuple(updated["skills_offered"]),
            changed_fields=tuple(changes),
        ))
        return updated

    async def mark_calendar_connected(self, uid: str) -> Dict[str, Any]:
        updated = await update_user_fields(self.supabase, uid, {"calendar_connected": True})
        await self.cache.delete(user_cache_key(uid))
        logger.info(f"[CALENDAR] Calendar connected for user {uid}")
        return updated

    async def delete_user(self, requester: Dict[str, Any], uid: str) -> None:
        """
        Delete an account; users may delete themselves, admins anyone.
        Denials and cached matches go with it through the foreign keys.
        """
        if requester["uid"] != uid and requester.get("role") != "admin":
            raise AuthorizationError("You can only delete your own account")

        target = await require_user_record(self.supabase, uid)
        await delete_user_record(self.supabase, uid)
        logger.info(f"[PROFILE] Deleted user {uid} (requested by {requester['uid']})")

        await self.events.publish(ProfileSkillsChanged(
            uid=uid,
            previous_offered=tuple(target["skills_offered"]),
            deleted=True,
        ))

    async def admin_stats(self) -> Dict[str, Any]:
        users = await list_all_users(self.supabase)

        users_by_role: Dict[str, int] = {}
        unique_skills = set()
        for user in users:
            role = user.get("role") or "unknown"
            users_by_role[role] = users_by_role.get(role, 0) + 1
            for skill in user["skills_offered"] + user["skills_wanted"]:
                unique_skills.add(normalize_skill(skill))

        popular = await SkillPopularityLedger(self.supabase).popular(10)

        return {
            "total_users": len(users),
            "users_by_role": users_by_role,
            "popular_skills": popular,
            "total_unique_skills": len(unique_skills),
        }
