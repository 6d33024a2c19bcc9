"""
Shared FastAPI dependencies
Every service is built per request from injectable collaborators, so tests
replace the Supabase client, cache and calendar client with dependency_overrides
"""

from typing import Any, Dict, Optional
import logging

from fastapi import Depends, Header
from supabase import Client

from app.db.client import get_supabase_client
from app.services.cache_service import CacheService, get_cache_service, user_cache_key
from app.services.calendar_service import GoogleCalendarClient, get_calendar_client
from app.services.calendar_sync import CalendarSyncService
from app.services.events import EventBus, ProfileSkillsChanged
from app.services.identity import IdentityVerifier, VerifiedIdentity, extract_bearer_token
from app.services.match_cache import MatchCacheStore
from app.services.matching_service import MatchingService
from app.services.session_booking import SessionBookingService
from app.services.skill_popularity import SkillPopularityLedger
from app.services.user_service import UserService
from app.utils.exceptions import AuthorizationError, NotFoundError

logger = logging.getLogger(__name__)


def build_event_bus(supabase: Client, cache: CacheService) -> EventBus:
    """
    Standard ProfileSkillsChanged wiring:
    cached matches are cleared, skill popularity adjusted and the hot cache dropped
    """
    match_cache = MatchCacheStore(supabase)
    ledger = SkillPopularityLedger(supabase)

    async def invalidate_matches(event: ProfileSkillsChanged) -> None:
        if not event.deleted:
            await match_cache.clear(event.uid)

    async def invalidate_user_cache(event: ProfileSkillsChanged) -> None:
        await cache.delete(user_cache_key(event.uid))

    bus = EventBus()
    bus.subscribe(ProfileSkillsChanged, invalidate_matches)
    bus.subscribe(ProfileSkillsChanged, ledger.handle)
    bus.subscribe(ProfileSkillsChanged, invalidate_user_cache)
    return bus


def get_event_bus(
    supabase: Client = Depends(get_supabase_client),
    cache: CacheService = Depends(get_cache_service),
) -> EventBus:
    return build_event_bus(supabase, cache)


def get_user_service(
    supabase: Client = Depends(get_supabase_client),
    cache: CacheService = Depends(get_cache_service),
    events: EventBus = Depends(get_event_bus),
) -> UserService:
    return UserService(supabase, cache, events)


def get_matching_service(supabase: Client = Depends(get_supabase_client)) -> MatchingService:
    return MatchingService(supabase)


def get_calendar_sync_service(
    supabase: Client = Depends(get_supabase_client),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
    events: EventBus = Depends(get_event_bus),
) -> CalendarSyncService:
    return CalendarSyncService(supabase, calendar, events)


def get_booking_service(
    supabase: Client = Depends(get_supabase_client),
    cache: CacheService = Depends(get_cache_service),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
) -> SessionBookingService:
    return SessionBookingService(supabase, cache, calendar)


async def get_verified_identity(
    authorization: Optional[str] = Header(default=None),
    supabase: Client = Depends(get_supabase_client),
) -> VerifiedIdentity:
    """Verified token only; used where no user record exists yet"""
    token = extract_bearer_token(authorization)
    return await IdentityVerifier(supabase).verify(token)


async def get_current_user(
    identity: VerifiedIdentity = Depends(get_verified_identity),
    users: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    """Verified token plus an existing user record"""
    user = await users.get_user(identity.uid)
    if user is None:
        raise NotFoundError("User", identity.uid)
    return user


def require_role(*roles: str):
    """
    Usage:
        admin: Dict[str, Any] = Depends(require_role("admin"))
    """
    async def dependency(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user.get("role") not in roles:
            logger.warning(f"[AUTH] User {user['uid']} with role {user.get('role')} denied; requires {roles}")
            raise AuthorizationError(f"Access denied. {' or '.join(roles).capitalize()} role required.")
        return user
    return dependency
