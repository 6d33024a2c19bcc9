"""
Database utility functions for the users and sessions tables
Every mutation is a targeted field-level update keyed on the primary key
"""

from typing import Optional, List, Dict, Any
import json
from supabase import Client
from app.utils.exceptions import ConflictError, NotFoundError, DatabaseError
from app.utils.datetime_utils import get_current_timestamp, format_datetime


USERS_TABLE = "users"
SESSIONS_TABLE = "sessions"

SESSION_STATUS_CONFIRMED = "confirmed"

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


def sanitize_user_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Sanitize a user row from the database
    Converts None values to defaults so scoring code can rely on field types

    Args:
        record: Raw user row

    Returns:
        Copy of the row with list, availability and reputation fields normalized
    """
    if not record:
        return record

    sanitized = record.copy()

    list_fields = ['skills_offered', 'skills_wanted', 'calendar_busy_times', 'available_slots']
    for field in list_fields:
        if not isinstance(sanitized.get(field), list):
            sanitized[field] = []

    availability = sanitized.get('availability')
    if not isinstance(availability, dict):
        availability = {}
    sanitized['availability'] = {
        'days': list(availability.get('days') or []),
        'times': list(availability.get('times') or []),
    }

    sanitized['badge_score'] = float(sanitized.get('badge_score') or 0)
    sanitized['badge_count'] = int(sanitized.get('badge_count') or 0)
    sanitized['total_badge_points'] = float(sanitized.get('total_badge_points') or 0)
    sanitized['calendar_connected'] = bool(sanitized.get('calendar_connected'))
    sanitized['calendar_synced'] = bool(sanitized.get('calendar_synced'))

    if not sanitized.get('role'):
        sanitized['role'] = 'student'
    for field in ['name', 'email', 'avatar_url']:
        sanitized.setdefault(field, None)

    return sanitized


async def get_user_record(supabase: Client, uid: str) -> Optional[Dict[str, Any]]:
    """Get a user by uid, or None"""
    try:
        response = supabase.table(USERS_TABLE).select("*").eq("uid", uid).limit(1).execute()
        if response.data:
            return sanitize_user_record(response.data[0])
        return None
    except Exception as e:
        raise DatabaseError(f"Error fetching user: {str(e)}")


async def require_user_record(supabase: Client, uid: str, resource: str = "User") -> Dict[str, Any]:
    user = await get_user_record(supabase, uid)
    if user is None:
        raise NotFoundError(resource, uid)
    return user


async def list_users_except(supabase: Client, uid: str) -> List[Dict[str, Any]]:
    """
    All users other than uid, in store order
    Used as the candidate pool for matching
    """
    try:
        response = supabase.table(USERS_TABLE).select("*").neq("uid", uid).execute()
        return [sanitize_user_record(row) for row in (response.data or [])]
    except Exception as e:
        raise DatabaseError(f"Error fetching users for matching: {str(e)}")


async def list_all_users(supabase: Client) -> List[Dict[str, Any]]:
    try:
        response = supabase.table(USERS_TABLE).select("*").execute()
        return [sanitize_user_record(row) for row in (response.data or [])]
    except Exception as e:
        raise DatabaseError(f"Error fetching users: {str(e)}")


async def insert_user_record(supabase: Client, record: Dict[str, Any]) -> Dict[str, Any]:
    try:
        response = supabase.table(USERS_TABLE).insert(record).execute()
    except Exception as e:
        if getattr(e, "code", None) == UNIQUE_VIOLATION:
            raise ConflictError("User already registered")
        raise DatabaseError(f"Error creating user: {str(e)}")
    if not response.data:
        raise DatabaseError("Error creating user: no row returned")
    return sanitize_user_record(response.data[0])


async def update_user_fields(supabase: Client, uid: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Update only the given columns of one user and return the updated row
    """
    payload = dict(fields)
    payload["updated_at"] = format_datetime(get_current_timestamp())
    try:
        response = supabase.table(USERS_TABLE).update(payload).eq("uid", uid).execute()
    except Exception as e:
        raise DatabaseError(f"Error updating user: {str(e)}")
    if not response.data:
        raise NotFoundError("User", uid)
    return sanitize_user_record(response.data[0])


async def delete_user_record(supabase: Client, uid: str) -> bool:
    try:
        response = supabase.table(USERS_TABLE).delete().eq("uid", uid).execute()
        return bool(response.data)
    except Exception as e:
        raise DatabaseError(f"Error deleting user: {str(e)}")


async def get_session_record(supabase: Client, session_id: str) -> Optional[Dict[str, Any]]:
    try:
        response = supabase.table(SESSIONS_TABLE).select("*").eq("id", session_id).limit(1).execute()
        return response.data[0] if response.data else None
    except Exception as e:
        raise DatabaseError(f"Error fetching session: {str(e)}")


async def list_confirmed_sessions(supabase: Client, uid: str) -> List[Dict[str, Any]]:
    """
    Confirmed sessions in which uid participates, either as organizer or participant
    """
    try:
        response = (
            supabase.table(SESSIONS_TABLE)
            .select("*")
            .contains("participants", json.dumps([uid]))
            .eq("status", SESSION_STATUS_CONFIRMED)
            .execute()
        )
        return response.data if response.data else []
    except Exception as e:
        raise DatabaseError(f"Error fetching booked sessions: {str(e)}")
