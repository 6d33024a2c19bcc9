"""
Shared fixtures: in-memory doubles for Supabase, Redis and the calendar API
"""

from copy import deepcopy
import json
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.db.client import get_supabase_client
from app.main import app
from app.services.cache_service import CacheService, get_cache_service
from app.services.availability_resolver import TimeInterval
from app.services.calendar_service import get_calendar_client
from app.utils.exceptions import ExternalServiceError
from app.utils.rate_limiter import reset_rate_limiters


# Monday 19 October 2026, 08:30 in Asia/Kolkata
FIXED_NOW = datetime(2026, 10, 19, 3, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


# Columns stored as jsonb; PostgREST only accepts JSON-encoded containment filters on them
JSONB_COLUMNS = {("sessions", "participants")}

PRIMARY_KEYS = {"users": "uid", "sessions": "id"}


class FakeAPIError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


class FakeResponse:
    def __init__(self, data: Any):
        self.data = data


class FakeQuery:
    """Subset of the PostgREST query builder used by the services"""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.operation = "select"
        self.columns = "*"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List = []
        self.order_by: Optional[tuple] = None
        self.limit_count: Optional[int] = None
        self.range_bounds: Optional[tuple] = None

    def select(self, columns: str = "*"):
        self.columns = columns
        return self

    def insert(self, payload):
        self.operation, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.operation, self.payload = "update", payload
        return self

    def upsert(self, payload, on_conflict: str = ""):
        self.operation, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def contains(self, column, values):
        self.db.contains_filters.append((self.table_name, column, values))
        if (self.table_name, column) in JSONB_COLUMNS:
            if not isinstance(values, str):
                raise FakeAPIError(f"invalid input syntax for type json: {values}", code="22P02")
            values = json.loads(values)
        self.filters.append(lambda row: all(v in (row.get(column) or []) for v in values))
        return self

    def order(self, column, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, count: int):
        self.limit_count = count
        return self

    def range(self, start: int, end: int):
        self.range_bounds = (start, end)
        return self

    def _matches(self, row) -> bool:
        return all(check(row) for check in self.filters)

    def _project(self, row):
        if self.columns == "*":
            return deepcopy(row)
        return {column.strip(): deepcopy(row.get(column.strip())) for column in self.columns.split(",")}

    def execute(self) -> FakeResponse:
        if self.table_name in self.db.failing_tables:
            raise Exception(f"{self.table_name} unavailable")

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.operation == "insert":
            records = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [deepcopy(record) for record in records]
            self.db.check_primary_key(self.table_name, inserted)
            rows.extend(inserted)
            return FakeResponse(deepcopy(inserted))

        if self.operation == "upsert":
            keys = [key.strip() for key in (self.on_conflict or "").split(",") if key.strip()]
            record = deepcopy(self.payload)
            for row in rows:
                if keys and all(row.get(k) == record.get(k) for k in keys):
                    row.update(record)
                    return FakeResponse([deepcopy(row)])
            rows.append(record)
            return FakeResponse([deepcopy(record)])

        matched = [row for row in rows if self._matches(row)]

        if self.operation == "update":
            for row in matched:
                row.update(deepcopy(self.payload))
            return FakeResponse([deepcopy(row) for row in matched])

        if self.operation == "delete":
            self.db.tables[self.table_name] = [row for row in rows if not self._matches(row)]
            if self.table_name == "users":
                for row in matched:
                    self.db.cascade_user_delete(row["uid"])
            return FakeResponse([deepcopy(row) for row in matched])

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(matched, key=lambda row: row.get(column) or 0, reverse=desc)
        if self.range_bounds:
            start, end = self.range_bounds
            matched = matched[start:end + 1]
        if self.limit_count is not None:
            matched = matched[:self.limit_count]
        return FakeResponse([self._project(row) for row in matched])


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self) -> FakeResponse:
        self.db.rpc_calls.append((self.name, deepcopy(self.params)))
        handler = getattr(self.db, f"_rpc_{self.name}")
        return FakeResponse(handler(**self.params))


class FakeAuth:
    def __init__(self):
        self.tokens: Dict[str, tuple] = {}

    def get_user(self, token: str):
        if token not in self.tokens:
            raise Exception("invalid JWT")
        uid, email = self.tokens[token]
        return SimpleNamespace(user=SimpleNamespace(id=uid, email=email))


class FakeSupabase:
    """In-memory stand-in for the Supabase client, including the database functions"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failing_tables = set()
        self.rpc_calls: List[tuple] = []
        self.rating_conflicts = 0
        self.contains_filters: List[tuple] = []
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def check_primary_key(self, table: str, records: List[Dict[str, Any]]) -> None:
        key = PRIMARY_KEYS.get(table)
        if key is None:
            return
        existing = {row.get(key) for row in self.rows(table)}
        for record in records:
            if record.get(key) in existing:
                raise FakeAPIError(f'duplicate key value violates unique constraint "{table}_pkey"', code="23505")
            existing.add(record.get(key))

    def cascade_user_delete(self, uid: str) -> None:
        for table in ("denials", "cached_matches"):
            self.tables[table] = [row for row in self.rows(table) if row.get("learner_uid") != uid]

    def _rpc_replace_cached_matches(self, p_learner_uid, p_entries):
        if "cached_matches" in self.failing_tables:
            raise Exception("cached_matches unavailable")
        kept = [row for row in self.rows("cached_matches") if row["learner_uid"] != p_learner_uid]
        for entry in p_entries:
            kept.append({
                "learner_uid": p_learner_uid,
                "candidate_uid": entry["candidate_uid"],
                "score": entry["score"],
                "entry": deepcopy(entry["entry"]),
                "cached_at": entry["cached_at"],
            })
        self.tables["cached_matches"] = kept
        return None

    def _rpc_apply_session_rating(
        self, p_mentor_uid, p_expected_count, p_badge_count, p_total_points,
        p_badge_score, p_session_id, p_rater_uid, p_rating
    ):
        if self.rating_conflicts > 0:
            self.rating_conflicts -= 1
            return False
        mentor = next((row for row in self.rows("users") if row["uid"] == p_mentor_uid), None)
        if mentor is None or int(mentor.get("badge_count") or 0) != p_expected_count:
            return False
        mentor.update({
            "badge_count": p_badge_count,
            "total_badge_points": p_total_points,
            "badge_score": p_badge_score,
        })
        self.rows("session_ratings").append({
            "session_id": p_session_id,
            "rater_uid": p_rater_uid,
            "mentor_uid": p_mentor_uid,
            "rating": p_rating,
        })
        return True

    def _rpc_book_session(
        self, p_id, p_organizer_uid, p_participant_uid, p_start_time, p_end_time, p_skill_topic, p_session_type
    ):
        requested = TimeInterval.from_values(p_start_time, p_end_time)
        for uid in (p_organizer_uid, p_participant_uid):
            for row in self.rows("sessions"):
                if uid not in (row.get("participants") or []) or row.get("status") != "confirmed":
                    continue
                existing = TimeInterval.from_values(row.get("start_time"), row.get("end_time"))
                if existing and existing.overlaps(requested.start, requested.end):
                    return {"booked": False, "conflict_uid": uid}
        record = {
            "id": p_id,
            "organizer_uid": p_organizer_uid,
            "participant_uid": p_participant_uid,
            "participants": [p_organizer_uid, p_participant_uid],
            "start_time": p_start_time,
            "end_time": p_end_time,
            "skill_topic": p_skill_topic,
            "session_type": p_session_type,
            "status": "confirmed",
        }
        self.check_primary_key("sessions", [record])
        self.rows("sessions").append(record)
        return {"booked": True}

    def _rpc_adjust_skill_popularity(self, p_key, p_name, p_delta):
        for row in self.rows("skill_popularity"):
            if row["key"] == p_key:
                row["count"] += p_delta
                return None
        self.rows("skill_popularity").append({"key": p_key, "name": p_name, "count": p_delta})
        return None


class FakeRedis:
    def __init__(self):
        self.store: Dict[str, str] = {}
        self.fail = False

    async def get(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self.fail:
            raise ConnectionError("redis down")
        self.store[key] = value

    async def delete(self, *keys):
        if self.fail:
            raise ConnectionError("redis down")
        for key in keys:
            self.store.pop(key, None)

    async def aclose(self):
        pass


class StubCalendar:
    def __init__(self):
        self.busy: List[Dict[str, str]] = []
        self.fail_events = False
        self.created: List[Dict[str, Any]] = []

    async def get_busy_times(self, access_token, days=None):
        return list(self.busy)

    async def create_session_event(self, access_token, summary, start_time, end_time, attendee_email, description=None):
        if self.fail_events:
            raise ExternalServiceError("Failed to create calendar event")
        self.created.append({"summary": summary, "attendee": attendee_email})
        return {"id": "evt-1", "htmlLink": "https://calendar.example/evt-1"}


def make_user(uid: str, **overrides) -> Dict[str, Any]:
    user = {
        "uid": uid,
        "email": f"{uid}@example.com",
        "name": uid.capitalize(),
        "role": "student",
        "avatar_url": None,
        "skills_offered": [],
        "skills_wanted": [],
        "availability": {"days": [], "times": []},
        "badge_score": 0,
        "badge_count": 0,
        "total_badge_points": 0,
        "calendar_connected": False,
        "calendar_synced": False,
        "calendar_busy_times": [],
        "available_slots": [],
        "created_at": "2026-10-01T00:00:00+00:00",
        "updated_at": "2026-10-01T00:00:00+00:00",
    }
    user.update(overrides)
    return user


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def add_user(supabase):
    def _add(uid: str, **overrides) -> Dict[str, Any]:
        user = make_user(uid, **overrides)
        supabase.rows("users").append(user)
        return user
    return _add


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheService(fake_redis, default_ttl=60)


@pytest.fixture
def calendar():
    return StubCalendar()


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    reset_rate_limiters()
    yield
    reset_rate_limiters()


@pytest.fixture
def client(supabase, cache, calendar):
    app.dependency_overrides[get_supabase_client] = lambda: supabase
    app.dependency_overrides[get_cache_service] = lambda: cache
    app.dependency_overrides[get_calendar_client] = lambda: calendar
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(supabase):
    """Register a bearer token for uid and return the auth header"""
    def _login(uid: str, email: Optional[str] = None) -> Dict[str, str]:
        token = f"token-{uid}"
        supabase.auth.tokens[token] = (uid, email or f"{uid}@example.com")
        return {"Authorization": f"Bearer {token}"}
    return _login
