"""
HTTP surface tests through FastAPI's TestClient
"""

import pytest
from fastapi import HTTPException, Request

from app.config.settings import settings
from app.utils.rate_limiter import get_rate_limiter
from app.utils.request_validator import validate_request_size


class TestAuthRoutes:
    def test_register_then_login(self, client, login, supabase):
        headers = login("u1", "U1@Example.com")

        response = client.post("/api/auth/register", headers=headers, json={
            "name": "Uma",
            "skills_offered": ["Python"],
            "availability": {"days": ["mon"], "times": ["10:00-11:00"]},
        })

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user"]["role"] == "student"
        assert body["data"]["user"]["availability"]["days"] == ["Monday"]

        login_response = client.post("/api/auth/login", headers=headers)
        assert login_response.json()["data"]["user"]["uid"] == "u1"

    def test_login_without_registration(self, client, login):
        response = client.post("/api/auth/login", headers=login("newbie", "new@example.com"))

        assert response.status_code == 200
        assert response.json()["data"] == {"needsRegistration": True, "email": "new@example.com", "uid": "newbie"}

    def test_duplicate_registration_conflicts(self, client, login, add_user):
        add_user("u1")
        response = client.post("/api/auth/register", headers=login("u1"), json={"name": "Again"})

        assert response.status_code == 409
        assert response.json() == {"success": False, "error": "User already registered", "statusCode": 409}

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Token abc"}, {"Authorization": "Bearer unknown"}])
    def test_bad_credentials(self, client, headers):
        response = client.post("/api/auth/login", headers=headers)

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_validation_errors_are_400(self, client, login):
        response = client.post("/api/auth/register", headers=login("u1"), json={
            "name": "X",
            "availability": {"days": ["Someday"], "times": []},
        })

        body = response.json()
        assert response.status_code == 400
        assert body["error"] == "Validation failed"
        assert {detail["field"] for detail in body["details"]} >= {"name", "availability.days"}

    def test_verify_requires_registered_user(self, client, login, add_user):
        assert client.post("/api/auth/verify", headers=login("ghost")).status_code == 404
        add_user("u1")
        assert client.post("/api/auth/verify", headers=login("u1")).json()["data"]["user"]["uid"] == "u1"


class TestProfileRoutes:
    def test_me_and_public_profile(self, client, login, add_user):
        add_user("u1", skills_wanted=["Secret wish"], calendar_busy_times=[{"start": "a", "end": "b"}])

        me = client.get("/api/profile/me", headers=login("u1")).json()["data"]["user"]
        public = client.get("/api/profile/u1").json()["data"]["user"]

        assert me["email"] == "u1@example.com"
        assert me["skills_wanted"] == ["Secret wish"]
        assert "email" not in public
        assert "skills_wanted" not in public
        assert "calendar_busy_times" not in public

    def test_public_profile_unknown(self, client):
        response = client.get("/api/profile/ghost")
        assert response.status_code == 404
        assert response.json()["error"] == "User not found: ghost"

    def test_update_requires_a_field(self, client, login, add_user):
        add_user("u1")
        assert client.post("/api/profile/update", headers=login("u1"), json={}).status_code == 400

        response = client.post("/api/profile/update", headers=login("u1"), json={"skills_offered": ["Go"]})
        assert response.status_code == 200
        assert response.json()["data"]["user"]["skills_offered"] == ["Go"]

    def test_admin_stats_requires_admin(self, client, login, add_user):
        add_user("s1")
        add_user("root", role="admin")

        assert client.get("/api/profile/admin/stats", headers=login("s1")).status_code == 403
        stats = client.get("/api/profile/admin/stats", headers=login("root")).json()["data"]["stats"]
        assert stats["total_users"] == 2

    def test_calendar_connect_and_sync(self, client, login, add_user, calendar):
        add_user("u1")
        headers = login("u1")

        assert client.post("/api/profile/calendar/connect", headers=headers).status_code == 200
        response = client.post("/api/profile/calendar/sync", headers=headers, json={"accessToken": "tok"})

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["busy_times_count"] == 0
        assert len(data["available_slots"]) == len(data["slot_labels"])

    def test_book_and_rate(self, client, login, add_user, supabase):
        add_user("learner")
        add_user("mentor", role="mentor")
        headers = login("learner")

        booked = client.post("/api/profile/calendar/book-session", headers=headers, json={
            "participantUid": "mentor",
            "startTime": "2026-10-19T10:00:00+05:30",
            "endTime": "2026-10-19T11:00:00+05:30",
            "skillTopic": "Python",
        })
        assert booked.status_code == 200
        session_id = booked.json()["data"]["sessionId"]

        clash = client.post("/api/profile/calendar/book-session", headers=headers, json={
            "participantUid": "mentor",
            "startTime": "2026-10-19T10:30:00+05:30",
            "endTime": "2026-10-19T11:30:00+05:30",
            "skillTopic": "Python",
        })
        assert clash.status_code == 409

        rated = client.post("/api/profile/rate-session", headers=headers, json={
            "sessionId": session_id, "mentorUid": "mentor", "rating": 5,
        })
        assert rated.json()["data"]["mentor"]["badge_score"] == 5.0

        invalid = client.post("/api/profile/rate-session", headers=headers, json={
            "sessionId": session_id, "mentorUid": "mentor", "rating": 6,
        })
        assert invalid.status_code == 400

    def test_book_rejects_inverted_interval(self, client, login, add_user):
        add_user("learner")
        response = client.post("/api/profile/calendar/book-session", headers=login("learner"), json={
            "participantUid": "mentor",
            "startTime": "2026-10-19T11:00:00+05:30",
            "endTime": "2026-10-19T10:00:00+05:30",
            "skillTopic": "Python",
        })
        assert response.status_code == 400

    def test_delete_profile(self, client, login, add_user, supabase):
        add_user("u1")
        add_user("u2")

        assert client.delete("/api/profile/u2", headers=login("u1")).status_code == 403
        assert client.delete("/api/profile/u1", headers=login("u1")).status_code == 200
        assert [row["uid"] for row in supabase.rows("users")] == ["u2"]


class TestMatchRoutes:
    @pytest.fixture
    def people(self, add_user):
        add_user("learner", skills_wanted=["Python"], skills_offered=["Guitar"])
        add_user("alice", role="mentor", skills_offered=["Python"], badge_score=5)
        add_user("bob", role="mentor", skills_offered=["python"])

    def test_matches_with_pagination(self, client, login, people):
        response = client.get("/api/match?limit=1&offset=0", headers=login("learner"))

        data = response.json()["data"]
        assert response.status_code == 200
        assert len(data["matches"]) == 1
        assert data["pagination"] == {"limit": 1, "offset": 0, "total": 2, "hasMore": True}

    @pytest.mark.parametrize("query", ["limit=0", "limit=101", "offset=-1"])
    def test_pagination_bounds(self, client, login, people, query):
        assert client.get(f"/api/match?{query}", headers=login("learner")).status_code == 400

    def test_deny_excludes_from_redesigned(self, client, login, people):
        headers = login("learner")

        before = client.get("/api/match/redesigned", headers=headers).json()["data"]["matches"]
        assert [m["uid"] for m in before] == ["alice", "bob"]
        assert before[0]["match_score"] == 8.0

        assert client.post("/api/match/deny", headers=headers, json={"mentorUid": "alice"}).status_code == 200

        after = client.get("/api/match/redesigned", headers=headers).json()["data"]["matches"]
        assert [m["uid"] for m in after] == ["bob"]

    def test_refresh_stats_explain_and_mentor(self, client, login, people):
        headers = login("learner")

        assert client.post("/api/match/refresh", headers=headers).status_code == 200
        client.get("/api/match", headers=headers)
        stats = client.get("/api/match/stats", headers=headers).json()["data"]["stats"]
        explanation = client.get("/api/match/explain/alice", headers=headers).json()["data"]["explanation"]
        mentor = client.get("/api/match/mentor/alice", headers=headers).json()["data"]["mentor"]

        assert stats["total_matches"] == 2
        assert explanation["skills_a_wants_from_b"] == ["Python"]
        assert mentor["badge_score"] == 5.0

    def test_popular_skills_is_public(self, client, supabase):
        supabase.rows("skill_popularity").append({"key": "python", "name": "Python", "count": 4})

        response = client.get("/api/match/skills/popular?limit=5")

        assert response.json()["data"]["skills"] == [{"name": "Python", "popularity": 4}]

    def test_rate_limited(self, client, login, people):
        headers = login("learner")
        limit = get_rate_limiter("match").max_requests
        for _ in range(limit):
            client.get("/api/match/skills/popular", headers=headers)

        response = client.get("/api/match/skills/popular", headers=headers)

        assert response.status_code == 429
        assert response.json()["success"] is False


def test_health(client):
    assert client.get("/health").json()["status"] == "OK"


@pytest.mark.asyncio
async def test_oversized_body_rejected():
    def request_with_length(length: int) -> Request:
        return Request({"type": "http", "method": "POST", "path": "/", "headers": [(b"content-length", str(length).encode())]})

    await validate_request_size(request_with_length(100))
    with pytest.raises(HTTPException) as exc_info:
        await validate_request_size(request_with_length(settings.max_request_size + 1))
    assert exc_info.value.status_code == 413
