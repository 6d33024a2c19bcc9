"""
Match endpoints
"""

from fastapi import APIRouter, Depends, Query
from typing import Any, Dict
import logging

from app.routers.deps import get_current_user, get_matching_service
from app.schemas import DenyMentorRequest, success_response
from app.services.matching_service import MatchingService
from app.utils.rate_limiter import rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(tags=["match"], dependencies=[Depends(rate_limit("match"))])


@router.get("")
async def get_matches(
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user),
    matching: MatchingService = Depends(get_matching_service)
):
    result = await matching.get_matches(user["uid"], limit, offset)
    return success_response(result)


@router.get("/redesigned")
async def get_redesigned_matches(
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user),
    matching: MatchingService = Depends(get_matching_service)
):
    result = await matching.redesigned_matches(user["uid"], limit, offset)
    return success_response(result)


@router.post("/deny")
async def deny_mentor(
    body: DenyMentorRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    matching: MatchingService = Depends(get_matching_service)
):
    await matching.deny_mentor(user["uid"], body.mentor_uid)
    return success_response(message="Mentor will no longer appear in your matches")


@router.post("/refresh")
async def refresh_matches(
    user: Dict[str, Any] = Depends(get_current_user),
    matching: MatchingService = Depends(get_matching_service)
):
    await matching.refresh_matches(user["uid"])
    return success_response(
        message="Matches refreshed successfully. New matches will be computed on next request."
    )


@router.get("/skills/popular")
async def get_popular_skills(
    limit: int = Query(default=20, ge=1, le=100),
    matching: MatchingService = Depends(get_matching_service)
):
    skills = await matching.popular_skills(limit)
    return success_response({"skills": skills})


@router.get("/stats")
async def get_match_stats(
    user: Dict[str, Any] = Depends(get_current_user),
    matching: MatchingService = Depends(get_matching_service)
):
    stats = await matching.stats(user["uid"])
    return success_response({"stats": stats})


@router.get("/explain/{uid}")
async def explain_match(
    uid: str,
    user: Dict[str, Any] = Depends(get_current_user),
    matching: MatchingService = Depends(get_matching_service)
):
    explanation = await matching.explain(user["uid"], uid)
    return success_response({"explanation": explanation})


@router.get("/mentor/{uid}")
async def get_mentor_profile(
    uid: str,
    user: Dict[str, Any] = Depends(get_current_user),
    matching: MatchingService = Depends(get_matching_service)
):
    mentor = await matching.mentor_profile(uid)
    return success_response({"mentor": mentor})
