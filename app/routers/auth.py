"""
Authentication endpoints
Tokens are issued by the identity provider; these routes only verify them
and map the verified identity onto a SkillSwap user record
"""

from fastapi import APIRouter, Depends
from typing import Any, Dict
import logging

from app.routers.deps import get_current_user, get_user_service, get_verified_identity
from app.schemas import RegisterRequest, success_response
from app.services.identity import VerifiedIdentity
from app.services.user_service import UserService
from app.utils.rate_limiter import rate_limit
from app.utils.request_validator import validate_request_size

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"], dependencies=[Depends(rate_limit("auth"))])


def _summary(user: Dict[str, Any], *fields: str) -> Dict[str, Any]:
    return {field: user.get(field) for field in fields}


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    identity: VerifiedIdentity = Depends(get_verified_identity),
    users: UserService = Depends(get_user_service),
    _: None = Depends(validate_request_size)
):
    """Create the user record for an already verified identity"""
    user = await users.create_user(identity, body)
    return success_response(
        {"user": _summary(
            user, "uid", "name", "email", "role", "avatar_url",
            "skills_offered", "skills_wanted", "availability", "badge_count"
        )},
        "User registered successfully"
    )


@router.post("/login")
async def login(
    identity: VerifiedIdentity = Depends(get_verified_identity),
    users: UserService = Depends(get_user_service)
):
    user = await users.get_user(identity.uid)
    if user is None:
        # Verified with the identity provider but never registered here
        return success_response(
            {"needsRegistration": True, "email": identity.email, "uid": identity.uid},
            "User needs to complete registration"
        )

    logger.info(f"[AUTH] User logged in: {identity.uid}")
    return success_response(
        {"user": _summary(user, "uid", "name", "email", "role", "avatar_url", "badge_count")},
        "Login successful"
    )


@router.post("/verify")
async def verify_token(user: Dict[str, Any] = Depends(get_current_user)):
    return success_response(
        {"user": _summary(user, "uid", "name", "email", "role", "badge_count")},
        "Token is valid"
    )


@router.post("/logout")
async def logout(identity: VerifiedIdentity = Depends(get_verified_identity)):
    logger.info(f"[AUTH] User logged out: {identity.uid}")
    return success_response(message="Logout successful")
