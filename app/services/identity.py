"""
Identity verification against Supabase Auth
The only contract the rest of the backend relies on is a verified uid and email
"""

from dataclasses import dataclass
from typing import Optional
import logging

from supabase import Client

from app.utils.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    uid: str
    email: Optional[str] = None


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Token from an "Authorization: Bearer <token>" header"""
    if not authorization:
        raise AuthenticationError("No token provided")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header format")
    return token.strip()


class IdentityVerifier:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def verify(self, token: str) -> VerifiedIdentity:
        """
        Verify an access token with the identity provider

        Raises:
            AuthenticationError: token missing, expired or rejected
        """
        if not token:
            raise AuthenticationError("No token provided")
        try:
            response = self.supabase.auth.get_user(token)
        except Exception as e:
            logger.warning(f"[AUTH] Token verification failed: {type(e).__name__}")
            raise AuthenticationError("Invalid or expired token")

        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise AuthenticationError("Invalid or expired token")

        email = getattr(user, "email", None)
        return VerifiedIdentity(uid=str(user.id), email=email.lower() if email else None)
