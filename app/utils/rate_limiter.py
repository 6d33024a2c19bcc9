"""
Rate limiter utility for API endpoints
Simple in-memory rate limiting per route group and caller
"""

from typing import Dict, Tuple
from datetime import datetime, timedelta
from collections import defaultdict
from fastapi import Request
import threading
import logging

from app.config.settings import settings
from app.utils.exceptions import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Simple in-memory rate limiter
    Tracks requests per caller key with a sliding window approach
    """

    def __init__(self, max_requests: int = 30, window_seconds: int = 60):
        """
        Initialize rate limiter

        Args:
            max_requests: Maximum number of requests allowed per window
            window_seconds: Time window in seconds (default: 60 = 1 minute)
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        # Dictionary: caller key -> list of timestamps
        self._requests: Dict[str, list] = defaultdict(list)
        self._lock = threading.Lock()

    def is_allowed(self, key: str) -> Tuple[bool, int]:
        """
        Check if request is allowed for the given key

        Returns:
            Tuple of (is_allowed: bool, remaining_requests: int)
        """
        current_time = datetime.now()
        window_start = current_time - timedelta(seconds=self.window_seconds)

        with self._lock:
            requests = self._requests[key]
            requests[:] = [ts for ts in requests if ts > window_start]

            if len(requests) >= self.max_requests:
                return False, 0

            requests.append(current_time)
            return True, self.max_requests - len(requests)

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()


_limiters: Dict[str, RateLimiter] = {
    "auth": RateLimiter(max_requests=settings.rate_limit_auth, window_seconds=60),
    "profile": RateLimiter(max_requests=settings.rate_limit_profile, window_seconds=60),
    "match": RateLimiter(max_requests=settings.rate_limit_match, window_seconds=60),
}


def get_rate_limiter(group: str) -> RateLimiter:
    """Get the global rate limiter of a route group"""
    return _limiters[group]


def reset_rate_limiters() -> None:
    for limiter in _limiters.values():
        limiter.reset()


def caller_key(request: Request) -> str:
    """
    Rate limit key: the bearer token's caller when authenticated, else client IP
    The raw token is never stored; only its hash is used
    """
    authorization = request.headers.get("authorization")
    if authorization:
        return f"token:{hash(authorization)}"
    client = request.client.host if request.client else "unknown"
    return f"ip:{client}"


def check_rate_limit(group: str, key: str) -> None:
    """
    Raises:
        RateLimitError: 429 Too Many Requests if rate limit exceeded
    """
    limiter = get_rate_limiter(group)
    is_allowed, remaining = limiter.is_allowed(key)

    if not is_allowed:
        logger.warning(f"[RATE-LIMITER] Rate limit exceeded for {group} ({key.split(':', 1)[0]})")
        raise RateLimitError(
            f"Rate limit exceeded. Maximum {limiter.max_requests} requests per minute. Please try again later."
        )


def rate_limit(group: str):
    """
    FastAPI dependency factory

    Usage:
        router = APIRouter(dependencies=[Depends(rate_limit("match"))])
    """
    async def dependency(request: Request) -> None:
        check_rate_limit(group, caller_key(request))
    return dependency
