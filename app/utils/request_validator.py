"""
Request validation utilities
Includes request body size validation
"""

from fastapi import HTTPException, Request
import logging

from app.config.settings import settings

logger = logging.getLogger(__name__)


async def validate_request_size(request: Request) -> None:
    """
    FastAPI dependency to validate request body size
    Checks Content-Length header before body is read

    Usage:
        @router.post("/endpoint")
        async def my_endpoint(
            body: SomeRequest,
            _: None = Depends(validate_request_size)
        ):
            ...
    """
    content_length = request.headers.get("content-length")

    if content_length:
        try:
            size = int(content_length)
        except ValueError:
            logger.debug("[REQUEST-VALIDATOR] Invalid Content-Length header, skipping size check")
            return
        if size > settings.max_request_size:
            logger.warning(
                f"[REQUEST-VALIDATOR] Request body size ({size} bytes) exceeds maximum ({settings.max_request_size} bytes)"
            )
            raise HTTPException(
                status_code=413,
                detail=f"Request body too large. Maximum size is {settings.max_request_size} bytes."
            )
