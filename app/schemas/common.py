"""
Response envelope shared by every endpoint
"""

from pydantic import BaseModel
from typing import Any, Optional


class ApiResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Optional[Any] = None


def success_response(data: Any = None, message: Optional[str] = None) -> dict:
    return ApiResponse(success=True, message=message, data=data).model_dump(exclude_none=True)
