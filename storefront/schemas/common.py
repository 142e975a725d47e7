"""Common schemas used across the API."""

from typing import Any

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format.

    Format: { "message": str, "code": str, "detail": object | null }
    """

    message: str
    code: str
    detail: dict[str, Any] | None = None


class MessageResponse(BaseModel):
    """Acknowledgement for writes that return no entity."""

    message: str
    success: bool = True
