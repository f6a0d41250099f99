"""Unified API response schemas."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Error response with status, message, and error code."""

    status: int
    message: str
    code: str


class ApiResponse(BaseModel, Generic[T]):
    """Success response with status, message, and data (no code field)."""

    status: int = 200
    message: str = "Success"
    data: T | None = None


class WebhookAck(BaseModel):
    """Acknowledgement Telegram expects for a delivered update."""

    ok: bool = True


def success_response(data: T, status: int = 200, message: str = "Success") -> dict:
    """Build a success response dict for returning from endpoints."""
    return {"status": status, "message": message, "data": data}


def error_response(status: int, message: str, code: str) -> dict:
    """Build an error response dict matching ErrorResponse."""
    return ErrorResponse(status=status, message=message, code=code).model_dump()
