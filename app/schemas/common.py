from typing import Optional

from pydantic import BaseModel

from app.core.exceptions import ErrorCode


class ErrorBody(BaseModel):
    code: ErrorCode
    message: str


class Envelope(BaseModel):
    """
    Uniform wrapper for every response body. Payload models subclass this
    so their fields sit next to ``success`` and ``error``.
    """
    success: int = 1
    error: Optional[ErrorBody] = None


def error_envelope(code: ErrorCode, message: str) -> dict:
    return Envelope(success=0, error=ErrorBody(code=code, message=message)).model_dump(mode="json")
