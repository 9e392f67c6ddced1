from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body returned by every endpoint on failure."""

    error: str
    message: str
    request_id: str | None = None
    details: object | None = None


class HealthResponse(BaseModel):
    ok: bool = True


class OkResponse(BaseModel):
    ok: bool = True
