"""
Response schemas for the public HTTP surface.
"""
from pydantic import BaseModel


class WebhookReceivedResponse(BaseModel):
    received: bool = True


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, bool]
    timestamp: str
