"""Response models for the REST endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness check result."""

    status: str
    version: str
    timestamp: datetime


class CallbackAck(BaseModel):
    """Acknowledgement returned to the vendor's status webhooks."""

    status: str = "success"
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str = Field(..., description="Human-readable error")
