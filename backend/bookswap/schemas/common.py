"""
BookSwap Backend — Shared Response Schemas
===========================================

What:  Response models used across routers: the error envelope, the plain
       message acknowledgement, and the health report.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for every non-2xx response.
    Why:   The frontend switches on `code` and shows `message` verbatim.

    Example:
        {
            "code": "PUBLICATION_NOT_FOUND",
            "message": "La publicación no existe.",
            "details": {"resource_id": "2b1c..."},
            "request_id": "a1b2c3d4"
        }
    """
    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="User-facing message (Spanish)")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    """Acknowledgement for mutations that return no resource."""
    message: str


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for Docker health checks and load balancers.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    mail: str = Field(description="Outgoing mail: configured, disabled")
    uptime_seconds: float = Field(description="Seconds since service started")
