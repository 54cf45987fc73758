"""
SocialHub Backend — Shared API Schemas
========================================

What:  Base model, envelopes and error/health bodies shared by all routes.
How:   CamelModel converts snake_case attributes to camelCase JSON keys
       (followersCount, isRead, totalPages) and accepts either spelling on
       input. FastAPI serializes response models by alias.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str = Field(description="Human-readable result of the action")


class Page(CamelModel):
    """Pagination fields shared by every list response."""
    total_pages: int = Field(description="ceil(total / limit)")
    current_page: int = Field(description="1-based page number that was returned")


class ErrorResponse(CamelModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Cannot follow yourself",
            "details": {"field": "userId"},
            "requestId": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(CamelModel):
    status: str = Field(description="healthy, degraded or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="connected or disconnected")
    mirror: str = Field(description="enabled or disabled")
    uptime_seconds: float = Field(description="Seconds since service started")
