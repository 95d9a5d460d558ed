"""Pydantic models for request/response validation."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    template_mode: str = Field(..., description="'embedded' or 'live' template loading")
