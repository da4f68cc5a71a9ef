"""
Common schemas used across the API.
"""

from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for every request/response body.

    Fields are declared in snake_case and exchanged as camelCase on the
    wire; snake_case input is accepted too.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(CamelModel):
    """Generic success response."""

    success: bool = True
    message: str = "Operation completed successfully"


class ErrorResponse(BaseModel):
    """Error envelope returned for every failed request."""

    error: str = Field(description="Human-readable error message")
    request_id: Optional[str] = Field(default=None, serialization_alias="requestId")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    database: str = "connected"
    timestamp: Any
