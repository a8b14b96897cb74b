"""Response models shared across routes."""

from typing import Optional

from pydantic import BaseModel, Field


class HealthCheckResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Service status
        version: Application version
        service: Service name
    """

    status: str = Field(default="healthy", description="Service health status")
    version: str = Field(..., description="Application version")
    service: str = Field(..., description="Service name")


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")


class ErrorResponse(BaseModel):
    """Error body returned for every handled failure."""

    error: str = Field(..., description="Human-readable error message")
    error_type: str = Field(..., description="Error class name")
    detail: Optional[str] = Field(None, description="Additional error details")
