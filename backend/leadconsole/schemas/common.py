"""
Common Pydantic schemas shared across the application.

Contains health check, error and acknowledgement schemas, plus the
OpenAPI error table shared by the routers.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Health Check Schemas
# =============================================================================

class HealthResponse(BaseModel):
    """
    Health check response schema.

    Used by monitoring systems to verify service health.
    """

    status: str = Field(
        ...,
        description="Overall health status (healthy, degraded)"
    )
    version: str = Field(
        ...,
        description="Application version"
    )
    timestamp: datetime = Field(
        ...,
        description="Current server timestamp"
    )
    database: str = Field(
        ...,
        description="Database connection status"
    )
    environment: str = Field(
        ...,
        description="Runtime environment (development, production)"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "timestamp": "2024-05-01T10:30:00Z",
                "database": "connected",
                "environment": "development"
            }
        }
    }


# =============================================================================
# Error Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """
    Standard error response schema.

    ``error`` is the stable kind callers branch on (e.g. permission-denied).
    """

    success: bool = Field(
        default=False,
        description="Always false for errors"
    )
    error: str = Field(
        ...,
        description="Error kind"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Diagnostic details (e.g. resolved and required roles)"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error": "permission-denied",
                "message": "Permission denied. Your role is 'user'. Required one of: admin, super",
                "details": {"role": "user", "required": ["admin", "super"]}
            }
        }
    }


class Ack(BaseModel):
    """Acknowledgement for mutations with no other result."""

    ok: bool = True


# Error bodies every router can return, for the OpenAPI ``responses`` table
ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "invalid-argument"},
    401: {"model": ErrorResponse, "description": "unauthenticated"},
    403: {"model": ErrorResponse, "description": "permission-denied"},
    404: {"model": ErrorResponse, "description": "not-found"},
    409: {"model": ErrorResponse, "description": "already-exists"},
    500: {"model": ErrorResponse, "description": "internal"},
}
