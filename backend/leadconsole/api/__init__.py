"""
API route controllers for the lead console.

Contains FastAPI routers for different endpoints.
Routes authorize the caller and delegate to services for business logic.
"""

from .health import router as health_router
from .roles import router as roles_router
from .leads import router as leads_router
from .analytics import router as analytics_router
from .settlement import router as settlement_router
from .audit import router as audit_router

__all__ = [
    "health_router",
    "roles_router",
    "leads_router",
    "analytics_router",
    "settlement_router",
    "audit_router",
]
