"""
Pydantic validation schemas for the lead console.

Contains request/response DTOs with validation rules.
These schemas enforce data integrity at API boundaries.
"""

from .common import HealthResponse, ErrorResponse, Ack
from .roles import (
    RoleAssignment,
    NotificationUpdate,
    MyRoleResponse,
    DirectoryMemberResponse,
    DirectoryListResponse,
)
from .lead import (
    LeadSubmission,
    LeadSubmitResponse,
    LeadResponse,
    LeadListResponse,
    LeadIdsRequest,
    DeleteLeadsResponse,
    DownloadLeadsResponse,
    MemoUpdate,
    StatusUpdate,
)
from .analytics import (
    DateRangeRequest,
    AdCostRequest,
    SettlementCostRequest,
    DashboardStatsResponse,
    RoasReportResponse,
    SettlementConfigResponse,
    SettlementResponse,
)
from .audit import AuditEntryResponse, AuditListResponse

__all__ = [
    # Common schemas
    "HealthResponse",
    "ErrorResponse",
    "Ack",
    # Role directory
    "RoleAssignment",
    "NotificationUpdate",
    "MyRoleResponse",
    "DirectoryMemberResponse",
    "DirectoryListResponse",
    # Lead schemas
    "LeadSubmission",
    "LeadSubmitResponse",
    "LeadResponse",
    "LeadListResponse",
    "LeadIdsRequest",
    "DeleteLeadsResponse",
    "DownloadLeadsResponse",
    "MemoUpdate",
    "StatusUpdate",
    # Analytics and settlement
    "DateRangeRequest",
    "AdCostRequest",
    "SettlementCostRequest",
    "DashboardStatsResponse",
    "RoasReportResponse",
    "SettlementConfigResponse",
    "SettlementResponse",
    # Audit
    "AuditEntryResponse",
    "AuditListResponse",
]
