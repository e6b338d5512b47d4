"""
SQLAlchemy ORM models for the lead console.

Contains database table definitions.
"""

from .lead import Lead, TOGGLEABLE_FLAGS
from .role_directory import (
    Role,
    RoleDirectoryRecord,
    ASSIGNABLE_ROLES,
    NOTIFICATION_FIELDS,
    DIRECTORY_RECORD_KEY,
)
from .ad_spend import AdSpendEntry, SettlementCost
from .audit_log import AuditEntry, AuditAction

__all__ = [
    # Lead
    "Lead",
    "TOGGLEABLE_FLAGS",
    # Role directory
    "Role",
    "RoleDirectoryRecord",
    "ASSIGNABLE_ROLES",
    "NOTIFICATION_FIELDS",
    "DIRECTORY_RECORD_KEY",
    # Spend and pricing
    "AdSpendEntry",
    "SettlementCost",
    # Audit
    "AuditEntry",
    "AuditAction",
]
