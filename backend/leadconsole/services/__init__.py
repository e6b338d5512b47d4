"""
Business logic services for the lead console.

Contains all business logic separated from the API layer: repositories over
the store, the aggregation and settlement reductions, audit logging, and the
best-effort side channels (mail, ad-spend providers, IP geolocation, GA4
attribution enrichment).
"""

from .role_directory import RoleDirectory, RoleDirectoryRepository
from .lead_repository import LeadRepository, MAX_MEMBERSHIP_PREDICATE_SIZE
from .ad_spend import AdSpendLedger, SettlementCostBook
from .aggregation import AggregationEngine, UNATTRIBUTED_SOURCE
from .settlement import SettlementCalculator
from .audit import AuditLog
from .notifications import NotificationDispatcher
from .geolocation import IpLocator, UNKNOWN_LOCATION
from .lead_enrichment import BigQueryAttributionSource, LeadAttributionEnricher

__all__ = [
    "RoleDirectory",
    "RoleDirectoryRepository",
    "LeadRepository",
    "MAX_MEMBERSHIP_PREDICATE_SIZE",
    "AdSpendLedger",
    "SettlementCostBook",
    "AggregationEngine",
    "UNATTRIBUTED_SOURCE",
    "SettlementCalculator",
    "AuditLog",
    "NotificationDispatcher",
    "IpLocator",
    "UNKNOWN_LOCATION",
    "BigQueryAttributionSource",
    "LeadAttributionEnricher",
]
