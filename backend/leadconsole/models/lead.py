"""
Lead database model.

One row per inbound contact submission. The canonical E.164 phone number
is the natural dedup key: at most one lead exists per phone.
"""

import uuid

from sqlalchemy import (
    Column,
    String,
    Boolean,
    Integer,
    Text,
    DateTime,
)
from sqlalchemy.sql import func

from ..core.database import Base


def _new_lead_id() -> str:
    return uuid.uuid4().hex


# Flags staff may toggle from the lead table
TOGGLEABLE_FLAGS = ("is_defect", "visited", "procedure")


class Lead(Base):
    """
    Inbound lead model.

    Attributes:
        id: server-assigned identifier
        name: display name
        phone_raw: phone formatted for display (010-1234-5678)
        phone_e164: canonical phone (+821012345678), unique
        region: region classification chosen on the form
        memo: free-text staff note
        is_defect / visited / procedure: staff-toggled flags
        utm_*, referrer, landing_page, user_agent, ga_client_id, gclid: attribution
        created_at: server-assigned creation instant
        download_count / downloaded_at / downloaded_by: export tracking
        ip_address: request IP captured at submission
        ip_location: "<country>, <city>" resolved from ip_address, or "Unknown"
    """

    __tablename__ = "leads"

    id = Column(String(32), primary_key=True, default=_new_lead_id)

    # Contact
    name = Column(String(255), nullable=False)
    phone_raw = Column(String(32), nullable=False)
    phone_e164 = Column(String(20), nullable=False, unique=True, index=True)
    region = Column(String(100), nullable=False)
    memo = Column(Text, nullable=False, default="")

    # Staff flags
    is_defect = Column(Boolean, nullable=False, default=False)
    visited = Column(Boolean, nullable=False, default=False)
    procedure = Column(Boolean, nullable=False, default=False)

    # Attribution
    utm_source = Column(String(255), nullable=True, index=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)
    referrer = Column(Text, nullable=True)
    landing_page = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    ga_client_id = Column(String(255), nullable=True)
    gclid = Column(String(255), nullable=True)

    # Request metadata
    ip_address = Column(String(64), nullable=True)
    ip_location = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
        index=True,
    )

    # Download tracking
    download_count = Column(Integer, nullable=False, default=0)
    downloaded_at = Column(DateTime(timezone=True), nullable=True, index=True)
    downloaded_by = Column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, source={self.utm_source}, created_at={self.created_at})>"
