"""
Lead Pydantic schemas for request/response validation.

Submission fields stay optional at this layer; ``LeadIntakeService``
enforces the required ones so form posts and postbacks fail the same way.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator


class LeadSubmission(BaseModel):
    """
    Public lead form / postback payload.

    Unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    region: Optional[str] = Field(default=None, max_length=100)

    utm_source: Optional[str] = Field(default=None, max_length=255, description="Traffic source (e.g., google, tiktok)")
    utm_medium: Optional[str] = Field(default=None, max_length=255)
    utm_campaign: Optional[str] = Field(default=None, max_length=255)
    referrer: Optional[str] = Field(default=None, max_length=2048)
    landing_page: Optional[str] = Field(default=None, max_length=2048)
    user_agent: Optional[str] = Field(default=None, max_length=1024)
    ga_client_id: Optional[str] = Field(default=None, max_length=255)
    gclid: Optional[str] = Field(default=None, max_length=255)

    @field_validator("phone", mode="before")
    @classmethod
    def coerce_phone(cls, v):
        # Postbacks sometimes send the phone as a number
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class LeadSubmitResponse(BaseModel):
    ok: bool = True
    id: str


class LeadIdsRequest(BaseModel):
    ids: List[str] = Field(..., description="Lead ids (duplicates are collapsed)")


class DeleteLeadsResponse(BaseModel):
    deleted: int


class DownloadLeadsResponse(BaseModel):
    updated: int


class MemoUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    memo: str = Field(..., max_length=10000)
    old_memo: Optional[str] = Field(default=None, alias="oldMemo")


class StatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str = Field(..., description="is_defect, visited or procedure")
    value: StrictBool = Field(..., alias="status")


class LeadResponse(BaseModel):
    """A stored lead as shown in the staff lead table."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    phone_raw: str
    region: str
    memo: str
    is_defect: bool
    visited: bool
    procedure: bool
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    referrer: Optional[str] = None
    landing_page: Optional[str] = None
    ga_client_id: Optional[str] = None
    gclid: Optional[str] = None
    ip_location: Optional[str] = None
    created_at: datetime
    download_count: int
    downloaded_at: Optional[datetime] = None
    downloaded_by: Optional[str] = None


class LeadListResponse(BaseModel):
    items: List[LeadResponse]
    total: int = Field(..., description="Leads matching the filters, across all pages")
    limit: int
    offset: int
