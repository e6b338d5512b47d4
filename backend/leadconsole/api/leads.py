"""
Lead submission and management endpoints.

Public:
- POST /api/leads/submit        lead form submission
- GET|POST /api/leads/postback  ad-network postback (query string or body)

Staff (user, admin, super):
- GET  /api/leads                  filtered, paginated lead table

Staff (user, admin, super), every call audited:
- POST /api/leads/delete
- POST /api/leads/downloads
- PUT  /api/leads/{lead_id}/memo
- PUT  /api/leads/{lead_id}/status
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..core.auth import ALL_ROLES, CallerRole, require_role
from ..core.config import settings
from ..core.database import get_db
from ..core.exceptions import InvalidArgument
from ..schemas.common import ERROR_RESPONSES, Ack
from ..schemas.lead import (
    DeleteLeadsResponse,
    DownloadLeadsResponse,
    LeadIdsRequest,
    LeadListResponse,
    LeadResponse,
    LeadSubmission,
    LeadSubmitResponse,
    MemoUpdate,
    StatusUpdate,
)
from ..services.aggregation import UNATTRIBUTED_SOURCE
from ..services.lead_repository import LeadRepository
from ..services.leads import LeadIntakeService, LeadOperationsService
from ..services.notifications import NotificationDispatcher, get_dispatcher
from ..utils.dates import day_start, validate_range


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/leads", tags=["Leads"], responses=ERROR_RESPONSES)


# =============================================================================
# Helper Functions
# =============================================================================

def get_client_ip(request: Request) -> Optional[str]:
    """
    Extract client IP from request headers.

    Handles X-Forwarded-For for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None


async def _postback_payload(request: Request) -> Dict[str, Any]:
    if request.method == "GET":
        return dict(request.query_params)

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise InvalidArgument("Request body is not valid JSON.")
        if not isinstance(body, dict):
            raise InvalidArgument("Request body must be a JSON object.")
        return body

    form = await request.form()
    return dict(form)


# =============================================================================
# Public intake
# =============================================================================

@router.post("/submit", response_model=LeadSubmitResponse)
async def submit_lead(
    submission: LeadSubmission,
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> LeadSubmitResponse:
    data = submission.model_dump()
    if not data.get("user_agent"):
        data["user_agent"] = request.headers.get("User-Agent")
    lead_id = LeadIntakeService(db, dispatcher).create(data, get_client_ip(request))
    return LeadSubmitResponse(id=lead_id)


@router.api_route("/postback", methods=["GET", "POST"], response_model=LeadSubmitResponse)
async def lead_postback(
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> LeadSubmitResponse:
    raw = await _postback_payload(request)
    logger.info(f"Postback received via {request.method} with keys {sorted(raw)}")
    try:
        submission = LeadSubmission.model_validate(raw)
    except ValidationError as e:
        raise InvalidArgument("Invalid postback payload.", {"errors": e.errors(include_url=False, include_context=False)})
    lead_id = LeadIntakeService(db, dispatcher).create(submission.model_dump(), get_client_ip(request))
    return LeadSubmitResponse(id=lead_id)


# =============================================================================
# Staff operations
# =============================================================================

@router.get("", response_model=LeadListResponse)
async def list_leads(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    source: Optional[str] = Query(default=None, max_length=255, description=f"utm_source, or '{UNATTRIBUTED_SOURCE}'"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    caller: CallerRole = Depends(require_role(*ALL_ROLES)),
    db: Session = Depends(get_db),
) -> LeadListResponse:
    """
    Leads newest first.

    ``startDate``/``endDate`` are inclusive calendar days in the reporting
    timezone; either may be omitted.
    """
    tz = settings.reporting_zone
    if start_date and end_date:
        validate_range(start_date, end_date)
    source = (source or "").strip() or None
    leads, total = LeadRepository(db).page(
        start=day_start(start_date, tz) if start_date else None,
        end=day_start(end_date + timedelta(days=1), tz) if end_date else None,
        source=source,
        unattributed=source == UNATTRIBUTED_SOURCE,
        limit=limit,
        offset=offset,
    )
    logger.debug(f"{caller.identifier} listed {len(leads)} of {total} leads")
    return LeadListResponse(
        items=[LeadResponse.model_validate(lead) for lead in leads],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/delete", response_model=DeleteLeadsResponse)
async def delete_leads(
    body: LeadIdsRequest,
    caller: CallerRole = Depends(require_role(*ALL_ROLES)),
    db: Session = Depends(get_db),
) -> DeleteLeadsResponse:
    deleted = LeadOperationsService(db).delete_leads(caller.identifier, body.ids)
    return DeleteLeadsResponse(deleted=deleted)


@router.post("/downloads", response_model=DownloadLeadsResponse)
async def increment_downloads(
    body: LeadIdsRequest,
    caller: CallerRole = Depends(require_role(*ALL_ROLES)),
    db: Session = Depends(get_db),
) -> DownloadLeadsResponse:
    updated = LeadOperationsService(db).increment_downloads(caller.identifier, body.ids)
    return DownloadLeadsResponse(updated=updated)


@router.put("/{lead_id}/memo", response_model=Ack)
async def update_memo(
    lead_id: str,
    body: MemoUpdate,
    caller: CallerRole = Depends(require_role(*ALL_ROLES)),
    db: Session = Depends(get_db),
) -> Ack:
    LeadOperationsService(db).update_memo(caller.identifier, lead_id, body.memo, body.old_memo)
    return Ack()


@router.put("/{lead_id}/status", response_model=Ack)
async def set_lead_status(
    lead_id: str,
    body: StatusUpdate,
    caller: CallerRole = Depends(require_role(*ALL_ROLES)),
    db: Session = Depends(get_db),
) -> Ack:
    LeadOperationsService(db).set_status(caller.identifier, lead_id, body.field, body.value)
    return Ack()
