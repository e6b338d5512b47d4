"""
Lead intake and staff lead operations.

Provides:
- canonicalize_phone: Korean mobile numbers to display and E.164 form
- LeadIntakeService: validated creation of inbound leads (public entry point),
  with IP geolocation and queued GA4 attribution enrichment
- LeadOperationsService: audited delete / download / memo / flag mutations

Every staff mutation records its audit entries in the same transaction as
the change itself.
"""

import logging
import re
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import AlreadyExists, InvalidArgument, NotFound
from ..core.transactions import transaction
from ..models.audit_log import AuditAction
from ..models.lead import Lead, TOGGLEABLE_FLAGS
from ..utils.batching import unique_in_order
from ..utils.dates import utc_now
from .audit import AuditLog
from .geolocation import IpLocator, get_ip_locator
from .lead_repository import LeadRepository
from .notifications import NotificationDispatcher
from .role_directory import RoleDirectoryRepository


logger = logging.getLogger(__name__)


# Korean mobile prefixes 010/011/016/017/018/019 followed by 7 or 8 digits
MOBILE_PATTERN = re.compile(r"^01[016789]\d{7,8}$")

# Optional attribution fields copied verbatim from a submission
ATTRIBUTION_FIELDS = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "referrer",
    "landing_page",
    "user_agent",
    "ga_client_id",
    "gclid",
)


def canonicalize_phone(raw: Any) -> tuple[str, str]:
    """
    Normalize a submitted phone number.

    Args:
        raw: phone as typed (dashes, spaces, dots allowed; a +82 prefix
            or a missing leading zero is restored to the domestic form)

    Returns:
        (display, e164), e.g. ("010-1234-5678", "+821012345678")

    Raises:
        InvalidArgument: when the digits are not a Korean mobile number
    """
    digits = re.sub(r"\D", "", str(raw or ""))
    if digits.startswith("82"):
        digits = "0" + digits[2:]
    elif digits.startswith("1"):
        # numeric postbacks drop the leading zero
        digits = "0" + digits
    if not MOBILE_PATTERN.match(digits):
        raise InvalidArgument("Invalid phone number format.", {"phone": raw})

    if len(digits) == 11:
        display = f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"
    else:
        display = f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"
    return display, "+82" + digits[1:]


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class LeadIntakeService:
    """
    Create leads from public form submissions and ad-network postbacks.

    Example usage:
        intake = LeadIntakeService(db, dispatcher)
        lead_id = intake.create({"name": ..., "phone": ..., "region": ...}, ip_address)
    """

    def __init__(
        self,
        db: Session,
        dispatcher: Optional[NotificationDispatcher] = None,
        locator: Optional[IpLocator] = None,
    ):
        self.db = db
        self.leads = LeadRepository(db)
        self.directory = RoleDirectoryRepository(db)
        self.dispatcher = dispatcher
        self.locator = locator or get_ip_locator()

    def create(self, data: Mapping[str, Any], ip_address: Optional[str] = None) -> str:
        """
        Validate and store a submission.

        Returns:
            The new lead id

        Raises:
            InvalidArgument: missing name/phone/region or malformed phone
            AlreadyExists: a lead with the same canonical phone exists
        """
        name = _clean(data.get("name"))
        phone = _clean(data.get("phone"))
        region = _clean(data.get("region"))
        if not name or not phone or not region:
            raise InvalidArgument("name, phone, region are required.")

        display, e164 = canonicalize_phone(phone)
        ip_address = _clean(ip_address)
        ip_location = self.locator.lookup(ip_address)

        with transaction(self.db):
            if self.leads.exists_by_phone(e164):
                raise AlreadyExists("This phone number is already registered.")

            lead = Lead(
                name=name,
                phone_raw=display,
                phone_e164=e164,
                region=region,
                memo="",
                ip_address=ip_address,
                ip_location=ip_location,
                **{field: _clean(data.get(field)) for field in ATTRIBUTION_FIELDS},
            )
            self.leads.add(lead)

        logger.info(f"Lead {lead.id} created (source={lead.utm_source or '-'})")
        self._notify_new_lead(lead)
        self._queue_enrichment(lead)
        return lead.id

    def _queue_enrichment(self, lead: Lead) -> None:
        if not lead.ga_client_id or not settings.bigquery_ga_events_table:
            return
        try:
            from ..tasks.lead_tasks import enrich_lead_attribution_task

            enrich_lead_attribution_task.delay(lead.id)
        except Exception as e:
            logger.error(f"Failed to queue attribution enrichment for lead {lead.id}: {e}")

    def _notify_new_lead(self, lead: Lead) -> None:
        if self.dispatcher is None:
            return
        try:
            recipients = self.directory.get().recipients("notifyOnNewLead")
        except Exception as e:
            logger.error(f"Could not resolve new-lead recipients: {e}")
            return
        self.dispatcher.notify(
            recipients,
            "new_lead",
            {
                "name": lead.name,
                "phone": lead.phone_raw,
                "region": lead.region,
                "source": lead.utm_source or lead.referrer or "direct",
                "created_at": lead.created_at,
            },
        )


class LeadOperationsService:
    """Audited staff mutations on existing leads."""

    def __init__(self, db: Session):
        self.db = db
        self.leads = LeadRepository(db)
        self.audit = AuditLog(db, self.leads)

    @staticmethod
    def _require_ids(ids: Iterable[str]) -> list[str]:
        wanted = unique_in_order(ids or [])
        if not wanted:
            raise InvalidArgument("ids must be a non-empty array.")
        return wanted

    def _require_existing(self, wanted: list[str]) -> dict[str, Lead]:
        """
        Fetch every wanted lead.

        Raises:
            NotFound: listing the ids that do not exist; nothing is changed
        """
        found = self.leads.get_many(wanted)
        missing = [lead_id for lead_id in wanted if lead_id not in found]
        if missing:
            raise NotFound(
                f"{len(missing)} lead(s) do not exist.",
                {"missing": missing},
            )
        return found

    def delete_leads(self, actor: str, ids: Iterable[str]) -> int:
        """Audit then delete; names are captured before the rows disappear."""
        wanted = self._require_ids(ids)
        with transaction(self.db):
            subjects = self._require_existing(wanted)
            self.audit.record(AuditAction.DELETE, actor, wanted, subjects=subjects)
            deleted = self.leads.delete_many(wanted)
        logger.info(f"{actor} deleted {deleted} leads")
        return deleted

    def increment_downloads(self, actor: str, ids: Iterable[str]) -> int:
        wanted = self._require_ids(ids)
        with transaction(self.db):
            subjects = self._require_existing(wanted)
            self.audit.record(AuditAction.DOWNLOAD, actor, wanted, subjects=subjects)
            updated = self.leads.increment_downloads(wanted, actor, utc_now())
        return updated

    def update_memo(
        self,
        actor: str,
        lead_id: str,
        memo: str,
        old_memo: Optional[str] = None,
    ) -> None:
        if not lead_id:
            raise InvalidArgument("leadId is required.")
        with transaction(self.db):
            lead = self.leads.get(lead_id)
            previous = lead.memo if old_memo is None else old_memo
            self.audit.record(AuditAction.UPDATE_MEMO, actor, [lead_id], {"from": previous, "to": memo})
            self.leads.update_memo(lead_id, memo)

    def set_status(self, actor: str, lead_id: str, field: str, value: bool) -> None:
        if not lead_id:
            raise InvalidArgument("leadId is required.")
        if field not in TOGGLEABLE_FLAGS:
            raise InvalidArgument(
                f"Field '{field}' is not updatable.",
                {"allowed": list(TOGGLEABLE_FLAGS)},
            )
        with transaction(self.db):
            self.leads.get(lead_id)
            self.audit.record(AuditAction.SET_STATUS, actor, [lead_id], {"field": field, "value": value})
            self.leads.set_flag(lead_id, field, value)
