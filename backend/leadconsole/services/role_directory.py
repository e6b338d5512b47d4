"""
Role directory service.

``RoleDirectory`` is an immutable snapshot of the directory record;
``RoleDirectoryRepository`` reads and writes that record. Authorization
asks the repository for a fresh snapshot on every call.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import InvalidArgument, NotFound
from ..models.role_directory import (
    Role,
    RoleDirectoryRecord,
    NOTIFICATION_FIELDS,
    DIRECTORY_RECORD_KEY,
)


logger = logging.getLogger(__name__)


def normalize_identifier(identifier: str) -> str:
    """Trim and lowercase an identifier for comparison."""
    return identifier.strip().lower()


def sanitize_identifier(identifier: str) -> str:
    """Key used for the notification map (dots are not allowed in field paths)."""
    return normalize_identifier(identifier).replace(".", "_")


@dataclass(frozen=True)
class NotificationPreferences:
    notify_on_new_lead: bool = True
    notify_on_daily_summary: bool = True


@dataclass(frozen=True)
class DirectoryMember:
    identifier: str
    role: Optional[Role]
    preferences: NotificationPreferences


@dataclass(frozen=True)
class RoleDirectory:
    """
    Snapshot of identifier -> role mapping plus notification flags.

    Stored keys are not guaranteed to be normalized, so lookups normalize
    both sides. When several stored keys normalize to the same identifier
    the last one wins.
    """

    roles: dict[str, str] = field(default_factory=dict)
    notifications: dict[str, dict[str, bool]] = field(default_factory=dict)
    version: int = 0

    def resolve(self, identifier: str) -> Optional[Role]:
        """Return the role for ``identifier`` or None when it has none."""
        wanted = normalize_identifier(identifier)
        matched: Optional[str] = None
        for key, value in self.roles.items():
            if normalize_identifier(key) == wanted:
                matched = value
        if matched is None:
            return None
        role = Role.parse(matched)
        if role is None:
            logger.warning(f"Ignoring unknown role value {matched!r} in role directory")
        return role

    def notification_preferences(self, identifier: str) -> NotificationPreferences:
        prefs = self.notifications.get(sanitize_identifier(identifier)) or {}
        return NotificationPreferences(
            notify_on_new_lead=prefs.get("notifyOnNewLead") is not False,
            notify_on_daily_summary=prefs.get("notifyOnDailySummary") is not False,
        )

    def members(self) -> list[DirectoryMember]:
        """All stored identifiers, highest role first, then alphabetically."""
        members = [
            DirectoryMember(
                identifier=key,
                role=Role.parse(value),
                preferences=self.notification_preferences(key),
            )
            for key, value in self.roles.items()
        ]
        return sorted(
            members,
            key=lambda m: (-(m.role.rank if m.role else 0), normalize_identifier(m.identifier)),
        )

    def recipients(self, flag: str) -> list[str]:
        """Identifiers whose notification ``flag`` is not switched off."""
        if flag not in NOTIFICATION_FIELDS:
            raise InvalidArgument(f"Unknown notification flag '{flag}'.")
        recipients = []
        for key in self.roles:
            prefs = self.notifications.get(sanitize_identifier(key)) or {}
            if prefs.get(flag) is not False:
                recipients.append(key)
        return recipients


class RoleDirectoryRepository:
    """
    Reads and writes the singleton role directory record.

    Write methods mutate the session only; the caller commits (usually via
    ``transaction(db)``).
    """

    def __init__(self, db: Session):
        self.db = db

    def _record(self) -> Optional[RoleDirectoryRecord]:
        return self.db.get(RoleDirectoryRecord, DIRECTORY_RECORD_KEY)

    def _record_for_update(self) -> RoleDirectoryRecord:
        record = self._record()
        if record is None:
            record = RoleDirectoryRecord(key=DIRECTORY_RECORD_KEY, roles={}, notifications={})
            self.db.add(record)
            # db.get only sees flushed rows
            self.db.flush()
        return record

    @staticmethod
    def _has_member(record: Optional[RoleDirectoryRecord], identifier: str) -> bool:
        """Stored-key presence, regardless of whether the role value parses."""
        if record is None:
            return False
        wanted = normalize_identifier(identifier)
        return any(normalize_identifier(key) == wanted for key in (record.roles or {}))

    @staticmethod
    def _snapshot(record: RoleDirectoryRecord) -> RoleDirectory:
        return RoleDirectory(
            roles=dict(record.roles or {}),
            notifications={k: dict(v or {}) for k, v in (record.notifications or {}).items()},
            version=record.version or 0,
        )

    def get(self) -> RoleDirectory:
        record = self._record()
        if record is None:
            logger.critical("Role directory record not found; every caller resolves to no role")
            return RoleDirectory()
        return self._snapshot(record)

    def assign(self, identifier: str, role: Role) -> None:
        """
        Set ``identifier``'s role, replacing any key that normalizes equal.

        Notification flags are initialized to true when absent.
        """
        identifier = identifier.strip()
        if not identifier:
            raise InvalidArgument("A valid identifier is required.")

        record = self._record_for_update()
        wanted = normalize_identifier(identifier)
        roles = {
            key: value
            for key, value in (record.roles or {}).items()
            if normalize_identifier(key) != wanted
        }
        roles[identifier] = role.value
        record.roles = roles

        notifications = dict(record.notifications or {})
        notifications.setdefault(
            sanitize_identifier(identifier),
            {name: True for name in NOTIFICATION_FIELDS},
        )
        record.notifications = notifications
        logger.info(f"Role directory: {identifier} -> {role.value}")

    def remove(self, identifier: str) -> None:
        record = self._record()
        if not self._has_member(record, identifier):
            raise NotFound(f"'{identifier}' is not in the role directory.")

        wanted = normalize_identifier(identifier)
        record.roles = {
            key: value
            for key, value in record.roles.items()
            if normalize_identifier(key) != wanted
        }
        notifications = dict(record.notifications or {})
        notifications.pop(sanitize_identifier(identifier), None)
        record.notifications = notifications
        logger.info(f"Role directory: removed {identifier}")

    def set_notification(self, identifier: str, flag: str, value: bool) -> None:
        if flag not in NOTIFICATION_FIELDS:
            raise InvalidArgument(
                f"Field '{flag}' is not a notification flag.",
                {"allowed": list(NOTIFICATION_FIELDS)},
            )
        record = self._record()
        if not self._has_member(record, identifier):
            raise NotFound(f"'{identifier}' is not in the role directory.")

        notifications = dict(record.notifications or {})
        key = sanitize_identifier(identifier)
        prefs = dict(notifications.get(key) or {})
        prefs[flag] = value
        notifications[key] = prefs
        record.notifications = notifications
