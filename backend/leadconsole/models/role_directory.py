"""
Role directory database model.

A single versioned record holds the whole identifier -> role map together
with per-identifier notification flags. It is read on every authorization
check, so it stays one small row rather than a table of users.
"""

import enum
from typing import Optional

from sqlalchemy import Column, String, Integer, DateTime, JSON
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.sql import func

from ..core.database import Base


# =============================================================================
# Enums
# =============================================================================

class Role(str, enum.Enum):
    """Console roles, ordered super > admin > user."""

    SUPER = "super"
    ADMIN = "admin"
    USER = "user"

    @classmethod
    def _missing_(cls, value):
        # Directories written by the earlier console store "super-admin"
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "super-admin":
                return cls.SUPER
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    @classmethod
    def parse(cls, value: object) -> Optional["Role"]:
        """Return the matching role, or None for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return None


_ROLE_RANK: dict[Role, int] = {
    Role.SUPER: 100,
    Role.ADMIN: 50,
    Role.USER: 10,
}

# Roles that may be granted through the API; super is granted out of band
ASSIGNABLE_ROLES = (Role.ADMIN, Role.USER)

NOTIFICATION_FIELDS = ("notifyOnNewLead", "notifyOnDailySummary")

DIRECTORY_RECORD_KEY = "admins"


# =============================================================================
# Role Directory Record
# =============================================================================

class RoleDirectoryRecord(Base):
    """
    Singleton role directory row.

    Attributes:
        key: always ``admins``
        roles: {identifier: role value}; keys are stored as entered
        notifications: {sanitized identifier: {notifyOnNewLead, notifyOnDailySummary}}
        version: incremented on every write (optimistic concurrency)
    """

    __tablename__ = "role_directory"

    key = Column(String(50), primary_key=True, default=DIRECTORY_RECORD_KEY)
    roles = Column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    notifications = Column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    version = Column(Integer, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<RoleDirectoryRecord(version={self.version}, roles={len(self.roles or {})})>"
