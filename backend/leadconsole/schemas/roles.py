"""
Role directory request/response schemas.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.role_directory import ASSIGNABLE_ROLES, Role


class RoleAssignment(BaseModel):
    """Grant or change a role (super only)."""

    identifier: str = Field(..., min_length=1, max_length=255, description="Email of the principal")
    role: Role = Field(..., description="admin or user")

    @field_validator("identifier")
    @classmethod
    def strip_identifier(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("identifier must not be blank")
        return v

    @field_validator("role")
    @classmethod
    def assignable_only(cls, v: Role) -> Role:
        if v not in ASSIGNABLE_ROLES:
            raise ValueError(f"role must be one of: {', '.join(r.value for r in ASSIGNABLE_ROLES)}")
        return v


class NotificationUpdate(BaseModel):
    identifier: str = Field(..., min_length=1, max_length=255)
    field: Literal["notifyOnNewLead", "notifyOnDailySummary"]
    value: bool


class MyRoleResponse(BaseModel):
    identifier: str
    role: Optional[Role] = None


class DirectoryMemberResponse(BaseModel):
    identifier: str
    role: Optional[Role] = None
    notifyOnNewLead: bool
    notifyOnDailySummary: bool


class DirectoryListResponse(BaseModel):
    members: List[DirectoryMemberResponse]
