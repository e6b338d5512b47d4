"""
Role directory endpoints.

Endpoints:
- GET    /api/roles/me             caller's own role (any verified identity)
- GET    /api/roles                directory listing (admin, super)
- POST   /api/roles                add a principal (super)
- PUT    /api/roles                change a principal's role (super)
- PATCH  /api/roles/notifications  toggle a notification flag (super)
- DELETE /api/roles/{identifier}   remove a principal (super)
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import ADMIN_ROLES, SUPER_ONLY, CallerRole, get_caller_role, require_role
from ..core.database import get_db
from ..core.transactions import transaction
from ..schemas.common import ERROR_RESPONSES, Ack
from ..schemas.roles import (
    DirectoryListResponse,
    DirectoryMemberResponse,
    MyRoleResponse,
    NotificationUpdate,
    RoleAssignment,
)
from ..services.role_directory import RoleDirectoryRepository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/roles", tags=["Roles"], responses=ERROR_RESPONSES)


@router.get("/me", response_model=MyRoleResponse)
async def resolve_my_role(caller: CallerRole = Depends(get_caller_role)) -> MyRoleResponse:
    """Identity and role only; lets a client bootstrap before it knows its permissions."""
    return MyRoleResponse(identifier=caller.identifier, role=caller.role)


@router.get("", response_model=DirectoryListResponse)
async def list_admins(
    caller: CallerRole = Depends(require_role(*ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> DirectoryListResponse:
    directory = RoleDirectoryRepository(db).get()
    return DirectoryListResponse(members=[
        DirectoryMemberResponse(
            identifier=member.identifier,
            role=member.role,
            notifyOnNewLead=member.preferences.notify_on_new_lead,
            notifyOnDailySummary=member.preferences.notify_on_daily_summary,
        )
        for member in directory.members()
    ])


@router.post("", response_model=Ack)
async def add_admin(
    body: RoleAssignment,
    caller: CallerRole = Depends(require_role(*SUPER_ONLY)),
    db: Session = Depends(get_db),
) -> Ack:
    with transaction(db):
        RoleDirectoryRepository(db).assign(body.identifier, body.role)
    logger.info(f"{caller.identifier} granted {body.role.value} to {body.identifier}")
    return Ack()


@router.put("", response_model=Ack)
async def set_role(
    body: RoleAssignment,
    caller: CallerRole = Depends(require_role(*SUPER_ONLY)),
    db: Session = Depends(get_db),
) -> Ack:
    with transaction(db):
        RoleDirectoryRepository(db).assign(body.identifier, body.role)
    logger.info(f"{caller.identifier} set {body.identifier} to {body.role.value}")
    return Ack()


@router.patch("/notifications", response_model=Ack)
async def update_admin_notifications(
    body: NotificationUpdate,
    caller: CallerRole = Depends(require_role(*SUPER_ONLY)),
    db: Session = Depends(get_db),
) -> Ack:
    with transaction(db):
        RoleDirectoryRepository(db).set_notification(body.identifier, body.field, body.value)
    return Ack()


@router.delete("/{identifier}", response_model=Ack)
async def remove_role(
    identifier: str,
    caller: CallerRole = Depends(require_role(*SUPER_ONLY)),
    db: Session = Depends(get_db),
) -> Ack:
    with transaction(db):
        RoleDirectoryRepository(db).remove(identifier)
    logger.info(f"{caller.identifier} removed {identifier} from the role directory")
    return Ack()
