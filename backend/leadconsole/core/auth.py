"""
Authentication and authorisation for the console.

Provides:
- AuthorizationGate: resolves a verified identity to a role and checks it
  against an operation's allow-list
- get_verified_identity: extracts & verifies the bearer identity token
- require_role(*roles): factory that returns a dependency enforcing role membership
- get_caller_role: identity + role lookup without an allow-list check

The role directory is re-read on every call; nothing is cached between calls.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .exceptions import PermissionDenied, Unauthenticated
from .security import VerifiedIdentity, decode_identity_token
from ..models.role_directory import Role
from ..services.role_directory import RoleDirectoryRepository


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CallerRole:
    """Outcome of role resolution; ``identifier`` is the caller's original spelling."""
    identifier: str
    role: Optional[Role]


class AuthorizationGate:
    """
    Gate every privileged operation on the caller's role.

    Example usage:
        gate = AuthorizationGate(RoleDirectoryRepository(db))
        caller = gate.authorize(identity, {Role.ADMIN, Role.SUPER})
    """

    def __init__(self, directory: RoleDirectoryRepository):
        self.directory = directory

    def resolve(self, identity: Optional[VerifiedIdentity]) -> CallerRole:
        """
        Look up the caller's role without checking any allow-list.

        Raises:
            Unauthenticated: no verified identity
        """
        if identity is None:
            raise Unauthenticated("Authentication required.")
        role = self.directory.get().resolve(identity.identifier)
        return CallerRole(identifier=identity.identifier, role=role)

    def authorize(
        self,
        identity: Optional[VerifiedIdentity],
        allowed_roles: Iterable[Role],
    ) -> CallerRole:
        """
        Resolve the caller's role and require it to be in ``allowed_roles``.

        Raises:
            Unauthenticated: no verified identity
            PermissionDenied: no role, or a role outside the allow-list
        """
        allowed = tuple(allowed_roles)
        caller = self.resolve(identity)
        if caller.role is None or caller.role not in allowed:
            resolved = caller.role.value if caller.role else None
            required = [role.value for role in allowed]
            logger.warning(
                f"Permission denied for {caller.identifier}: role={resolved}, required={required}"
            )
            raise PermissionDenied(
                f"Permission denied. Your role is '{resolved}'. "
                f"Required one of: {', '.join(required)}",
                {"role": resolved, "required": required},
            )
        return caller


# =============================================================================
# FastAPI dependencies
# =============================================================================

async def get_verified_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[VerifiedIdentity]:
    """Return the verified caller identity, or None when absent/invalid."""
    if credentials is None or not credentials.credentials:
        return None
    return decode_identity_token(credentials.credentials)


async def get_caller_role(
    identity: Optional[VerifiedIdentity] = Depends(get_verified_identity),
    db: Session = Depends(get_db),
) -> CallerRole:
    """Identity verification and role lookup only (no allow-list)."""
    return AuthorizationGate(RoleDirectoryRepository(db)).resolve(identity)


def require_role(*allowed_roles: Role):
    """
    Factory: returns a FastAPI dependency that checks the caller's role.

    Usage:
        @router.get("/roas")
        async def roas(caller: CallerRole = Depends(require_role(Role.ADMIN, Role.SUPER))):
            ...
    """
    async def _check(
        identity: Optional[VerifiedIdentity] = Depends(get_verified_identity),
        db: Session = Depends(get_db),
    ) -> CallerRole:
        return AuthorizationGate(RoleDirectoryRepository(db)).authorize(identity, allowed_roles)

    return _check


ALL_ROLES = (Role.USER, Role.ADMIN, Role.SUPER)
ADMIN_ROLES = (Role.ADMIN, Role.SUPER)
SUPER_ONLY = (Role.SUPER,)
