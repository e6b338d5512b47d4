"""
Identity token verification.

Tokens are issued by an external identity provider; this module only
verifies them and extracts the email claim. Token issuance in this
codebase exists solely for tests and local tooling (``create_identity_token``).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt

from .config import settings


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    """Caller identity vouched for by the identity provider."""
    identifier: str


def _decode_options() -> dict[str, Any]:
    return {
        "verify_aud": bool(settings.identity_token_audience),
        "verify_iss": bool(settings.identity_token_issuer),
    }


def decode_identity_token(token: str) -> Optional[VerifiedIdentity]:
    """
    Decode and verify an identity token.

    Args:
        token: JWT string from the Authorization header

    Returns:
        VerifiedIdentity, or None when the token is invalid, expired, has no
        email claim, or the provider marks the email as unverified
    """
    try:
        payload = jwt.decode(
            token,
            settings.identity_token_secret,
            algorithms=[settings.identity_token_algorithm],
            audience=settings.identity_token_audience or None,
            issuer=settings.identity_token_issuer or None,
            options=_decode_options(),
        )
    except JWTError as e:
        logger.info(f"Rejected identity token: {e}")
        return None

    email = payload.get("email")
    if not isinstance(email, str) or not email.strip():
        logger.info("Rejected identity token without an email claim")
        return None
    if payload.get("email_verified") is False:
        logger.info("Rejected identity token with unverified email")
        return None

    return VerifiedIdentity(identifier=email)


def create_identity_token(
    email: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[dict[str, Any]] = None,
) -> str:
    """
    Create a signed identity token (tests and local tooling only).

    Args:
        email: value of the email claim
        expires_delta: Optional custom expiration time (default 1 hour)
        extra_claims: additional claims merged into the payload

    Returns:
        Encoded JWT token string
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    to_encode: dict[str, Any] = {"email": email, "email_verified": True, "exp": expire}
    if settings.identity_token_audience:
        to_encode["aud"] = settings.identity_token_audience
    if settings.identity_token_issuer:
        to_encode["iss"] = settings.identity_token_issuer
    to_encode.update(extra_claims or {})
    return jwt.encode(
        to_encode,
        settings.identity_token_secret,
        algorithm=settings.identity_token_algorithm,
    )
