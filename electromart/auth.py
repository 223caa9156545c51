"""
Authentication and authorization utilities for the ElectroMart backend.

Validates Firebase ID tokens sent as bearer tokens.
"""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from .clients.firebase import IdentityVerifier
from .config import Settings
from .dependencies import get_identity, get_settings
from .exceptions import UnauthenticatedError, UnauthorizedError

logger = logging.getLogger(__name__)

# Missing headers are reported through UnauthenticatedError, not FastAPI's default 403
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Current authenticated user information."""
    uid: str
    email: Optional[str] = None
    token: str


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityVerifier = Depends(get_identity),
) -> CurrentUser:
    """
    FastAPI dependency to get the current authenticated user from a Firebase ID token.

    Args:
        credentials: HTTP Authorization credentials (injected)
        identity: Token verifier (injected)

    Returns:
        Current authenticated user information

    Raises:
        UnauthenticatedError: 401 if the header is missing or the token is invalid
    """
    if credentials is None:
        raise UnauthenticatedError("Authentication required")

    token = credentials.credentials
    claims = await identity.verify(token)
    uid = claims.get("uid") or claims.get("sub")
    if not uid:
        logger.error("Token has no uid claim")
        raise UnauthenticatedError("Invalid or expired token")

    return CurrentUser(uid=uid, email=claims.get("email"), token=token)


def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """
    FastAPI dependency to require an organisation account.

    Admins are recognised by the domain of their email address.

    Raises:
        UnauthorizedError: 403 if the user's email is outside the admin domain
    """
    if not current_user.email or not current_user.email.endswith(settings.server.admin_email_domain):
        raise UnauthorizedError("Admin access required")
    return current_user
