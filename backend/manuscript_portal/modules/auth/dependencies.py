from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Callable, Optional

from manuscript_portal.core.database import get_db
from manuscript_portal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InactiveAccountError,
    InvalidTokenError,
)
from manuscript_portal.core.logging_config import set_user_id
from manuscript_portal.core.security import decode_token, ACCESS_TOKEN_TYPE
from manuscript_portal.core.types import is_valid_uuid
from manuscript_portal.models.user import User, UserRole

# auto_error=False so a missing header reaches us and gets the portal's own 401
security = HTTPBearer(auto_error=False)

NO_TOKEN_MESSAGE = "No token, authorization denied"
RESEARCHER_NOT_APPROVED_MESSAGE = (
    "Forbidden: Your researcher status is pending approval or has been rejected."
)


async def _load_user_from_token(token: str, db: AsyncSession) -> User:
    payload = decode_token(token, expected_type=ACCESS_TOKEN_TYPE)

    user_id = payload.get("sub")
    if not user_id or not is_valid_uuid(user_id):
        raise InvalidTokenError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found", code="USER_NOT_FOUND")

    if not user.is_active:
        raise InactiveAccountError()

    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user (role and approval come from the database)"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(NO_TOKEN_MESSAGE, code="NO_TOKEN")

    user = await _load_user_from_token(credentials.credentials, db)

    request.state.user_id = str(user.id)
    set_user_id(str(user.id))
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Current user, or None for anonymous requests. A bad token still fails."""
    if credentials is None or not credentials.credentials:
        return None

    user = await _load_user_from_token(credentials.credentials, db)
    request.state.user_id = str(user.id)
    set_user_id(str(user.id))
    return user


def check_roles(user: User, *roles: UserRole) -> None:
    """Raise AuthorizationError unless user holds one of roles.

    Admins always pass. Researchers must also be approved.
    """
    if user.role == UserRole.ADMIN:
        return

    if user.role not in roles:
        raise AuthorizationError()

    if user.role == UserRole.RESEARCHER and not user.is_approved:
        raise AuthorizationError(RESEARCHER_NOT_APPROVED_MESSAGE, code="RESEARCHER_NOT_APPROVED")


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory: ``Depends(require_roles(UserRole.RESEARCHER))``"""

    async def _dependency(current_user: User = Depends(get_current_user)) -> User:
        check_roles(current_user, *roles)
        return current_user

    return _dependency


get_current_admin = require_roles(UserRole.ADMIN)
get_current_researcher = require_roles(UserRole.RESEARCHER)
