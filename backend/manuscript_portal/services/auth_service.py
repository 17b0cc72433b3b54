"""
Account creation and login.
"""
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from manuscript_portal.core.exceptions import (
    ApprovalPendingError,
    DuplicateEmailError,
    InactiveAccountError,
    InvalidCredentialsError,
)
from manuscript_portal.core.logging_config import logger
from manuscript_portal.core.security import get_password_hash, verify_password
from manuscript_portal.core.types import utcnow
from manuscript_portal.models import ApplicationStatus, ResearcherApplication, User, UserRole
from manuscript_portal.schemas.auth import ResearcherSignupRequest, SignupRequest


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.USER,
    is_approved: bool = True,
) -> User:
    """Add a user to the session (not committed). Raises DuplicateEmailError."""
    if await get_user_by_email(db, email):
        raise DuplicateEmailError()

    user = User(
        name=name,
        email=email.strip().lower(),
        hashed_password=get_password_hash(password),
        role=role,
        is_approved=is_approved,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    return user


async def signup_normal(db: AsyncSession, data: SignupRequest) -> User:
    user = await create_user(db, data.name, data.email, data.password)
    await db.commit()
    await db.refresh(user)

    logger.log_auth_event("signup", success=True, user_email=user.email, role="user")
    return user


async def signup_researcher(
    db: AsyncSession,
    data: ResearcherSignupRequest,
    id_proof_url: Optional[str] = None,
) -> Tuple[User, ResearcherApplication]:
    """New account that cannot sign in until an admin reviews its application"""
    user = await create_user(db, data.name, data.email, data.password, is_approved=False)
    user.phone_number = data.phone_number
    user.research_description = data.research_description
    user.id_proof_url = id_proof_url

    application = ResearcherApplication(
        user_id=user.id,
        phone_number=data.phone_number,
        research_description=data.research_description,
        id_proof_url=id_proof_url,
        status=ApplicationStatus.PENDING,
        via_signup=True,
    )
    db.add(application)
    await db.commit()
    await db.refresh(user)
    await db.refresh(application)

    logger.log_auth_event("signup", success=True, user_email=user.email, role="researcher_applicant")
    return user, application


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """
    Check credentials and login eligibility.

    Raises:
        InvalidCredentialsError: unknown email or wrong password
        ApprovalPendingError: signup applicant still awaiting review
        InactiveAccountError: account disabled by an admin
    """
    user = await get_user_by_email(db, email)

    if not user or not verify_password(password, user.hashed_password):
        logger.log_auth_event("login", success=False, user_email=email, reason="invalid_credentials")
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.log_auth_event("login", success=False, user_email=email, reason="inactive")
        raise InactiveAccountError()

    if user.role == UserRole.USER and not user.is_approved:
        logger.log_auth_event("login", success=False, user_email=email, reason="pending_approval")
        raise ApprovalPendingError()

    user.last_login = utcnow()
    await db.commit()

    logger.log_auth_event("login", success=True, user_email=user.email, role=user.role.value)
    return user
