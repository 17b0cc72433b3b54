"""
Researcher approval workflow.

    (none) --apply/signup--> pending --approve--> approved
                                 \\--reject--> rejected --re-apply--> pending
    approved --revoke--> rejected

Role changes made through the admin user editor go through
sync_role_change so the application never contradicts the role.

Approval makes the user a researcher. Rejection leaves them a normal user
and unlocks login for signup applicants.
"""
from typing import Optional

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from manuscript_portal.core.exceptions import (
    ApplicationAlreadySubmittedError,
    ApplicationNotFoundError,
    InvalidIdentifierError,
    InvalidStateTransitionError,
    UserNotFoundError,
    ValidationError,
)
from manuscript_portal.core.logging_config import logger
from manuscript_portal.core.types import is_valid_uuid, utcnow
from manuscript_portal.models import ApplicationStatus, ResearcherApplication, User, UserRole
from manuscript_portal.schemas.auth import ResearcherDetails
from manuscript_portal.services.audit import log_admin_action
from manuscript_portal.utils.pagination import paginate


def application_to_dict(application: ResearcherApplication, applicant: Optional[User] = None) -> dict:
    """Flatten an application with its applicant's name and email"""
    return {
        "id": str(application.id),
        "user_id": str(application.user_id),
        "user_name": applicant.name if applicant else None,
        "user_email": applicant.email if applicant else None,
        "phone_number": application.phone_number,
        "research_description": application.research_description,
        "id_proof_url": application.id_proof_url,
        "status": application.status.value,
        "via_signup": bool(application.via_signup),
        "reviewed_by": str(application.reviewed_by) if application.reviewed_by else None,
        "reviewed_at": application.reviewed_at,
        "review_note": application.review_note,
        "created_at": application.created_at,
    }


async def get_application_for_user(db: AsyncSession, user_id: str) -> Optional[ResearcherApplication]:
    result = await db.execute(
        select(ResearcherApplication).where(ResearcherApplication.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def _get_user(db: AsyncSession, user_id: str) -> User:
    if not is_valid_uuid(user_id):
        raise InvalidIdentifierError("Invalid user ID format", field="user_id")
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user:
        raise UserNotFoundError(user_id)
    return user


async def _get_application(db: AsyncSession, application_id: str) -> ResearcherApplication:
    if not is_valid_uuid(application_id):
        raise InvalidIdentifierError("Invalid application ID format", field="application_id")
    result = await db.execute(
        select(ResearcherApplication).where(ResearcherApplication.id == application_id)
    )
    application = result.scalar_one_or_none()
    if not application:
        raise ApplicationNotFoundError(application_id)
    return application


async def apply_for_researcher(
    db: AsyncSession,
    user: User,
    details: ResearcherDetails,
    id_proof_url: Optional[str] = None,
) -> ResearcherApplication:
    """Upgrade request from an existing account. The user keeps their access meanwhile."""
    existing = await get_application_for_user(db, user.id)
    if existing and existing.status in (ApplicationStatus.PENDING, ApplicationStatus.APPROVED):
        raise ApplicationAlreadySubmittedError()

    if user.role == UserRole.ADMIN:
        raise ValidationError("Admins cannot apply for researcher access")
    if user.role == UserRole.RESEARCHER:
        raise ValidationError("You are already a researcher")

    if existing:
        # Rejected before: the same row goes back to pending
        application = existing
        application.status = ApplicationStatus.PENDING
        application.via_signup = False
        application.reviewed_by = None
        application.reviewed_at = None
        application.review_note = None
    else:
        application = ResearcherApplication(user_id=user.id, via_signup=False)
        db.add(application)

    application.phone_number = details.phone_number
    application.research_description = details.research_description
    application.id_proof_url = id_proof_url

    user.phone_number = details.phone_number
    user.research_description = details.research_description
    if id_proof_url:
        user.id_proof_url = id_proof_url

    await db.commit()
    await db.refresh(application)

    logger.info(
        f"[Researcher] Application submitted by {user.email}",
        extra={"event_type": "researcher_application", "user_email": user.email, "resubmitted": existing is not None}
    )
    return application


async def list_applications(
    db: AsyncSession,
    status: Optional[ApplicationStatus] = ApplicationStatus.PENDING,
    page: int = 1,
    page_size: int = 20,
) -> dict:
    query = select(ResearcherApplication, User).join(User, User.id == ResearcherApplication.user_id)
    if status is not None:
        query = query.where(ResearcherApplication.status == status)
    query = query.order_by(ResearcherApplication.created_at.asc())
    return await paginate(db, query, page, page_size, transform=lambda row: application_to_dict(*row))


async def _decide(
    db: AsyncSession,
    application: ResearcherApplication,
    applicant: User,
    admin: User,
    approve: bool,
    note: Optional[str],
    request: Optional[Request],
) -> ResearcherApplication:
    if application.status != ApplicationStatus.PENDING:
        raise InvalidStateTransitionError(
            "researcher application", application.status.value, "approve" if approve else "reject"
        )

    application.status = ApplicationStatus.APPROVED if approve else ApplicationStatus.REJECTED
    application.reviewed_by = admin.id
    application.reviewed_at = utcnow()
    application.review_note = note

    if approve:
        applicant.role = UserRole.RESEARCHER
    # Rejected signup applicants may still sign in as normal users
    applicant.is_approved = True

    log_admin_action(
        db, admin,
        action="researcher_approved" if approve else "researcher_rejected",
        target_type="application",
        target_id=application.id,
        details={"user_id": str(applicant.id), "email": applicant.email, "note": note},
        request=request,
    )
    await db.commit()
    return application


async def approve_application(db: AsyncSession, application_id: str, admin: User,
                              note: Optional[str] = None, request: Optional[Request] = None):
    application = await _get_application(db, application_id)
    applicant = await _get_user(db, application.user_id)
    await _decide(db, application, applicant, admin, True, note, request)
    return application, applicant


async def reject_application(db: AsyncSession, application_id: str, admin: User,
                             note: Optional[str] = None, request: Optional[Request] = None):
    application = await _get_application(db, application_id)
    applicant = await _get_user(db, application.user_id)
    await _decide(db, application, applicant, admin, False, note, request)
    return application, applicant


async def set_researcher_approval(
    db: AsyncSession,
    user_id: str,
    is_approved: bool,
    admin: User,
    note: Optional[str] = None,
    request: Optional[Request] = None,
):
    """
    Single-switch approval used by the admin verification screen.

    Decides the user's pending application when there is one. Otherwise,
    for an existing researcher, suspends or reinstates their access.
    Returns (user, application, audit action).
    """
    user = await _get_user(db, user_id)
    application = await get_application_for_user(db, user.id)

    if application is not None and application.status == ApplicationStatus.PENDING:
        await _decide(db, application, user, admin, is_approved, note, request)
        return user, application, "researcher_approved" if is_approved else "researcher_rejected"

    if user.role != UserRole.RESEARCHER:
        raise ValidationError("User is not a researcher", field="user_id")

    user.is_approved = is_approved
    action = "researcher_reinstated" if is_approved else "researcher_suspended"
    log_admin_action(
        db, admin,
        action=action,
        target_type="user",
        target_id=user.id,
        details={"email": user.email, "note": note},
        request=request,
    )
    await db.commit()
    return user, application, action


def _close_application(application: Optional[ResearcherApplication], admin: User, note: Optional[str]) -> None:
    if application is None or application.status == ApplicationStatus.REJECTED:
        return
    application.status = ApplicationStatus.REJECTED
    application.reviewed_by = admin.id
    application.reviewed_at = utcnow()
    application.review_note = note or "Researcher access revoked"


async def revoke_researcher(
    db: AsyncSession,
    user_id: str,
    admin: User,
    note: Optional[str] = None,
    request: Optional[Request] = None,
):
    user = await _get_user(db, user_id)
    if user.role != UserRole.RESEARCHER:
        raise ValidationError("User is not a researcher", field="user_id")

    user.role = UserRole.USER
    user.is_approved = True

    application = await get_application_for_user(db, user.id)
    _close_application(application, admin, note)

    log_admin_action(
        db, admin,
        action="researcher_revoked",
        target_type="user",
        target_id=user.id,
        details={"email": user.email, "note": note},
        request=request,
    )
    await db.commit()
    return user, application


async def sync_role_change(db: AsyncSession, user: User, new_role: UserRole, admin: User) -> None:
    """
    Keep the application in step with a role set directly by an admin.

    Becoming a researcher approves a pending application. Any other role
    closes it, so a demoted researcher may re-apply. Does not commit.
    """
    if new_role == user.role:
        return
    application = await get_application_for_user(db, user.id)

    if new_role == UserRole.RESEARCHER:
        if application is not None and application.status == ApplicationStatus.PENDING:
            application.status = ApplicationStatus.APPROVED
            application.reviewed_by = admin.id
            application.reviewed_at = utcnow()
    else:
        _close_application(application, admin, None)
    # Signup applicants stay locked out otherwise
    user.is_approved = True
