"""
Help requests and per-manuscript access requests.
"""
from typing import Optional

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from manuscript_portal.core.exceptions import (
    AccessRequestNotFoundError,
    DuplicateAccessRequestError,
    HelpRequestNotFoundError,
    InvalidIdentifierError,
    InvalidStateTransitionError,
    ManuscriptNotFoundError,
    ValidationError,
)
from manuscript_portal.core.logging_config import logger
from manuscript_portal.core.types import is_valid_uuid, utcnow
from manuscript_portal.models import (
    AccessRequest,
    AccessRequestStatus,
    HelpRequest,
    HelpRequestStatus,
    Manuscript,
    User,
)
from manuscript_portal.schemas.requests import HelpRequestCreate
from manuscript_portal.services import access_policy
from manuscript_portal.services.audit import log_admin_action
from manuscript_portal.services.manuscript_service import get_manuscript, granted_manuscript_ids
from manuscript_portal.utils.pagination import paginate

FAQ = [
    {
        "question": "How do I view detailed manuscripts?",
        "answer": "Apply for researcher access from your dashboard. Once an admin approves "
                  "your application you can view detailed manuscripts and their page scans.",
    },
    {
        "question": "How long does researcher approval take?",
        "answer": "Applications are usually reviewed within a few working days. "
                  "You will receive an email when a decision is made.",
    },
    {
        "question": "Can I request access to a single manuscript?",
        "answer": "Yes. Open the manuscript and use 'Request access'. An admin will review the request.",
    },
    {
        "question": "Who can add annotations?",
        "answer": "Approved researchers can annotate any manuscript they can view in full.",
    },
    {
        "question": "My researcher application was rejected. What now?",
        "answer": "You can keep using the portal as a normal user and re-apply with more details.",
    },
]


# ==================== Help Requests ====================

def help_request_to_dict(help_request: HelpRequest) -> dict:
    return {
        "id": str(help_request.id),
        "user_id": str(help_request.user_id),
        "user_name": help_request.user_name,
        "user_email": help_request.user_email,
        "manuscript_id": str(help_request.manuscript_id) if help_request.manuscript_id else None,
        "message": help_request.message,
        "status": help_request.status.value,
        "created_at": help_request.created_at,
        "resolved_at": help_request.resolved_at,
    }


async def submit_help_request(db: AsyncSession, user: User, data: HelpRequestCreate) -> HelpRequest:
    manuscript_id = None
    if data.manuscript_id:
        manuscript = await get_manuscript(db, data.manuscript_id, "Invalid manuscript ID format.")
        if not access_policy.can_list(user, manuscript):
            raise ManuscriptNotFoundError(data.manuscript_id)
        manuscript_id = manuscript.id

    help_request = HelpRequest(
        user_id=user.id,
        user_name=user.name,
        user_email=user.email,
        manuscript_id=manuscript_id,
        message=data.message.strip(),
    )
    db.add(help_request)
    await db.commit()
    await db.refresh(help_request)

    logger.info(
        f"[Help] Request from {user.email}",
        extra={"event_type": "help_request", "help_request_id": str(help_request.id)}
    )
    return help_request


async def list_help_requests(db: AsyncSession, status: Optional[HelpRequestStatus] = None,
                             page: int = 1, page_size: int = 20) -> dict:
    query = select(HelpRequest)
    if status is not None:
        query = query.where(HelpRequest.status == status)
    query = query.order_by(HelpRequest.created_at.desc())
    return await paginate(db, query, page, page_size, transform=help_request_to_dict)


async def resolve_help_request(db: AsyncSession, request_id: str, admin: User,
                               request: Optional[Request] = None) -> HelpRequest:
    if not is_valid_uuid(request_id):
        raise InvalidIdentifierError()
    help_request = (await db.execute(
        select(HelpRequest).where(HelpRequest.id == request_id)
    )).scalar_one_or_none()
    if not help_request:
        raise HelpRequestNotFoundError(request_id)
    if help_request.status == HelpRequestStatus.RESOLVED:
        raise InvalidStateTransitionError("help request", help_request.status.value, "resolve")

    help_request.status = HelpRequestStatus.RESOLVED
    help_request.resolved_at = utcnow()
    help_request.resolved_by = admin.id
    log_admin_action(db, admin, "help_request_resolved", "help_request", help_request.id, request=request)
    await db.commit()
    return help_request


# ==================== Access Requests ====================

def access_request_to_dict(access_request: AccessRequest, user: Optional[User] = None,
                           manuscript: Optional[Manuscript] = None) -> dict:
    return {
        "id": str(access_request.id),
        "user_id": str(access_request.user_id),
        "manuscript_id": str(access_request.manuscript_id),
        "status": access_request.status.value,
        "created_at": access_request.created_at,
        "reviewed_at": access_request.reviewed_at,
        "user_name": user.name if user else None,
        "user_email": user.email if user else None,
        "manuscript_title": manuscript.title if manuscript else None,
    }


async def request_access(db: AsyncSession, user: User, manuscript_id: str) -> AccessRequest:
    manuscript = await get_manuscript(db, manuscript_id, "Invalid manuscript ID format.")
    if not access_policy.can_list(user, manuscript):
        # Drafts stay invisible, same as GET /manuscripts/{id}
        raise ManuscriptNotFoundError(manuscript_id)

    if manuscript.is_public:
        raise ValidationError("This manuscript is public; no access request is needed.",
                              field="manuscript_id")

    granted = await granted_manuscript_ids(db, user)
    if access_policy.can_view_full(user, manuscript, granted):
        raise ValidationError("You already have access to this manuscript.", field="manuscript_id")

    existing = (await db.execute(
        select(AccessRequest).where(
            AccessRequest.user_id == user.id,
            AccessRequest.manuscript_id == manuscript.id,
        )
    )).scalar_one_or_none()
    if existing:
        raise DuplicateAccessRequestError()

    access_request = AccessRequest(user_id=user.id, manuscript_id=manuscript.id)
    db.add(access_request)
    await db.commit()
    await db.refresh(access_request)

    logger.info(
        f"[Access] {user.email} requested access to {manuscript.id}",
        extra={"event_type": "access_request", "manuscript_id": str(manuscript.id)}
    )
    return access_request


async def list_my_access_requests(db: AsyncSession, user: User) -> list:
    result = await db.execute(
        select(AccessRequest, Manuscript)
        .join(Manuscript, Manuscript.id == AccessRequest.manuscript_id)
        .where(AccessRequest.user_id == user.id)
        .order_by(AccessRequest.created_at.desc())
    )
    return [access_request_to_dict(ar, user, m) for ar, m in result.all()]


async def list_access_requests(db: AsyncSession, status: Optional[AccessRequestStatus] = None,
                               page: int = 1, page_size: int = 20) -> dict:
    query = (
        select(AccessRequest, User, Manuscript)
        .join(User, User.id == AccessRequest.user_id)
        .join(Manuscript, Manuscript.id == AccessRequest.manuscript_id)
    )
    if status is not None:
        query = query.where(AccessRequest.status == status)
    query = query.order_by(AccessRequest.created_at.desc())
    return await paginate(db, query, page, page_size, transform=lambda row: access_request_to_dict(*row))


async def review_access_request(db: AsyncSession, request_id: str, decision: AccessRequestStatus,
                                admin: User, request: Optional[Request] = None) -> AccessRequest:
    if not is_valid_uuid(request_id):
        raise InvalidIdentifierError()
    access_request = (await db.execute(
        select(AccessRequest).where(AccessRequest.id == request_id)
    )).scalar_one_or_none()
    if not access_request:
        raise AccessRequestNotFoundError(request_id)
    if access_request.status != AccessRequestStatus.PENDING:
        raise InvalidStateTransitionError("access request", access_request.status.value, "review")

    access_request.status = decision
    access_request.reviewed_by = admin.id
    access_request.reviewed_at = utcnow()
    log_admin_action(
        db, admin, f"access_request_{decision.value}", "access_request", access_request.id,
        details={"user_id": str(access_request.user_id), "manuscript_id": str(access_request.manuscript_id)},
        request=request,
    )
    await db.commit()
    return access_request
