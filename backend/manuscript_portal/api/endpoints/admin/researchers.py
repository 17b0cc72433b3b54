"""
Researcher application review.
"""
from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from manuscript_portal.core.database import get_db
from manuscript_portal.models import ApplicationStatus, User
from manuscript_portal.modules.auth.dependencies import get_current_admin
from manuscript_portal.schemas.admin import (
    ApplicationReview,
    ApplicationsResponse,
    ResearcherApprovalUpdate,
    ResearcherDecisionResponse,
)
from manuscript_portal.schemas.auth import UserResponse
from manuscript_portal.services import researcher_service
from manuscript_portal.services.notification_service import notification_service

router = APIRouter()


def _decision_response(message: str, user: User, application) -> dict:
    return {
        "message": message,
        "user": UserResponse.model_validate(user),
        "application": researcher_service.application_to_dict(application, user) if application else None,
    }


@router.get("/requests", response_model=ApplicationsResponse)
async def list_researcher_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    application_status: Optional[ApplicationStatus] = Query(ApplicationStatus.PENDING, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Applications awaiting review (or any status via ?status=)"""
    return await researcher_service.list_applications(db, application_status, page, page_size)


@router.put("/approve/{user_id}", response_model=ResearcherDecisionResponse)
async def set_researcher_approval(
    user_id: str,
    body: ResearcherApprovalUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Approve (isApproved=true) or reject (false) a user's researcher status"""
    user, application, action = await researcher_service.set_researcher_approval(
        db, user_id, body.is_approved, current_admin, body.note, request
    )
    if action in ("researcher_approved", "researcher_rejected"):
        background_tasks.add_task(
            notification_service.notify_application_decision, user.email, user.name, body.is_approved, body.note
        )
        message = f"Researcher {'approved' if body.is_approved else 'rejected'}"
    else:
        change = "reinstated" if body.is_approved else "suspended"
        background_tasks.add_task(
            notification_service.notify_researcher_access_change, user.email, user.name, change, body.note
        )
        message = f"Researcher access {change}"
    return _decision_response(message, user, application)


@router.post("/applications/{application_id}/approve", response_model=ResearcherDecisionResponse)
async def approve_application(
    application_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    review: Optional[ApplicationReview] = Body(None),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    note = review.note if review else None
    application, user = await researcher_service.approve_application(
        db, application_id, current_admin, note, request
    )
    background_tasks.add_task(notification_service.notify_application_decision, user.email, user.name, True, note)
    return _decision_response("Researcher approved", user, application)


@router.post("/applications/{application_id}/reject", response_model=ResearcherDecisionResponse)
async def reject_application(
    application_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    review: Optional[ApplicationReview] = Body(None),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    note = review.note if review else None
    application, user = await researcher_service.reject_application(
        db, application_id, current_admin, note, request
    )
    background_tasks.add_task(notification_service.notify_application_decision, user.email, user.name, False, note)
    return _decision_response("Researcher rejected", user, application)


@router.post("/{user_id}/revoke", response_model=ResearcherDecisionResponse)
async def revoke_researcher(
    user_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    review: Optional[ApplicationReview] = Body(None),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    note = review.note if review else None
    user, application = await researcher_service.revoke_researcher(db, user_id, current_admin, note, request)
    background_tasks.add_task(
        notification_service.notify_researcher_access_change, user.email, user.name, "revoked", note
    )
    return _decision_response("Researcher access revoked", user, application)
