from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from manuscript_portal.core.database import get_db
from manuscript_portal.models import AccessRequestStatus, Manuscript, User
from manuscript_portal.modules.auth.dependencies import get_current_admin
from manuscript_portal.schemas.requests import AccessRequestResponse, AccessRequestReview, AccessRequestsResponse
from manuscript_portal.services import request_service

router = APIRouter()


@router.get("", response_model=AccessRequestsResponse)
async def list_access_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    request_status: Optional[AccessRequestStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Access requests with requester name/email and manuscript title"""
    return await request_service.list_access_requests(db, request_status, page, page_size)


@router.patch("/{request_id}", response_model=AccessRequestResponse)
async def review_access_request(
    request_id: str,
    review: AccessRequestReview,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    access_request = await request_service.review_access_request(
        db, request_id, AccessRequestStatus(review.status), current_admin, request
    )
    requester = await db.get(User, access_request.user_id)
    manuscript = await db.get(Manuscript, access_request.manuscript_id)
    return request_service.access_request_to_dict(access_request, requester, manuscript)
