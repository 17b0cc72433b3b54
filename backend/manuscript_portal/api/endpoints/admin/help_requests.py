from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from manuscript_portal.core.database import get_db
from manuscript_portal.models import HelpRequestStatus, User
from manuscript_portal.modules.auth.dependencies import get_current_admin
from manuscript_portal.schemas.requests import HelpRequestResponse, HelpRequestsResponse
from manuscript_portal.services import request_service

router = APIRouter()


@router.get("", response_model=HelpRequestsResponse)
async def list_help_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    request_status: Optional[HelpRequestStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    return await request_service.list_help_requests(db, request_status, page, page_size)


@router.patch("/{request_id}/resolve", response_model=HelpRequestResponse)
async def resolve_help_request(
    request_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    help_request = await request_service.resolve_help_request(db, request_id, current_admin, request)
    return request_service.help_request_to_dict(help_request)
