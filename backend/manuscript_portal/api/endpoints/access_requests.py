from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from manuscript_portal.core.database import get_db
from manuscript_portal.models import Manuscript, User
from manuscript_portal.modules.auth.dependencies import get_current_user
from manuscript_portal.schemas.requests import AccessRequestCreate, AccessRequestResponse
from manuscript_portal.services import request_service

router = APIRouter()


@router.post("", response_model=AccessRequestResponse, status_code=status.HTTP_201_CREATED)
async def request_access(
    data: AccessRequestCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Ask an admin for access to one detailed manuscript"""
    access_request = await request_service.request_access(db, current_user, data.manuscript_id)
    manuscript = await db.get(Manuscript, access_request.manuscript_id)
    return request_service.access_request_to_dict(access_request, current_user, manuscript)


@router.get("/mine", response_model=List[AccessRequestResponse])
async def my_access_requests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await request_service.list_my_access_requests(db, current_user)
