from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from manuscript_portal.core.database import get_db
from manuscript_portal.models import User
from manuscript_portal.modules.auth.dependencies import get_current_user
from manuscript_portal.schemas.requests import FAQItem, HelpRequestCreate
from manuscript_portal.services import request_service
from manuscript_portal.services.notification_service import notification_service

router = APIRouter()


@router.get("/faq", response_model=List[FAQItem])
async def get_faq():
    return request_service.FAQ


@router.post("/requests", status_code=status.HTTP_201_CREATED)
async def submit_help_request(
    data: HelpRequestCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    help_request = await request_service.submit_help_request(db, current_user, data)
    background_tasks.add_task(
        notification_service.notify_help_request, current_user.name, current_user.email, help_request.message
    )
    return {
        "message": "Help request submitted successfully",
        "request": request_service.help_request_to_dict(help_request),
    }
