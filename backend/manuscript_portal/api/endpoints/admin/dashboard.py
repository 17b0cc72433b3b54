"""
Admin dashboard statistics.
"""
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from manuscript_portal.core.database import get_db
from manuscript_portal.models import (
    AccessRequest,
    AccessRequestStatus,
    Annotation,
    ApplicationStatus,
    HelpRequest,
    HelpRequestStatus,
    Manuscript,
    ManuscriptStatus,
    ResearcherApplication,
    UploadType,
    User,
    UserRole,
)
from manuscript_portal.modules.auth.dependencies import get_current_admin
from manuscript_portal.schemas.admin import DashboardStats

router = APIRouter()


async def _count(db: AsyncSession, model, *conditions) -> int:
    query = select(func.count()).select_from(model)
    if conditions:
        query = query.where(*conditions)
    return (await db.execute(query)).scalar() or 0


async def _count_by(db: AsyncSession, column, enum_cls) -> dict:
    result = await db.execute(select(column, func.count()).group_by(column))
    counts = {member.value: 0 for member in enum_cls}
    for value, count in result.all():
        counts[getattr(value, "value", value)] = count
    return counts


@router.get("", response_model=DashboardStats)
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    users_by_role = await _count_by(db, User.role, UserRole)
    manuscripts_by_type = await _count_by(db, Manuscript.upload_type, UploadType)
    manuscripts_by_status = await _count_by(db, Manuscript.status, ManuscriptStatus)

    return DashboardStats(
        total_users=sum(users_by_role.values()),
        users_by_role=users_by_role,
        pending_applications=await _count(
            db, ResearcherApplication, ResearcherApplication.status == ApplicationStatus.PENDING
        ),
        total_manuscripts=sum(manuscripts_by_type.values()),
        manuscripts_by_type=manuscripts_by_type,
        manuscripts_by_status=manuscripts_by_status,
        total_annotations=await _count(db, Annotation),
        open_help_requests=await _count(db, HelpRequest, HelpRequest.status == HelpRequestStatus.OPEN),
        pending_access_requests=await _count(
            db, AccessRequest, AccessRequest.status == AccessRequestStatus.PENDING
        ),
    )
