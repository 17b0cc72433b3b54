"""
Admin Audit Logs endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from manuscript_portal.core.database import get_db
from manuscript_portal.models import AuditLog, User
from manuscript_portal.modules.auth.dependencies import get_current_admin
from manuscript_portal.schemas.admin import AuditLogsResponse
from manuscript_portal.utils.pagination import paginate

router = APIRouter()


def _log_to_dict(row) -> dict:
    log, admin = row
    return {
        "id": str(log.id),
        "admin_id": str(log.admin_id) if log.admin_id else None,
        "admin_email": admin.email if admin else None,
        "admin_name": admin.name if admin else None,
        "action": log.action,
        "target_type": log.target_type,
        "target_id": str(log.target_id) if log.target_id else None,
        "details": log.details,
        "ip_address": log.ip_address,
        "created_at": log.created_at,
    }


@router.get("", response_model=AuditLogsResponse)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    action: Optional[str] = None,
    target_type: Optional[str] = None,
    admin_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Newest first"""
    query = select(AuditLog, User).outerjoin(User, User.id == AuditLog.admin_id)

    if action:
        query = query.where(AuditLog.action == action)
    if target_type:
        query = query.where(AuditLog.target_type == target_type)
    if admin_id:
        query = query.where(AuditLog.admin_id == admin_id)

    query = query.order_by(AuditLog.created_at.desc())
    return await paginate(db, query, page, page_size, transform=_log_to_dict)
