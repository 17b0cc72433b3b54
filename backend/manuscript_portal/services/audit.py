from typing import Optional
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from manuscript_portal.core.logging_config import logger
from manuscript_portal.models import AuditLog, User


def log_admin_action(
    db: AsyncSession,
    admin: User,
    action: str,
    target_type: str,
    target_id: Optional[str] = None,
    details: Optional[dict] = None,
    request: Optional[Request] = None
) -> AuditLog:
    """Queue an audit row on the session; the caller's commit persists it"""
    entry = AuditLog(
        admin_id=admin.id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details,
        ip_address=request.client.host if request is not None and request.client else None,
        user_agent=request.headers.get("user-agent") if request is not None else None
    )
    db.add(entry)
    logger.log_admin_action(str(admin.id), action, target_type, str(target_id) if target_id else None)
    return entry
