"""
Admin User Management endpoints.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from manuscript_portal.core.database import get_db
from manuscript_portal.core.exceptions import InvalidIdentifierError, UserNotFoundError, ValidationError
from manuscript_portal.core.types import is_valid_uuid
from manuscript_portal.models import (
    AccessRequest,
    Annotation,
    AuditLog,
    HelpRequest,
    Manuscript,
    ResearcherApplication,
    User,
    UserRole,
)
from manuscript_portal.modules.auth.dependencies import get_current_admin
from manuscript_portal.schemas.admin import AdminUserCreate, AdminUsersResponse, AdminUserUpdate
from manuscript_portal.schemas.auth import UserResponse
from manuscript_portal.services import researcher_service
from manuscript_portal.services.audit import log_admin_action
from manuscript_portal.services.auth_service import create_user
from manuscript_portal.utils.pagination import paginate

router = APIRouter()

SORT_COLUMNS = {
    "created_at": User.created_at,
    "email": User.email,
    "name": User.name,
    "role": User.role,
    "last_login": User.last_login,
}


async def _get_user(db: AsyncSession, user_id: str) -> User:
    if not is_valid_uuid(user_id):
        raise InvalidIdentifierError("Invalid user ID format", field="user_id")
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user:
        raise UserNotFoundError(user_id)
    return user


@router.get("", response_model=AdminUsersResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    is_approved: Optional[bool] = None,
    is_active: Optional[bool] = None,
    sort_by: str = Query("created_at", pattern="^(created_at|email|name|role|last_login)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """List users with filtering, sorting, and pagination"""
    query = select(User)

    if search:
        term = f"%{search.strip()}%"
        query = query.where(or_(User.email.ilike(term), User.name.ilike(term)))
    if role is not None:
        query = query.where(User.role == role)
    if is_approved is not None:
        query = query.where(User.is_approved.is_(is_approved))
    if is_active is not None:
        query = query.where(User.is_active.is_(is_active))

    column = SORT_COLUMNS[sort_by]
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc())

    return await paginate(db, query, page, page_size, transform=UserResponse.model_validate)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user_account(
    data: AdminUserCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Create an approved account with any role"""
    user = await create_user(db, data.name, data.email, data.password, role=UserRole(data.role), is_approved=True)
    log_admin_action(
        db, current_admin, "user_created", "user", user.id,
        details={"email": user.email, "role": data.role}, request=request
    )
    await db.commit()
    await db.refresh(user)
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    return await _get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: AdminUserUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    user = await _get_user(db, user_id)
    changes = data.model_dump(exclude_none=True)

    if str(user.id) == str(current_admin.id):
        if changes.get("role", UserRole.ADMIN.value) != UserRole.ADMIN.value:
            raise ValidationError("You cannot change your own admin role", field="role")
        if changes.get("is_active") is False:
            raise ValidationError("You cannot deactivate your own account", field="is_active")

    old_values = {}
    for field in changes:
        current = getattr(user, field)
        old_values[field] = getattr(current, "value", current)

    if "role" in changes:
        await researcher_service.sync_role_change(db, user, UserRole(changes["role"]), current_admin)

    for field, value in changes.items():
        setattr(user, field, UserRole(value) if field == "role" else value)

    log_admin_action(
        db, current_admin, "user_updated", "user", user.id,
        details={"old": old_values, "new": changes}, request=request
    )
    await db.commit()
    await db.refresh(user)
    return user


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Delete a user and everything they own except manuscripts (which are kept unowned)"""
    user = await _get_user(db, user_id)
    if str(user.id) == str(current_admin.id):
        raise ValidationError("You cannot delete your own account", field="user_id")

    await db.execute(delete(ResearcherApplication).where(ResearcherApplication.user_id == user.id))
    await db.execute(delete(Annotation).where(Annotation.user_id == user.id))
    await db.execute(delete(HelpRequest).where(HelpRequest.user_id == user.id))
    await db.execute(delete(AccessRequest).where(AccessRequest.user_id == user.id))
    await db.execute(update(Manuscript).where(Manuscript.submitted_by == user.id).values(submitted_by=None))
    await db.execute(update(AuditLog).where(AuditLog.admin_id == user.id).values(admin_id=None))

    log_admin_action(
        db, current_admin, "user_deleted", "user", user.id,
        details={"email": user.email, "role": user.role.value}, request=request
    )
    await db.delete(user)
    await db.commit()

    return {"message": "User deleted successfully"}
