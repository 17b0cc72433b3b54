from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from manuscript_portal.core.database import get_db
from manuscript_portal.core.exceptions import CategoryNotFoundError, DuplicateCategoryError, InvalidIdentifierError
from manuscript_portal.core.types import is_valid_uuid
from manuscript_portal.models import Category, User
from manuscript_portal.modules.auth.dependencies import get_current_admin
from manuscript_portal.schemas.admin import CategoryCreate, CategoryResponse
from manuscript_portal.services.audit import log_admin_action

router = APIRouter()


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    existing = await db.execute(select(Category).where(func.lower(Category.name) == data.name.lower()))
    if existing.scalar_one_or_none():
        raise DuplicateCategoryError(data.name)

    category = Category(name=data.name)
    db.add(category)
    await db.flush()
    log_admin_action(db, current_admin, "category_created", "category", category.id,
                     details={"name": category.name}, request=request)
    await db.commit()
    await db.refresh(category)
    return category


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Existing manuscripts keep their category text"""
    if not is_valid_uuid(category_id):
        raise InvalidIdentifierError()
    category = (await db.execute(select(Category).where(Category.id == category_id))).scalar_one_or_none()
    if not category:
        raise CategoryNotFoundError(category_id)

    log_admin_action(db, current_admin, "category_deleted", "category", category.id,
                     details={"name": category.name}, request=request)
    await db.delete(category)
    await db.commit()
    return {"message": "Category deleted successfully"}
