from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from manuscript_portal.core.database import get_db
from manuscript_portal.models import Category
from manuscript_portal.schemas.admin import CategoryResponse

router = APIRouter()


@router.get("", response_model=List[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    """Category names for upload forms and browse filters"""
    result = await db.execute(select(Category).order_by(Category.name.asc()))
    return result.scalars().all()
