from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from manuscript_portal.core.database import get_db
from manuscript_portal.models import User
from manuscript_portal.modules.auth.dependencies import get_current_user
from manuscript_portal.schemas.annotation import AnnotationCreate, AnnotationResponse, AnnotationUpdate
from manuscript_portal.services import annotation_service, manuscript_service

# Mounted under /manuscripts
manuscript_router = APIRouter()
router = APIRouter()


@manuscript_router.get("/{manuscript_id}/annotations", response_model=List[AnnotationResponse])
async def list_annotations(
    manuscript_id: str,
    page: Optional[int] = Query(None, ge=1, description="Only annotations on this page"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    manuscript = await manuscript_service.get_manuscript(db, manuscript_id)
    annotations = await annotation_service.list_annotations(db, manuscript, current_user, page)
    return [annotation_service.annotation_to_dict(a) for a in annotations]


@manuscript_router.post(
    "/{manuscript_id}/annotations",
    response_model=AnnotationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_annotation(
    manuscript_id: str,
    data: AnnotationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    manuscript = await manuscript_service.get_manuscript(db, manuscript_id)
    annotation = await annotation_service.create_annotation(db, manuscript, current_user, data)
    return annotation_service.annotation_to_dict(annotation)


@router.put("/{annotation_id}", response_model=AnnotationResponse)
async def update_annotation(
    annotation_id: str,
    data: AnnotationUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    annotation = await annotation_service.get_annotation(db, annotation_id)
    annotation = await annotation_service.update_annotation(db, annotation, current_user, data)
    return annotation_service.annotation_to_dict(annotation)


@router.delete("/{annotation_id}")
async def delete_annotation(
    annotation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    annotation = await annotation_service.get_annotation(db, annotation_id)
    await annotation_service.delete_annotation(db, annotation, current_user)
    return {"message": "Annotation deleted successfully"}
