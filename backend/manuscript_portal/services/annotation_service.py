from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from manuscript_portal.core.exceptions import (
    AnnotationNotFoundError,
    AuthorizationError,
    InvalidIdentifierError,
    ValidationError,
)
from manuscript_portal.core.types import is_valid_uuid
from manuscript_portal.models import Annotation, Manuscript, User, UserRole
from manuscript_portal.schemas.annotation import AnnotationCreate, AnnotationUpdate
from manuscript_portal.services import access_policy
from manuscript_portal.services.manuscript_service import granted_manuscript_ids


def annotation_to_dict(annotation: Annotation) -> dict:
    return {
        "id": str(annotation.id),
        "manuscript_id": str(annotation.manuscript_id),
        "user_id": str(annotation.user_id),
        "user_name": annotation.user_name,
        "text": annotation.text,
        "page_number": annotation.page_number,
        "position": annotation.position,
        "created_at": annotation.created_at,
        "updated_at": annotation.updated_at,
    }


async def list_annotations(db: AsyncSession, manuscript: Manuscript, user: User,
                           page_number: Optional[int] = None) -> List[Annotation]:
    granted = await granted_manuscript_ids(db, user)
    if not access_policy.can_view_full(user, manuscript, granted):
        raise AuthorizationError()

    query = select(Annotation).where(Annotation.manuscript_id == manuscript.id)
    if page_number is not None:
        query = query.where(Annotation.page_number == page_number)
    query = query.order_by(Annotation.page_number.asc(), Annotation.created_at.asc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_annotation(db: AsyncSession, manuscript: Manuscript, user: User,
                            data: AnnotationCreate) -> Annotation:
    granted = await granted_manuscript_ids(db, user)
    if not access_policy.can_annotate(user, manuscript, granted):
        raise AuthorizationError()

    if manuscript.page_count and data.page_number > manuscript.page_count:
        raise ValidationError(
            f"Page {data.page_number} does not exist (manuscript has {manuscript.page_count} pages)",
            field="page_number",
        )

    annotation = Annotation(
        manuscript_id=manuscript.id,
        user_id=user.id,
        user_name=user.name,
        text=data.text.strip(),
        page_number=data.page_number,
        **data.position.model_dump(),
    )
    db.add(annotation)
    await db.commit()
    await db.refresh(annotation)
    return annotation


async def get_annotation(db: AsyncSession, annotation_id: str) -> Annotation:
    if not is_valid_uuid(annotation_id):
        raise InvalidIdentifierError()
    result = await db.execute(select(Annotation).where(Annotation.id == annotation_id))
    annotation = result.scalar_one_or_none()
    if not annotation:
        raise AnnotationNotFoundError(annotation_id)
    return annotation


def _check_author(annotation: Annotation, user: User) -> None:
    if user.role != UserRole.ADMIN and str(annotation.user_id) != str(user.id):
        raise AuthorizationError()


async def update_annotation(db: AsyncSession, annotation: Annotation, user: User,
                            data: AnnotationUpdate) -> Annotation:
    _check_author(annotation, user)

    if data.text is not None:
        annotation.text = data.text.strip()
    if data.position is not None:
        for field, value in data.position.model_dump().items():
            setattr(annotation, field, value)

    await db.commit()
    await db.refresh(annotation)
    return annotation


async def delete_annotation(db: AsyncSession, annotation: Annotation, user: User) -> None:
    _check_author(annotation, user)
    await db.delete(annotation)
    await db.commit()
