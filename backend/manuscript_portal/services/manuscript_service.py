"""
Manuscript catalogue: lookups, listings and admin uploads.

Visibility decisions are delegated to ``access_policy``; this module only
loads rows, applies filters and shapes responses.
"""
from typing import AbstractSet, List, Optional, Set, Tuple

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from manuscript_portal.core.config import settings
from manuscript_portal.core.exceptions import (
    AuthorizationError,
    InvalidIdentifierError,
    ManuscriptNotFoundError,
    ValidationError,
)
from manuscript_portal.core.logging_config import logger
from manuscript_portal.core.types import is_valid_uuid
from manuscript_portal.models import (
    AccessRequest,
    AccessRequestStatus,
    Annotation,
    HelpRequest,
    Manuscript,
    ManuscriptStatus,
    UploadType,
    User,
    UserRole,
)
from manuscript_portal.schemas.manuscript import ManuscriptMetadata, ManuscriptUpdate
from manuscript_portal.services import access_policy
from manuscript_portal.utils.pagination import paginate


def manuscript_to_dict(manuscript: Manuscript) -> dict:
    return {
        "id": str(manuscript.id),
        "title": manuscript.title,
        "author": manuscript.author,
        "category": manuscript.category,
        "date": manuscript.date,
        "language": manuscript.language,
        "description": manuscript.description,
        "summary": manuscript.summary,
        "significance": manuscript.significance,
        "keywords": list(manuscript.keywords or []),
        "thumbnail": manuscript.thumbnail,
        "images": list(manuscript.images or []),
        "page_count": manuscript.page_count,
        "upload_type": manuscript.upload_type.value,
        "is_public": bool(manuscript.is_public),
        "status": manuscript.status.value,
        "is_featured": bool(manuscript.is_featured),
        "submitted_by": str(manuscript.submitted_by) if manuscript.submitted_by else None,
        "created_at": manuscript.created_at,
        "updated_at": manuscript.updated_at,
        "restricted": False,
    }


def manuscript_view(user: Optional[User], manuscript: Manuscript,
                    granted_ids: AbstractSet[str] = frozenset()) -> dict:
    """Full record when the caller may see it, the public projection otherwise"""
    if access_policy.can_view_full(user, manuscript, granted_ids):
        return manuscript_to_dict(manuscript)
    return access_policy.public_view(manuscript)


async def granted_manuscript_ids(db: AsyncSession, user: Optional[User]) -> Set[str]:
    """Ids of manuscripts the user holds an approved access request for"""
    if user is None:
        return set()
    result = await db.execute(
        select(AccessRequest.manuscript_id).where(
            AccessRequest.user_id == user.id,
            AccessRequest.status == AccessRequestStatus.APPROVED,
        )
    )
    return {str(mid) for mid in result.scalars().all()}


async def get_manuscript(db: AsyncSession, manuscript_id: str,
                         invalid_message: str = "Invalid ID format") -> Manuscript:
    if not is_valid_uuid(manuscript_id):
        raise InvalidIdentifierError(invalid_message)
    result = await db.execute(select(Manuscript).where(Manuscript.id == manuscript_id))
    manuscript = result.scalar_one_or_none()
    if not manuscript:
        raise ManuscriptNotFoundError(manuscript_id)
    return manuscript


def apply_filters(
    query,
    category: Optional[str] = None,
    language: Optional[str] = None,
    search: Optional[str] = None,
    featured: Optional[bool] = None,
    status: Optional[ManuscriptStatus] = None,
    upload_type: Optional[UploadType] = None,
):
    if category:
        query = query.where(Manuscript.category == category)
    if language:
        query = query.where(Manuscript.language == language)
    if search:
        term = f"%{search.strip()}%"
        query = query.where(or_(
            Manuscript.title.ilike(term),
            Manuscript.author.ilike(term),
            Manuscript.description.ilike(term),
        ))
    if featured is not None:
        query = query.where(Manuscript.is_featured.is_(featured))
    if status is not None:
        query = query.where(Manuscript.status == status)
    if upload_type is not None:
        query = query.where(Manuscript.upload_type == upload_type)
    return query


async def list_manuscripts(
    db: AsyncSession,
    condition,
    user: Optional[User] = None,
    granted_ids: AbstractSet[str] = frozenset(),
    page: int = 1,
    page_size: int = 20,
    **filters,
) -> dict:
    """Newest first, each item shaped by the caller's access"""
    query = apply_filters(select(Manuscript).where(condition), **filters)
    query = query.order_by(Manuscript.created_at.desc())
    return await paginate(
        db, query, page, page_size,
        transform=lambda m: manuscript_view(user, m, granted_ids),
    )


async def create_manuscript(
    db: AsyncSession,
    submitter: User,
    metadata: ManuscriptMetadata,
    upload_type: UploadType,
    thumbnail_url: Optional[str] = None,
    image_urls: Optional[List[str]] = None,
) -> Manuscript:
    manuscript = Manuscript(
        **metadata.model_dump(),
        thumbnail=thumbnail_url,
        images=list(image_urls or []),
        upload_type=upload_type,
        is_public=upload_type == UploadType.NORMAL,
        status=ManuscriptStatus.PUBLISHED,
        submitted_by=submitter.id,
    )
    db.add(manuscript)
    await db.commit()
    await db.refresh(manuscript)

    logger.info(
        f"[Manuscripts] {submitter.email} uploaded {upload_type.value} manuscript '{manuscript.title}'",
        extra={"event_type": "manuscript_upload", "manuscript_id": str(manuscript.id),
               "upload_type": upload_type.value, "pages": manuscript.page_count}
    )
    return manuscript


def check_page_limits(manuscript: Manuscript, new_pages: int) -> None:
    if new_pages > settings.MAX_FILES_PER_UPLOAD:
        raise ValidationError(
            f"Too many files. Maximum: {settings.MAX_FILES_PER_UPLOAD} files", field="files"
        )
    if manuscript.page_count + new_pages > settings.MAX_MANUSCRIPT_PAGES:
        raise ValidationError(
            f"A manuscript can have at most {settings.MAX_MANUSCRIPT_PAGES} pages", field="files"
        )


async def update_manuscript(
    db: AsyncSession,
    manuscript: Manuscript,
    user: User,
    changes: ManuscriptUpdate,
    new_image_urls: Optional[List[str]] = None,
    new_thumbnail_url: Optional[str] = None,
) -> Tuple[Manuscript, Optional[str]]:
    """
    Apply a partial update. Returns the manuscript and the URL of a
    replaced thumbnail (for the caller to delete from storage).
    """
    if not access_policy.can_edit(user, manuscript):
        raise AuthorizationError()

    data = changes.model_dump(exclude_none=True)
    if ("status" in data or "is_featured" in data) and user.role != UserRole.ADMIN:
        raise AuthorizationError("Only admins can change status or featured flag")

    if "status" in data:
        data["status"] = ManuscriptStatus(data["status"])

    for field, value in data.items():
        setattr(manuscript, field, value)

    if new_image_urls:
        # Reassign so the JSON column is flagged dirty
        manuscript.images = list(manuscript.images or []) + list(new_image_urls)

    replaced_thumbnail = None
    if new_thumbnail_url:
        replaced_thumbnail = manuscript.thumbnail
        manuscript.thumbnail = new_thumbnail_url

    await db.commit()
    await db.refresh(manuscript)
    return manuscript, replaced_thumbnail


async def delete_manuscript(db: AsyncSession, manuscript: Manuscript, user: User) -> List[str]:
    """Remove the row and everything hanging off it. Returns file URLs to delete."""
    if not access_policy.can_delete(user, manuscript):
        raise AuthorizationError()

    files = [url for url in [manuscript.thumbnail, *(manuscript.images or [])] if url]
    manuscript_id = manuscript.id

    await db.execute(delete(Annotation).where(Annotation.manuscript_id == manuscript_id))
    await db.execute(delete(AccessRequest).where(AccessRequest.manuscript_id == manuscript_id))
    await db.execute(
        update(HelpRequest).where(HelpRequest.manuscript_id == manuscript_id).values(manuscript_id=None)
    )
    await db.delete(manuscript)
    await db.commit()

    logger.info(
        f"[Manuscripts] {user.email} deleted manuscript {manuscript_id}",
        extra={"event_type": "manuscript_delete", "manuscript_id": str(manuscript_id)}
    )
    return files
