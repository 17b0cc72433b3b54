from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy import and_
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from manuscript_portal.core.config import settings
from manuscript_portal.core.database import get_db
from manuscript_portal.core.exceptions import AuthorizationError, ManuscriptNotFoundError, ValidationError
from manuscript_portal.core.rate_limiter import limiter, UPLOAD_LIMIT
from manuscript_portal.models import Manuscript, ManuscriptStatus, UploadType, User
from manuscript_portal.modules.auth.dependencies import (
    get_current_admin,
    get_current_researcher,
    get_current_user,
    get_optional_user,
)
from manuscript_portal.schemas.manuscript import (
    ManuscriptListResponse,
    ManuscriptMetadata,
    ManuscriptResponse,
    ManuscriptUpdate,
    ManuscriptView,
    split_keywords,
)
from manuscript_portal.services import access_policy, manuscript_service
from manuscript_portal.services.upload_storage import PAGES, THUMBNAILS, UploadStorage, get_upload_storage
from manuscript_portal.utils.forms import parse_form

router = APIRouter()

PUBLISHED_NORMAL = and_(
    Manuscript.status == ManuscriptStatus.PUBLISHED,
    Manuscript.upload_type == UploadType.NORMAL,
)


@router.get("/public", response_model=ManuscriptListResponse)
async def list_public_manuscripts(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    language: Optional[str] = None,
    search: Optional[str] = None,
    featured: Optional[bool] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Published public manuscripts, for any signed-in user"""
    return await manuscript_service.list_manuscripts(
        db, PUBLISHED_NORMAL, current_user,
        page=page, page_size=page_size,
        category=category, language=language, search=search, featured=featured,
    )


@router.get("/featured", response_model=ManuscriptListResponse)
async def list_featured_manuscripts(
    page: int = Query(1, ge=1),
    page_size: int = Query(6, ge=1, le=100),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Home page carousel. No login required; only public manuscripts are featured."""
    return await manuscript_service.list_manuscripts(
        db, access_policy.visible_filter(None), current_user,
        page=page, page_size=page_size, featured=True,
    )


@router.get("/researcher", response_model=ManuscriptListResponse)
async def list_researcher_manuscripts(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    language: Optional[str] = None,
    search: Optional[str] = None,
    upload_type: Optional[UploadType] = None,
    current_user: User = Depends(get_current_researcher),
    db: AsyncSession = Depends(get_db)
):
    """All published manuscripts, normal and detailed"""
    return await manuscript_service.list_manuscripts(
        db, Manuscript.status == ManuscriptStatus.PUBLISHED, current_user,
        page=page, page_size=page_size,
        category=category, language=language, search=search, upload_type=upload_type,
    )


@router.get("/admin", response_model=ManuscriptListResponse)
async def list_all_manuscripts(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    search: Optional[str] = None,
    manuscript_status: Optional[ManuscriptStatus] = Query(None, alias="status"),
    upload_type: Optional[UploadType] = None,
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await manuscript_service.list_manuscripts(
        db, access_policy.visible_filter(current_admin), current_admin,
        page=page, page_size=page_size,
        category=category, search=search, status=manuscript_status, upload_type=upload_type,
    )


def _metadata_from_form(**fields) -> ManuscriptMetadata:
    keywords = split_keywords(fields.pop("keywords", None))
    return parse_form(ManuscriptMetadata, keywords=keywords, **fields)


@router.post("/upload/public", response_model=ManuscriptResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(UPLOAD_LIMIT)
async def upload_public_manuscript(
    request: Request,
    title: str = Form(...),
    category: str = Form(...),
    author: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    language: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    summary: Optional[str] = Form(None),
    significance: Optional[str] = Form(None),
    keywords: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: UploadStorage = Depends(get_upload_storage)
):
    """Catalogue entry visible to every signed-in user"""
    metadata = _metadata_from_form(
        title=title, category=category, author=author, date=date, language=language,
        description=description, summary=summary, significance=significance, keywords=keywords,
    )

    thumbnail_url = None
    if thumbnail is not None and thumbnail.filename:
        thumbnail_url = await storage.save(thumbnail, THUMBNAILS)

    try:
        manuscript = await manuscript_service.create_manuscript(
            db, current_admin, metadata, UploadType.NORMAL, thumbnail_url=thumbnail_url
        )
    except Exception:
        await storage.delete(thumbnail_url)
        raise
    return manuscript_service.manuscript_to_dict(manuscript)


@router.post("/upload/detailed", response_model=ManuscriptResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(UPLOAD_LIMIT)
async def upload_detailed_manuscript(
    request: Request,
    title: str = Form(...),
    category: str = Form(...),
    author: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    language: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    summary: Optional[str] = Form(None),
    significance: Optional[str] = Form(None),
    keywords: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    images: List[UploadFile] = File(default=[]),
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: UploadStorage = Depends(get_upload_storage)
):
    """Restricted manuscript with page scans, for approved researchers"""
    metadata = _metadata_from_form(
        title=title, category=category, author=author, date=date, language=language,
        description=description, summary=summary, significance=significance, keywords=keywords,
    )

    pages = [f for f in images if f is not None and f.filename]
    if not pages:
        raise ValidationError("At least one page image is required", field="images")

    image_urls = await storage.save_many(pages, PAGES, max_files=settings.MAX_MANUSCRIPT_PAGES)
    thumbnail_url = None
    try:
        if thumbnail is not None and thumbnail.filename:
            thumbnail_url = await storage.save(thumbnail, THUMBNAILS)
        manuscript = await manuscript_service.create_manuscript(
            db, current_admin, metadata, UploadType.DETAILED,
            thumbnail_url=thumbnail_url, image_urls=image_urls,
        )
    except Exception:
        await storage.delete_many([thumbnail_url, *image_urls])
        raise
    return manuscript_service.manuscript_to_dict(manuscript)


@router.get("/{manuscript_id}", response_model=ManuscriptView)
async def get_manuscript(
    manuscript_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Full record when the caller may view it, otherwise the restricted summary"""
    manuscript = await manuscript_service.get_manuscript(db, manuscript_id)
    if not access_policy.can_list(current_user, manuscript):
        # Drafts are invisible to everyone but their submitter and admins
        raise ManuscriptNotFoundError(manuscript_id)

    granted = await manuscript_service.granted_manuscript_ids(db, current_user)
    return manuscript_service.manuscript_view(current_user, manuscript, granted)


@router.put("/{manuscript_id}", response_model=ManuscriptResponse)
async def update_manuscript(
    manuscript_id: str,
    title: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    language: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    summary: Optional[str] = Form(None),
    significance: Optional[str] = Form(None),
    keywords: Optional[str] = Form(None),
    manuscript_status: Optional[str] = Form(None, alias="status"),
    is_featured: Optional[bool] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    images: List[UploadFile] = File(default=[]),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: UploadStorage = Depends(get_upload_storage)
):
    """Partial update. New page images are appended; a new thumbnail replaces the old one."""
    manuscript = await manuscript_service.get_manuscript(db, manuscript_id)
    if not access_policy.can_list(current_user, manuscript):
        raise ManuscriptNotFoundError(manuscript_id)
    if not access_policy.can_edit(current_user, manuscript):
        raise AuthorizationError()

    changes = parse_form(
        ManuscriptUpdate,
        title=title, category=category, author=author, date=date, language=language,
        description=description, summary=summary, significance=significance,
        keywords=split_keywords(keywords) if keywords is not None else None,
        status=manuscript_status, is_featured=is_featured,
    )

    pages = [f for f in images if f is not None and f.filename]
    manuscript_service.check_page_limits(manuscript, len(pages))

    new_urls = await storage.save_many(pages, PAGES) if pages else []
    new_thumbnail = None
    try:
        if thumbnail is not None and thumbnail.filename:
            new_thumbnail = await storage.save(thumbnail, THUMBNAILS)
        manuscript, replaced = await manuscript_service.update_manuscript(
            db, manuscript, current_user, changes,
            new_image_urls=new_urls, new_thumbnail_url=new_thumbnail,
        )
    except Exception:
        await storage.delete_many([new_thumbnail, *new_urls])
        raise

    if replaced:
        await storage.delete(replaced)
    return manuscript_service.manuscript_to_dict(manuscript)


@router.delete("/{manuscript_id}")
async def delete_manuscript(
    manuscript_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: UploadStorage = Depends(get_upload_storage)
):
    manuscript = await manuscript_service.get_manuscript(db, manuscript_id)
    if not access_policy.can_list(current_user, manuscript):
        raise ManuscriptNotFoundError(manuscript_id)
    files = await manuscript_service.delete_manuscript(db, manuscript, current_user)
    await storage.delete_many(files)
    return {"message": "Manuscript deleted successfully"}
