"""
Visibility rules for manuscripts.

Every function here is pure: callers load the user, the manuscript and the
set of manuscript ids the user holds an approved access request for, then ask.
List endpoints use ``visible_filter`` to push the same rules into SQL.
"""
from typing import AbstractSet, Optional

from sqlalchemy import and_, false, or_, true

from manuscript_portal.models.manuscript import Manuscript, ManuscriptStatus, UploadType
from manuscript_portal.models.user import User, UserRole


def _is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == UserRole.ADMIN


def _is_submitter(user: Optional[User], manuscript: Manuscript) -> bool:
    return (
        user is not None
        and manuscript.submitted_by is not None
        and str(manuscript.submitted_by) == str(user.id)
    )


def _is_approved_researcher(user: Optional[User]) -> bool:
    return user is not None and user.role == UserRole.RESEARCHER and bool(user.is_approved)


def can_view_full(
    user: Optional[User],
    manuscript: Manuscript,
    granted_ids: AbstractSet[str] = frozenset(),
) -> bool:
    if user is None:
        return False
    if _is_admin(user) or _is_submitter(user, manuscript):
        return True
    if manuscript.status != ManuscriptStatus.PUBLISHED:
        return False
    if manuscript.upload_type == UploadType.NORMAL or manuscript.is_public:
        return True
    return _is_approved_researcher(user) or str(manuscript.id) in granted_ids


def can_list(user: Optional[User], manuscript: Manuscript) -> bool:
    """Unpublished manuscripts only show up for admins and their submitter"""
    if manuscript.status == ManuscriptStatus.PUBLISHED:
        return True
    return _is_admin(user) or _is_submitter(user, manuscript)


def can_edit(user: Optional[User], manuscript: Manuscript) -> bool:
    return _is_admin(user) or _is_submitter(user, manuscript)


can_delete = can_edit


def can_annotate(
    user: Optional[User],
    manuscript: Manuscript,
    granted_ids: AbstractSet[str] = frozenset(),
) -> bool:
    if _is_admin(user):
        return True
    return _is_approved_researcher(user) and can_view_full(user, manuscript, granted_ids)


def public_view(manuscript: Manuscript) -> dict:
    """Restricted projection returned when the caller may not see the scans"""
    return {
        "id": str(manuscript.id),
        "title": manuscript.title,
        "author": manuscript.author,
        "category": manuscript.category,
        "language": manuscript.language,
        "description": manuscript.description,
        "summary": manuscript.summary,
        "thumbnail": manuscript.thumbnail,
        "upload_type": manuscript.upload_type.value,
        "is_public": bool(manuscript.is_public),
        "is_featured": bool(manuscript.is_featured),
        "created_at": manuscript.created_at,
        "restricted": True,
    }


def visible_filter(user: Optional[User], granted_ids: AbstractSet[str] = frozenset()):
    """SQL condition selecting the manuscripts ``user`` may view in full"""
    if _is_admin(user):
        return true()

    published = Manuscript.status == ManuscriptStatus.PUBLISHED
    if user is None:
        return and_(published, Manuscript.upload_type == UploadType.NORMAL, Manuscript.is_public.is_(True))

    if _is_approved_researcher(user):
        by_type = true()
    else:
        by_type = or_(
            Manuscript.upload_type == UploadType.NORMAL,
            Manuscript.id.in_(list(granted_ids)) if granted_ids else false(),
        )

    return or_(Manuscript.submitted_by == user.id, and_(published, by_type))
