# Re-export all models for convenient imports
from manuscript_portal.models.user import User, UserRole
from manuscript_portal.models.researcher_application import ResearcherApplication, ApplicationStatus
from manuscript_portal.models.manuscript import Manuscript, UploadType, ManuscriptStatus
from manuscript_portal.models.annotation import Annotation
from manuscript_portal.models.help_request import HelpRequest, HelpRequestStatus
from manuscript_portal.models.access_request import AccessRequest, AccessRequestStatus
from manuscript_portal.models.category import Category
from manuscript_portal.models.audit_log import AuditLog

__all__ = [
    # Users
    "User",
    "UserRole",
    "ResearcherApplication",
    "ApplicationStatus",
    # Manuscripts
    "Manuscript",
    "UploadType",
    "ManuscriptStatus",
    "Annotation",
    "Category",
    # Requests
    "HelpRequest",
    "HelpRequestStatus",
    "AccessRequest",
    "AccessRequestStatus",
    # Admin
    "AuditLog",
]
