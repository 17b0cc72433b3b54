from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, ForeignKey, Text, JSON
import enum

from manuscript_portal.core.database import Base
from manuscript_portal.core.types import GUID, generate_uuid, utcnow


class UploadType(str, enum.Enum):
    """normal = public catalogue entry, detailed = full scans for researchers"""
    NORMAL = "normal"
    DETAILED = "detailed"


class ManuscriptStatus(str, enum.Enum):
    PUBLISHED = "published"
    PENDING = "pending"
    DRAFT = "draft"


class Manuscript(Base):
    """Manuscript model"""
    __tablename__ = "manuscripts"

    id = Column(GUID, primary_key=True, default=generate_uuid)

    title = Column(String(200), nullable=False, index=True)
    author = Column(String(100), nullable=True)
    category = Column(String(50), nullable=False, index=True)
    date = Column(String(100), nullable=True)  # free text, e.g. "Samvat 1650"
    language = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    significance = Column(Text, nullable=True)
    keywords = Column(JSON, nullable=False, default=list)

    # Files (public URLs under UPLOAD_URL_PREFIX)
    thumbnail = Column(Text, nullable=True)
    images = Column(JSON, nullable=False, default=list)

    upload_type = Column(SQLEnum(UploadType), default=UploadType.NORMAL, nullable=False, index=True)
    is_public = Column(Boolean, default=True, nullable=False)
    status = Column(SQLEnum(ManuscriptStatus), default=ManuscriptStatus.PUBLISHED, nullable=False, index=True)
    is_featured = Column(Boolean, default=False, nullable=False)

    submitted_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def page_count(self) -> int:
        return len(self.images or [])

    @property
    def is_published(self) -> bool:
        return self.status == ManuscriptStatus.PUBLISHED

    def __repr__(self):
        return f"<Manuscript {self.title}>"
