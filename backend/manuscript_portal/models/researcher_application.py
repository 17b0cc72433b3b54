from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, ForeignKey, Text
import enum

from manuscript_portal.core.database import Base
from manuscript_portal.core.types import GUID, generate_uuid, utcnow


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ResearcherApplication(Base):
    """A user's request to become a researcher (one per user)"""
    __tablename__ = "researcher_applications"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)

    phone_number = Column(String(20), nullable=True)
    research_description = Column(Text, nullable=True)
    id_proof_url = Column(Text, nullable=True)

    status = Column(SQLEnum(ApplicationStatus), default=ApplicationStatus.PENDING, nullable=False, index=True)
    # Created by /signup/researcher (account locked until reviewed) vs upgrade of an existing account
    via_signup = Column(Boolean, default=False, nullable=False)

    reviewed_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_note = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ResearcherApplication {self.user_id} {self.status.value if self.status else '-'}>"
