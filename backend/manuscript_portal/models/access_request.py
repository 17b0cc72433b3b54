from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, UniqueConstraint
import enum

from manuscript_portal.core.database import Base
from manuscript_portal.core.types import GUID, generate_uuid, utcnow


class AccessRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AccessRequest(Base):
    """Per-manuscript request for access to a detailed manuscript"""
    __tablename__ = "access_requests"
    __table_args__ = (
        UniqueConstraint("user_id", "manuscript_id", name="uq_access_request_user_manuscript"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    manuscript_id = Column(GUID, ForeignKey("manuscripts.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(SQLEnum(AccessRequestStatus), default=AccessRequestStatus.PENDING, nullable=False, index=True)
    reviewed_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
