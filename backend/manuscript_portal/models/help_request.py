from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, ForeignKey, Text
import enum

from manuscript_portal.core.database import Base
from manuscript_portal.core.types import GUID, generate_uuid, utcnow


class HelpRequestStatus(str, enum.Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class HelpRequest(Base):
    """Help request; user name/email are a snapshot taken at submission"""
    __tablename__ = "help_requests"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = Column(String(100), nullable=False)
    user_email = Column(String(255), nullable=False)
    manuscript_id = Column(GUID, ForeignKey("manuscripts.id", ondelete="SET NULL"), nullable=True)

    message = Column(Text, nullable=False)
    status = Column(SQLEnum(HelpRequestStatus), default=HelpRequestStatus.OPEN, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
