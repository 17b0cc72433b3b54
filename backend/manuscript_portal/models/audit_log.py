from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON

from manuscript_portal.core.database import Base
from manuscript_portal.core.types import GUID, generate_uuid, utcnow


class AuditLog(Base):
    """Audit log for tracking admin actions"""
    __tablename__ = "audit_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    admin_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Action details
    action = Column(String(100), nullable=False)  # e.g. 'researcher_approved', 'manuscript_deleted'
    target_type = Column(String(50), nullable=False)  # e.g. 'user', 'manuscript', 'application'
    target_id = Column(GUID, nullable=True)

    details = Column(JSON, nullable=True)

    # Request metadata
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.admin_id}>"
