from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Text
import enum

from manuscript_portal.core.database import Base
from manuscript_portal.core.types import GUID, generate_uuid, utcnow


class UserRole(str, enum.Enum):
    """User roles"""
    USER = "user"
    RESEARCHER = "researcher"
    ADMIN = "admin"


class User(Base):
    """Portal account.

    ``is_approved`` gates login for accounts created through researcher
    signup and, for researchers, access to detailed manuscripts.
    """
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    role = Column(SQLEnum(UserRole), default=UserRole.USER, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Researcher profile (copied from the latest application)
    phone_number = Column(String(20), nullable=True)
    research_description = Column(Text, nullable=True)
    id_proof_url = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_approved_researcher(self) -> bool:
        return self.role == UserRole.RESEARCHER and bool(self.is_approved)

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else '-'})>"
