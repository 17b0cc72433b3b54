from sqlalchemy import Column, String, DateTime

from manuscript_portal.core.database import Base
from manuscript_portal.core.types import GUID, generate_uuid, utcnow


class Category(Base):
    __tablename__ = "categories"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(50), unique=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Category {self.name}>"
