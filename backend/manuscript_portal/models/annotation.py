from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer, Float

from manuscript_portal.core.database import Base
from manuscript_portal.core.types import GUID, generate_uuid, utcnow


class Annotation(Base):
    """A researcher's note on a region of a manuscript page"""
    __tablename__ = "annotations"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    manuscript_id = Column(GUID, ForeignKey("manuscripts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = Column(String(100), nullable=False)

    text = Column(Text, nullable=False)
    page_number = Column(Integer, nullable=False)

    # Region on the page
    x = Column(Float, nullable=False)
    y = Column(Float, nullable=False)
    width = Column(Float, nullable=False)
    height = Column(Float, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def position(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    def __repr__(self):
        return f"<Annotation {self.manuscript_id} p{self.page_number}>"
