from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime


class Position(BaseModel):
    """Region on the page; units are whatever the viewer uses (pixels or fractions)"""
    x: float = Field(..., ge=0)
    y: float = Field(..., ge=0)
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)


class AnnotationCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)
    page_number: int = Field(..., ge=1)
    position: Position

    @field_validator('text', mode='before')
    @classmethod
    def strip_text(cls, v):
        # Whitespace-only notes then fail min_length
        return v.strip() if isinstance(v, str) else v


class AnnotationUpdate(BaseModel):
    text: Optional[str] = Field(None, min_length=1, max_length=5000)
    position: Optional[Position] = None

    @field_validator('text', mode='before')
    @classmethod
    def strip_text(cls, v):
        # Whitespace-only notes then fail min_length
        return v.strip() if isinstance(v, str) else v


class AnnotationResponse(BaseModel):
    id: str
    manuscript_id: str
    user_id: str
    user_name: str
    text: str
    page_number: int
    position: Position
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
