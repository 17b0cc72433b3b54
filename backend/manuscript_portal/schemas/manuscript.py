from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Union
from datetime import datetime


def split_keywords(value: Optional[str]) -> List[str]:
    """'jain, agam ,, prakrit' -> ['jain', 'agam', 'prakrit']"""
    if not value:
        return []
    seen = []
    for item in value.split(','):
        item = item.strip()
        if item and item not in seen:
            seen.append(item[:50])
    return seen


class ManuscriptMetadata(BaseModel):
    """Metadata accepted on upload"""
    title: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=50)
    author: Optional[str] = Field(None, max_length=100)
    date: Optional[str] = Field(None, max_length=100)
    language: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=5000)
    summary: Optional[str] = Field(None, max_length=5000)
    significance: Optional[str] = Field(None, max_length=5000)
    keywords: List[str] = Field(default_factory=list)

    @field_validator('title', 'category', 'author', 'date', 'language', 'description', 'summary', 'significance', mode='before')
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class ManuscriptUpdate(BaseModel):
    """Partial update; None means 'leave unchanged'"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    author: Optional[str] = Field(None, max_length=100)
    date: Optional[str] = Field(None, max_length=100)
    language: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=5000)
    summary: Optional[str] = Field(None, max_length=5000)
    significance: Optional[str] = Field(None, max_length=5000)
    keywords: Optional[List[str]] = None
    status: Optional[str] = Field(None, pattern="^(published|pending|draft)$")
    is_featured: Optional[bool] = None

    @field_validator('title', 'category', 'author', 'date', 'language', 'description', 'summary', 'significance', mode='before')
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class ManuscriptPublicView(BaseModel):
    """What a caller without full access may see"""
    id: str
    title: str
    author: Optional[str] = None
    category: str
    language: Optional[str] = None
    description: Optional[str] = None
    summary: Optional[str] = None
    thumbnail: Optional[str] = None
    upload_type: str
    is_public: bool
    is_featured: bool = False
    created_at: datetime
    restricted: bool = True


class ManuscriptResponse(BaseModel):
    id: str
    title: str
    author: Optional[str] = None
    category: str
    date: Optional[str] = None
    language: Optional[str] = None
    description: Optional[str] = None
    summary: Optional[str] = None
    significance: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    thumbnail: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    page_count: int = 0
    upload_type: str
    is_public: bool
    status: str
    is_featured: bool = False
    submitted_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    restricted: bool = False

    @field_validator('upload_type', 'status', mode='before')
    @classmethod
    def enum_to_str(cls, v):
        return getattr(v, "value", v)

    @field_validator('keywords', 'images', mode='before')
    @classmethod
    def none_to_list(cls, v):
        return v or []

    class Config:
        from_attributes = True


ManuscriptView = Union[ManuscriptResponse, ManuscriptPublicView]


class ManuscriptListResponse(BaseModel):
    items: List[ManuscriptView]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool
