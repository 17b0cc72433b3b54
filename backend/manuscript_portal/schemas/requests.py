"""Help requests, access requests and the static FAQ"""
from pydantic import AliasChoices, BaseModel, Field
from typing import Optional, List
from datetime import datetime


class FAQItem(BaseModel):
    question: str
    answer: str


class HelpRequestCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    manuscript_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("manuscript_id", "manuscriptId")
    )


class HelpRequestResponse(BaseModel):
    id: str
    user_id: str
    user_name: str
    user_email: str
    manuscript_id: Optional[str] = None
    message: str
    status: str
    created_at: datetime
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HelpRequestsResponse(BaseModel):
    items: List[HelpRequestResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class AccessRequestCreate(BaseModel):
    manuscript_id: str = Field(..., validation_alias=AliasChoices("manuscript_id", "manuscriptId"))


class AccessRequestReview(BaseModel):
    status: str = Field(..., pattern="^(approved|rejected)$")


class AccessRequestResponse(BaseModel):
    id: str
    user_id: str
    manuscript_id: str
    status: str
    created_at: datetime
    reviewed_at: Optional[datetime] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    manuscript_title: Optional[str] = None


class AccessRequestsResponse(BaseModel):
    items: List[AccessRequestResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
