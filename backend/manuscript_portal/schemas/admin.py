from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from manuscript_portal.schemas.auth import UserResponse, SignupRequest


# ==================== Researcher Applications ====================

class ApplicationResponse(BaseModel):
    id: str
    user_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    phone_number: Optional[str] = None
    research_description: Optional[str] = None
    id_proof_url: Optional[str] = None
    status: str
    via_signup: bool
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_note: Optional[str] = None
    created_at: datetime


class ApplicationsResponse(BaseModel):
    items: List[ApplicationResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class ApplicationReview(BaseModel):
    note: Optional[str] = Field(None, max_length=1000)


class ResearcherApprovalUpdate(BaseModel):
    """Body of PUT /admin/researcher/approve/{user_id}"""
    is_approved: bool = Field(..., validation_alias=AliasChoices("is_approved", "isApproved"))
    note: Optional[str] = Field(None, max_length=1000)


class ResearcherDecisionResponse(BaseModel):
    message: str
    user: UserResponse
    application: Optional[ApplicationResponse] = None


# ==================== User Management ====================

class AdminUserCreate(SignupRequest):
    role: str = Field("user", pattern="^(user|researcher|admin)$")


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Optional[str] = Field(None, pattern="^(user|researcher|admin)$")
    is_active: Optional[bool] = None
    is_approved: Optional[bool] = None


class AdminUsersResponse(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# ==================== Dashboard ====================

class DashboardStats(BaseModel):
    total_users: int
    users_by_role: Dict[str, int]
    pending_applications: int
    total_manuscripts: int
    manuscripts_by_type: Dict[str, int]
    manuscripts_by_status: Dict[str, int]
    total_annotations: int
    open_help_requests: int
    pending_access_requests: int


# ==================== Audit Logs ====================

class AuditLogResponse(BaseModel):
    id: str
    admin_id: Optional[str] = None
    admin_email: Optional[str] = None
    admin_name: Optional[str] = None
    action: str
    target_type: str
    target_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime


class AuditLogsResponse(BaseModel):
    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# ==================== Categories ====================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = " ".join(v.split())
        if not v:
            raise ValueError("Category name is required")
        return v


class CategoryResponse(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True
