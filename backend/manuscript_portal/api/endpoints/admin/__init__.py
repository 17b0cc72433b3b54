"""
Admin API endpoints.
Every route requires an admin account.
"""
from fastapi import APIRouter

from manuscript_portal.api.endpoints.admin import (
    access_requests,
    audit_logs,
    categories,
    dashboard,
    help_requests,
    researchers,
    users,
)

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

admin_router.include_router(dashboard.router, prefix="/dashboard", tags=["Admin Dashboard"])
admin_router.include_router(researchers.router, prefix="/researcher", tags=["Admin Researchers"])
admin_router.include_router(users.router, prefix="/users", tags=["Admin Users"])
admin_router.include_router(help_requests.router, prefix="/help-requests", tags=["Admin Help Requests"])
admin_router.include_router(access_requests.router, prefix="/access-requests", tags=["Admin Access Requests"])
admin_router.include_router(categories.router, prefix="/categories", tags=["Admin Categories"])
admin_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["Admin Audit Logs"])
