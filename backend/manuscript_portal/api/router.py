from fastapi import APIRouter

from manuscript_portal.api.endpoints import (
    access_requests,
    annotations,
    auth,
    categories,
    health,
    help,
    manuscripts,
    users,
)
from manuscript_portal.api.endpoints.admin import admin_router

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
# Annotation routes first so /{id}/annotations is not shadowed
api_router.include_router(annotations.manuscript_router, prefix="/manuscripts", tags=["Annotations"])
api_router.include_router(manuscripts.router, prefix="/manuscripts", tags=["Manuscripts"])
api_router.include_router(annotations.router, prefix="/annotations", tags=["Annotations"])
api_router.include_router(help.router, prefix="/help", tags=["Help"])
api_router.include_router(access_requests.router, prefix="/access-requests", tags=["Access Requests"])
api_router.include_router(categories.router, prefix="/categories", tags=["Categories"])
api_router.include_router(admin_router)
