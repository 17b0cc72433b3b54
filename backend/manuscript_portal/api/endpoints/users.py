"""Routes kept under /users for older clients"""
from fastapi import APIRouter, status

from manuscript_portal.api.endpoints.auth import apply_for_researcher
from manuscript_portal.schemas.admin import ApplicationResponse

router = APIRouter()

router.add_api_route(
    "/apply-researcher",
    apply_for_researcher,
    methods=["POST"],
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
