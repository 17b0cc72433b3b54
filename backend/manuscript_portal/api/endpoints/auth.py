from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from manuscript_portal.core.database import get_db
from manuscript_portal.core.exceptions import (
    ApplicationNotFoundError,
    DuplicateEmailError,
    InactiveAccountError,
    InvalidTokenError,
)
from manuscript_portal.core.logging_config import logger, set_user_id
from manuscript_portal.core.rate_limiter import limiter, LOGIN_LIMIT, SIGNUP_LIMIT
from manuscript_portal.core.security import (
    build_token_claims,
    create_access_token,
    create_refresh_token,
    decode_token,
    REFRESH_TOKEN_TYPE,
)
from manuscript_portal.core.types import is_valid_uuid
from manuscript_portal.models.user import User
from manuscript_portal.modules.auth.dependencies import get_current_user
from manuscript_portal.schemas.admin import ApplicationResponse
from manuscript_portal.schemas.auth import (
    AuthResponse,
    MessageResponse,
    RefreshTokenRequest,
    ResearcherDetails,
    ResearcherSignupRequest,
    SignupRequest,
    Token,
    UserLogin,
    UserResponse,
)
from manuscript_portal.services import auth_service, researcher_service
from manuscript_portal.services.notification_service import notification_service
from manuscript_portal.services.upload_storage import ID_PROOFS, UploadStorage, get_upload_storage
from manuscript_portal.utils.forms import parse_form

router = APIRouter()


def _auth_response(user: User, message: str, with_refresh: bool = False) -> dict:
    claims = build_token_claims(user)
    return {
        "user": UserResponse.model_validate(user),
        "token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims) if with_refresh else None,
        "message": message,
    }


@router.post("/signup/user", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SIGNUP_LIMIT)
async def signup_user(
    request: Request,
    user_data: SignupRequest,
    db: AsyncSession = Depends(get_db)
):
    """Register a normal user (approved immediately)"""
    user = await auth_service.signup_normal(db, user_data)
    set_user_id(str(user.id))
    return _auth_response(user, "User registered successfully")


@router.post("/signup/researcher", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SIGNUP_LIMIT)
async def signup_researcher(
    request: Request,
    background_tasks: BackgroundTasks,
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    phone_number: str = Form(...),
    research_description: str = Form(...),
    id_proof: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    storage: UploadStorage = Depends(get_upload_storage)
):
    """
    Register a researcher applicant.

    The account cannot sign in until an admin approves or rejects the application.
    """
    data = parse_form(
        ResearcherSignupRequest,
        name=name, email=email, password=password,
        phone_number=phone_number, research_description=research_description,
    )
    # Checked before the upload so a duplicate does not leave a file behind
    if await auth_service.get_user_by_email(db, data.email):
        raise DuplicateEmailError()

    id_proof_url = None
    if id_proof is not None and id_proof.filename:
        id_proof_url = await storage.save(id_proof, ID_PROOFS)

    try:
        user, _ = await auth_service.signup_researcher(db, data, id_proof_url)
    except Exception:
        await storage.delete(id_proof_url)
        raise

    background_tasks.add_task(notification_service.notify_new_application, user.name, user.email)
    return _auth_response(user, "Application submitted successfully. Awaiting admin approval.")


@router.post("/login", response_model=AuthResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password. Returns access and refresh tokens."""
    user = await auth_service.authenticate(db, credentials.email, credentials.password)
    set_user_id(str(user.id))
    return _auth_response(user, "Login successful", with_refresh=True)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    body: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new token pair"""
    payload = decode_token(body.refresh_token, expected_type=REFRESH_TOKEN_TYPE)

    user_id = payload.get("sub")
    if not user_id or not is_valid_uuid(user_id):
        raise InvalidTokenError("Invalid token payload")

    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user:
        raise InvalidTokenError("User not found")
    if not user.is_active:
        raise InactiveAccountError()

    claims = build_token_claims(user)
    logger.log_auth_event("refresh", success=True, user_email=user.email)
    return Token(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user info"""
    return current_user


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards them"""
    logger.log_auth_event("logout", success=True, user_email=current_user.email)
    return {"message": "Logged out successfully"}


@router.post("/apply-for-researcher", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def apply_for_researcher(
    background_tasks: BackgroundTasks,
    phone_number: str = Form(...),
    research_description: str = Form(...),
    id_proof: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: UploadStorage = Depends(get_upload_storage)
):
    """Ask for researcher access from an existing account"""
    details = parse_form(ResearcherDetails, phone_number=phone_number, research_description=research_description)

    id_proof_url = None
    if id_proof is not None and id_proof.filename:
        id_proof_url = await storage.save(id_proof, ID_PROOFS)

    try:
        application = await researcher_service.apply_for_researcher(db, current_user, details, id_proof_url)
    except Exception:
        await storage.delete(id_proof_url)
        raise

    background_tasks.add_task(notification_service.notify_new_application, current_user.name, current_user.email)
    return researcher_service.application_to_dict(application, current_user)


@router.get("/application", response_model=ApplicationResponse)
async def get_my_application(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    application = await researcher_service.get_application_for_user(db, current_user.id)
    if application is None:
        raise ApplicationNotFoundError()
    return researcher_service.application_to_dict(application, current_user)
