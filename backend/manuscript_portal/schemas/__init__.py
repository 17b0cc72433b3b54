# Pydantic schemas
from manuscript_portal.schemas.auth import (
    SignupRequest,
    ResearcherDetails,
    ResearcherSignupRequest,
    UserLogin,
    RefreshTokenRequest,
    Token,
    UserResponse,
    AuthResponse,
    MessageResponse,
)
from manuscript_portal.schemas.manuscript import (
    ManuscriptMetadata,
    ManuscriptUpdate,
    ManuscriptResponse,
    ManuscriptPublicView,
    ManuscriptListResponse,
)
from manuscript_portal.schemas.annotation import (
    Position,
    AnnotationCreate,
    AnnotationUpdate,
    AnnotationResponse,
)
