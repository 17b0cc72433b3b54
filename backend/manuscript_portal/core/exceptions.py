"""
Custom Exceptions for the Jain Manuscripts Portal
=================================================

Services raise these instead of HTTPException so the same rules can be
exercised without a request. The handlers registered by
``setup_exception_handlers`` turn them into JSON responses.

Usage:
    from manuscript_portal.core.exceptions import ManuscriptNotFoundError

    if not manuscript:
        raise ManuscriptNotFoundError(manuscript_id)
"""

from typing import Optional, Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class PortalError(Exception):
    """Base exception for all portal errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "code": self.code,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(PortalError):
    """User authentication failed"""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication failed", code: str = "AUTH_FAILED"):
        super().__init__(message, code=code)


class TokenExpiredError(AuthenticationError):
    """JWT token has expired"""

    def __init__(self):
        super().__init__("Token expired", code="TOKEN_EXPIRED")


class InvalidTokenError(AuthenticationError):
    """JWT token is malformed, has a bad signature or the wrong type"""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, code="INVALID_TOKEN")


class InvalidCredentialsError(PortalError):
    """Login failed. Clients expect 400 here, not 401."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self):
        super().__init__("Invalid credentials", code="INVALID_CREDENTIALS")


class AuthorizationError(PortalError):
    """User not authorized for this action"""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Forbidden: You do not have the required permission.",
                 code: str = "NOT_AUTHORIZED"):
        super().__init__(message, code=code)


class ApprovalPendingError(AuthorizationError):
    """Account or researcher status still waiting on an admin"""

    def __init__(self, message: str = "Your account is pending approval."):
        super().__init__(message, code="APPROVAL_PENDING")


class InactiveAccountError(AuthorizationError):
    """Account disabled by an admin"""

    def __init__(self):
        super().__init__("Account is inactive", code="ACCOUNT_INACTIVE")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(PortalError):
    """Base class for not found errors"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: str = ""):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str = ""):
        super().__init__("User", user_id)


class ManuscriptNotFoundError(ResourceNotFoundError):
    def __init__(self, manuscript_id: str = ""):
        super().__init__("Manuscript", manuscript_id)


class ApplicationNotFoundError(ResourceNotFoundError):
    def __init__(self, application_id: str = ""):
        super().__init__("Researcher application", application_id)


class AnnotationNotFoundError(ResourceNotFoundError):
    def __init__(self, annotation_id: str = ""):
        super().__init__("Annotation", annotation_id)


class HelpRequestNotFoundError(ResourceNotFoundError):
    def __init__(self, request_id: str = ""):
        super().__init__("Help request", request_id)


class AccessRequestNotFoundError(ResourceNotFoundError):
    def __init__(self, request_id: str = ""):
        super().__init__("Access request", request_id)


class CategoryNotFoundError(ResourceNotFoundError):
    def __init__(self, category_id: str = ""):
        super().__init__("Category", category_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(PortalError):
    """Input validation failed"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if errors:
            details["errors"] = errors
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidIdentifierError(ValidationError):
    """Path or body id is not a well-formed UUID"""

    def __init__(self, message: str = "Invalid ID format", field: str = "id"):
        super().__init__(message, field=field)
        self.code = "INVALID_ID"


class InvalidFileTypeError(ValidationError):
    """File extension not allowed"""

    def __init__(self, filename: str, allowed_types: List[str]):
        super().__init__(
            f"File type not allowed: {filename}. Allowed: {', '.join(allowed_types)}",
            field="files"
        )
        self.code = "INVALID_FILE_TYPE"


class TooManyFilesError(ValidationError):
    def __init__(self, max_files: int):
        super().__init__(f"Too many files. Maximum: {max_files} files", field="files")
        self.code = "TOO_MANY_FILES"


class EmptyFileError(ValidationError):
    def __init__(self, filename: str):
        super().__init__(f"Empty file: {filename}", field="files")
        self.code = "EMPTY_FILE"


class FileTooLargeError(PortalError):
    """Uploaded file exceeds MAX_UPLOAD_SIZE"""

    status_code = 413  # Content Too Large

    def __init__(self, filename: str, max_size: int):
        super().__init__(
            f"File too large: {filename}. Maximum size: {max_size // (1024 * 1024)}MB",
            code="FILE_TOO_LARGE",
            details={"filename": filename, "max_size": max_size}
        )


# ============================================
# Conflict / State Errors
# ============================================

class ConflictError(PortalError):
    """Request conflicts with existing state"""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message, code=code)


class DuplicateEmailError(ValidationError):
    """Signup with an email that is already registered"""

    def __init__(self, message: str = "User already exists"):
        super().__init__(message, field="email")
        self.code = "DUPLICATE_EMAIL"


class ApplicationAlreadySubmittedError(ValidationError):
    def __init__(self, message: str = "Application already submitted."):
        super().__init__(message)
        self.code = "APPLICATION_EXISTS"


class DuplicateAccessRequestError(ConflictError):
    def __init__(self):
        super().__init__(
            "Access request already submitted for this manuscript.",
            code="DUPLICATE_ACCESS_REQUEST"
        )


class DuplicateCategoryError(ConflictError):
    def __init__(self, name: str):
        super().__init__(f"Category '{name}' already exists", code="DUPLICATE_CATEGORY")


class InvalidStateTransitionError(ConflictError):
    """A workflow object is not in a state that allows the requested change"""

    def __init__(self, resource_type: str, current: str, action: str):
        super().__init__(
            f"Cannot {action} {resource_type} in status '{current}'",
            code="INVALID_STATE_TRANSITION"
        )
        self.details = {"resource_type": resource_type, "current_status": current, "action": action}


# ============================================
# Handlers
# ============================================

async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    from manuscript_portal.core.logging_config import logger

    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}",
        extra={
            "event_type": "portal_error",
            "error_code": exc.code,
            "http_status": exc.status_code,
            "http_path": request.url.path,
        }
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    from manuscript_portal.core.config import settings
    from manuscript_portal.core.logging_config import logger

    logger.log_error_with_context(
        exc,
        context=f"{request.method} {request.url.path}",
        http_path=request.url.path,
        client_ip=request.client.host if request.client else "unknown",
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "message": str(exc) if settings.DEBUG else "Something went wrong on the server!"
        }
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the portal exception handlers on the application"""
    app.add_exception_handler(PortalError, portal_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
