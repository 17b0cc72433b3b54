from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from manuscript_portal.core.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)


def parse_form(model: Type[M], **data) -> M:
    """
    Validate multipart form fields with a pydantic model.

    FastAPI only validates JSON bodies against models, so multipart endpoints
    call this and get the portal's 400 "Validation failed" with per-field errors.
    """
    try:
        return model(**data)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError("Validation failed", errors=errors)
