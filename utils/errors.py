"""Error taxonomy surfaced by the JSON API."""
from typing import Iterable, Optional


class ApiError(Exception):
    """Base class for failures rendered as ``{"message", "errors"?}`` responses."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[Iterable[dict]] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        self.errors = list(errors) if errors else None
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(ApiError):
    status_code = 400
    default_message = "Validation failed"


class UploadRejected(ValidationError):
    """Raised when an uploaded image fails the type or size gate."""

    default_message = "Image upload rejected"

    def __init__(self, reason: str, field: str = "image"):
        super().__init__(self.default_message, errors=[{"field": field, "message": reason}])
        self.reason = reason


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class InvalidCredentials(ApiError):
    status_code = 401
    default_message = "Invalid credentials"


class Conflict(ApiError):
    status_code = 400
    default_message = "Resource already exists"


def form_errors(form) -> list[dict]:
    """Flatten WTForms errors into ``[{"field", "message"}]`` entries."""
    flattened = []
    for field_name, messages in form.errors.items():
        for message in messages:
            flattened.append({"field": field_name, "message": str(message)})
    return flattened
