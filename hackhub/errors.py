"""
Domain errors raised by the utils layer.

Every error carries a stable machine-readable ``kind`` and maps to one HTTP
status code. Routers never build error responses themselves: the handlers
registered in ``app.py`` turn these exceptions into JSON bodies of the form
``{"success": false, "error": kind, "message": ..., "details": ...}``.
"""
from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    """Base class for all domain errors"""
    kind: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        content = {
            "success": False,
            "error": self.kind,
            "message": self.message,
        }
        if self.details:
            content["details"] = self.details
        return content


class ValidationError(AppError):
    """Malformed or out-of-range input"""
    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(AppError):
    """Caller lacks the role, membership or judge standing for the action"""
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(AppError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ClosedWindowError(AppError):
    """Action attempted outside its registration, submission or judging window"""
    kind = "closed_window"
    status_code = status.HTTP_400_BAD_REQUEST


class UploadError(AppError):
    kind = "upload_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, too_large: bool = False):
        super().__init__(message, details)
        if too_large:
            self.status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
