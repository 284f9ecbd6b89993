"""Error taxonomy shared by services and routers.

Every error carries the HTTP status it maps to; ``lms.main`` renders them as
``{"error": message}``.
"""

from typing import Optional

from fastapi import status


class LMSError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(LMSError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(LMSError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(LMSError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InvalidTransition(LMSError):
    """Current status does not allow the requested transition."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid status transition"


class NotInState(InvalidTransition):
    default_message = "Entity is not in the required state"


class AlreadyInState(InvalidTransition):
    default_message = "Entity is already in the requested state"


class ValidationError(LMSError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class SyncFailure(LMSError):
    """External geospatial sync failed. Recorded and retried, never shown to callers."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "External sync failed"


class Internal(LMSError):
    pass
