from typing import Optional

from starlette import status


class AppError(Exception):
    """Base class for errors that are reported to the caller as-is."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"
    headers: Optional[dict] = None

    def __init__(self, detail: Optional[str] = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Could not validate credentials"
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Unauthorized"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Already exists"


class InvalidState(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid state"


class InvalidRequest(InvalidState):
    detail = "Invalid request"


class AlreadyProcessed(InvalidState):
    detail = "Request already processed"


class Unavailable(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Realtime connection is not established"
