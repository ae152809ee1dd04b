from typing import List, Optional
from fastapi import HTTPException, status


class ApiError(HTTPException):
    """HTTP error rendered as {"error": ..., "details": [...]}."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, error: str, details: Optional[List[str]] = None, **extra):
        super().__init__(status_code=type(self).status_code, detail=error)
        self.error = error
        self.details = details
        # Extra response fields, e.g. the waiting_room_id a user already holds
        self.extra = extra


class BadRequest(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT


class ServerError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(error: str, details: Optional[List[str]] = None, **extra) -> dict:
    body = {"error": error}
    if details:
        body["details"] = details
    body.update(extra)
    return body
