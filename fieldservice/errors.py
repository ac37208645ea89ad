"""
HTTP exceptions shared by services and routers.

Usage:
    raise NotFoundError("Record", record_id)
    raise ConflictError("Unit is used by 2 services")
"""
from typing import Any, Dict, Optional, Union

from fastapi import HTTPException, status

from .logger import logger


class AppException(HTTPException):
    """Base exception; logs itself when raised so every refusal leaves a trace."""

    def __init__(
        self,
        status_code: int,
        detail: Union[str, Dict[str, Any]],
        headers: Optional[Dict[str, str]] = None,
    ):
        logger.warning(f"{self.__class__.__name__} ({status_code}): {detail}")
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    def __init__(self, detail: str):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)


class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: Optional[Union[int, str]] = None):
        if entity_id is not None:
            detail = f"{entity} {entity_id} not found"
        else:
            detail = f"{entity} not found"
        super().__init__(status.HTTP_404_NOT_FOUND, detail)


class AuthenticationError(AppException):
    def __init__(self, detail: str = "Invalid authentication credentials"):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    def __init__(self, detail: str = "Not allowed"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)


class ConflictError(AppException):
    """
    Guard refusal or unique-key clash (409).

    Extra keyword arguments are returned to the caller next to the message,
    e.g. ``ConflictError("...", blockingRecords=3)``.
    """

    def __init__(self, message: str, **extra: Any):
        detail: Union[str, Dict[str, Any]] = {"message": message, **extra} if extra else message
        super().__init__(status.HTTP_409_CONFLICT, detail)
