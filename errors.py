"""
Service-level failures.

Every service operation either returns plain data or raises a
``ServiceError`` whose ``kind`` tells the HTTP layer how to answer.
Storage errors are never wrapped: pymongo exceptions propagate as-is and
are classified by ``error_kind``.
"""

from enum import Enum
from typing import Optional

from pymongo.errors import PyMongoError


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    AUTHORIZATION = "Authorization"
    VALIDATION = "Validation"
    STORAGE_FAILURE = "StorageFailure"


class ServiceError(Exception):
    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, resource: Optional[str] = None, resource_id: Optional[str] = None):
        self.message = message
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "kind": self.kind.value,
            "resource": self.resource,
            "id": self.resource_id,
        }


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class AuthorizationError(ServiceError):
    kind = ErrorKind.AUTHORIZATION


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION


def error_kind(exc: BaseException) -> Optional[ErrorKind]:
    if isinstance(exc, ServiceError):
        return exc.kind
    if isinstance(exc, PyMongoError):
        return ErrorKind.STORAGE_FAILURE
    return None
