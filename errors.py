"""
Error kinds shared by every service

Services raise AppError subclasses; main.py maps the kind to a status
code in one place.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorKind(str, Enum):
    AUTHENTICATION_REQUIRED = "authentication_required"
    AUTHENTICATION_EXPIRED = "authentication_expired"
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER = "server_error"


STATUS_CODES = {
    ErrorKind.AUTHENTICATION_REQUIRED: 401,
    ErrorKind.AUTHENTICATION_EXPIRED: 401,
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.SERVER: 500,
}


class AppError(Exception):
    kind = ErrorKind.SERVER

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}
        self._status_code = status_code

    @property
    def status_code(self) -> int:
        return self._status_code or STATUS_CODES[self.kind]

    def to_dict(self) -> dict:
        body = {"detail": self.message, "kind": self.kind.value}
        if self.errors:
            body["errors"] = self.errors
        return body


class AuthenticationRequired(AppError):
    kind = ErrorKind.AUTHENTICATION_REQUIRED


class AuthenticationExpired(AppError):
    kind = ErrorKind.AUTHENTICATION_EXPIRED


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION


class NotFound(AppError):
    kind = ErrorKind.NOT_FOUND


class Conflict(AppError):
    kind = ErrorKind.CONFLICT


class ServerError(AppError):
    kind = ErrorKind.SERVER
