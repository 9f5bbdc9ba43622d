"""Domain errors raised by the services and rendered as JSON by the core blueprint.

Every error carries a stable machine ``code``, an HTTP status and a short
message that can be shown to the user as is.
"""
from __future__ import annotations
from typing import Any


class AppError(Exception):
    code = "error"
    http_status = 400
    message = "Request failed"

    def __init__(self, message: str | None = None, *, detail: Any = None):
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.code, "message": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class ValidationError(AppError):
    code = "validation_error"
    http_status = 400
    message = "Invalid input"


class InvalidCredentials(AppError):
    code = "invalid_credentials"
    http_status = 401
    message = "Invalid credentials"


class AccountLocked(AppError):
    code = "account_locked"
    http_status = 401
    message = "Account is temporarily locked after too many failed attempts"


class NotFound(AppError):
    code = "not_found"
    http_status = 404
    message = "Not found"


class NoSubmissions(NotFound):
    code = "no_submissions"
    message = "No submissions found"


class QuotaExceeded(AppError):
    code = "quota_exceeded"
    http_status = 409
    message = "Active assignment limit reached"


class AtCapacity(AppError):
    code = "at_capacity"
    http_status = 403
    message = "This assignment has reached its maximum capacity"


class NotActive(AppError):
    code = "not_active"
    http_status = 403
    message = "This assignment is not currently available."


class Expired(AppError):
    code = "expired"
    http_status = 403
    message = "The deadline for this assignment has passed."


class AlreadySubmitted(AppError):
    code = "already_submitted"
    http_status = 409
    message = "Work has already been submitted and cannot be modified"


class InternalError(AppError):
    code = "internal_error"
    http_status = 500
    message = "Internal server error"
