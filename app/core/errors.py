from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """
    Base for errors raised by the development services.

    Carries an HTTP status and a structured detail so the API layer can render
    an actionable message instead of a generic failure.
    """
    status_code: int = 400
    code: str = "domain_error"

    def __init__(self, message: str, *, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.detail = detail if detail is not None else {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class ValidationError(DomainError):
    # detail: {"errors": [{"field", "message", "type"}, ...]}
    status_code = 422
    code = "validation_error"


class Forbidden(DomainError):
    status_code = 403
    code = "forbidden"


class QuotaExceeded(Forbidden):
    code = "quota_exceeded"


class NotFound(DomainError):
    status_code = 404
    code = "not_found"


class PreconditionFailed(DomainError):
    # detail is always structured: readiness report or current/required state
    status_code = 409
    code = "precondition_failed"


class ConflictError(DomainError):
    status_code = 409
    code = "conflict"
