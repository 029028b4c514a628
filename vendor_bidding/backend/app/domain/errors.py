# backend/app/domain/errors.py
from __future__ import annotations


class DomainError(Exception):
    """
    Base for failures the HTTP layer maps to a status code.

    Services raise these instead of HTTPException so the same code paths can
    run from the CLI, Celery workers and tests. main.py owns the mapping.
    """

    status_code = 500
    code = "error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.code)
        self.detail = detail or self.code


class ValidationError(DomainError):
    status_code = 400
    code = "validation_error"


class AuthenticationError(DomainError):
    status_code = 401
    code = "not_authenticated"


class AuthorizationError(DomainError):
    status_code = 403
    code = "access_denied"


class NotFoundError(DomainError):
    status_code = 404
    code = "not_found"


class ConflictError(DomainError):
    status_code = 409
    code = "conflict"


class DependencyError(DomainError):
    """Identity, storage or persistence collaborator failed; safe to retry."""

    status_code = 502
    code = "dependency_error"
