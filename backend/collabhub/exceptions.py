"""Domain exceptions.

Services raise these instead of HTTP errors; the application maps each one to
a status code in a single exception handler (see ``collabhub.main``).
"""

from typing import Optional


class CollabHubError(Exception):
    """Base exception for domain errors."""

    status_code: int = 400

    def __init__(self, message: str, code: str = "ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(CollabHubError):
    """Entity is absent, or the caller is not allowed to know it exists."""

    status_code = 404

    def __init__(self, message: str = "Not found", code: str = "NOT_FOUND"):
        super().__init__(message, code)


class InvalidInputError(CollabHubError):
    """Malformed identifiers, self-referential requests, short queries."""

    status_code = 400

    def __init__(self, message: str, code: str = "INVALID_INPUT"):
        super().__init__(message, code)


class ConflictError(CollabHubError):
    """Duplicate relationship, membership, login or email."""

    status_code = 409

    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message, code)


class PermissionDeniedError(CollabHubError):
    """Caller's project role does not grant the requested capability."""

    status_code = 403

    def __init__(
        self,
        message: str = "Permission denied",
        code: str = "PERMISSION_DENIED",
        capability: Optional[str] = None,
    ):
        self.capability = capability
        super().__init__(message, code)


class InvalidCredentialError(CollabHubError):
    """Missing, expired, malformed or forged token, or a disabled account."""

    status_code = 401

    def __init__(self, message: str = "Invalid token", code: str = "INVALID_CREDENTIAL"):
        super().__init__(message, code)
