"""Service error taxonomy.

Services raise these; the app factory registers one handler that turns
any ServiceError into a JSON body with the matching status code. Routes
never build error responses by hand.
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for every failure a service reports to the API layer."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ServiceError):
    """Malformed or missing input."""

    status_code = 400


class Unauthenticated(ServiceError):
    """Missing, malformed, or expired credentials."""

    status_code = 401


class Forbidden(ServiceError):
    """Authenticated, but the caller may not do this."""

    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    """A uniqueness rule would be violated."""

    status_code = 409


class Internal(ServiceError):
    status_code = 500
