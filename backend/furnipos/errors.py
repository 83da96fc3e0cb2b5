# Overview: Service-layer error taxonomy shared by every workflow.

"""
Errors raised by services and translated to JSON responses by routes.

Every business-rule violation is raised at the point of detection and
surfaced verbatim to the caller. Routes map ``status_code`` straight onto
the HTTP response.
"""


class ServiceError(Exception):
    """Base class for errors a caller is allowed to see."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class BadRequestError(ServiceError):
    """Precondition failure (no exchange rate, insufficient stock, re-finalizing)."""
    status_code = 400


class UnauthorizedError(ServiceError):
    """No identity, or an identity that no longer validates."""
    status_code = 401


class ForbiddenError(ServiceError):
    """Valid identity without the required role, permission or business right."""
    status_code = 403


class NotFoundError(ServiceError):
    """Referenced entity is absent."""
    status_code = 404


class ConflictError(ServiceError):
    """Uniqueness conflict (duplicate username, category name, ...)."""
    status_code = 409
