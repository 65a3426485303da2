"""
Service-layer exceptions.

Core functions raise these instead of returning error dicts; the API layer
maps each class to its HTTP status and renders ``{"error": message}``.
"""


class ServiceError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(ServiceError):
    """Invalid input or a request that breaks a business rule (400)."""

    status_code = 400


class UnauthorizedError(ServiceError):
    """Missing or invalid credentials (401)."""

    status_code = 401


class ForbiddenError(ServiceError):
    """Authenticated but not allowed (403)."""

    status_code = 403


class NotFoundError(ServiceError):
    """Target record does not exist or is not visible to the caller (404)."""

    status_code = 404


class ConflictError(ServiceError):
    """Unique constraint would be violated (409)."""

    status_code = 409


class InvalidIdError(BadRequestError):
    """An identifier could not be parsed as a UUID."""

    def __init__(self, message: str = "Invalid id"):
        super().__init__(message)
