"""Exceptions raised by the ChoreBoard services.

Routes translate these into JSON error responses using status_code.
"""

from typing import Optional


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, status_code: int = 400, details: Optional[dict] = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotFoundError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, 404)


class ForbiddenError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, 403)


class ConflictError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, 409)


class ValidationError(ServiceError):
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, 400, details)


class UpstreamError(ServiceError):
    """The database or blob store could not be reached or refused the write."""

    def __init__(self, message: str):
        super().__init__(message, 503)
