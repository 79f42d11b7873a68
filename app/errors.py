"""Error types raised by the contact service.

Each error carries the HTTP status it maps to; ``main.py`` registers a
handler that renders them as ``{"detail": message}`` responses.
"""

from fastapi import status


class ContactServiceError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ContactServiceError):
    """Missing field or malformed value in the submitted form."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(ContactServiceError):
    """Another contact already uses the submitted email."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(ContactServiceError):
    """No contact exists with the requested id."""

    status_code = status.HTTP_404_NOT_FOUND


class InternalError(ContactServiceError):
    """Relational store or blob store failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
