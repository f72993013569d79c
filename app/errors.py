"""
Profile Service — Domain error taxonomy.

Services raise these; ``app.main`` maps each class onto an HTTP status code.
"""

from __future__ import annotations


class ProfileServiceError(Exception):
    """Base class for all errors raised by the service layer."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ProfileServiceError):
    """A supplied value is empty or outside its allowed set."""

    status_code = 400


class NotFoundError(ProfileServiceError):
    """Unknown user, photo or tag id."""

    status_code = 404


class StorageError(ProfileServiceError):
    """The relational store rejected or failed an operation."""

    status_code = 500


class MessagingError(ProfileServiceError):
    """An event could not be published.

    The mutation that preceded the publish may already be committed.
    """

    status_code = 502


class ObjectStorageError(ProfileServiceError):
    """Photo upload or URL generation failed."""

    status_code = 502


class ConcurrencyError(ProfileServiceError):
    """The per-user lock could not be acquired in time."""

    status_code = 409
