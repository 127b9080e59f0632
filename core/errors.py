"""Exception types raised by the service layer.

Route handlers never catch these one by one; the API registers a handler per
class and renders the message as inline page state.
"""

from __future__ import annotations

from typing import Optional


class PortalError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """A required field is missing or malformed. Raised before any remote call."""


class DuplicateSubmissionError(PortalError):
    """A once-per-day record already exists for the same athlete and date."""


class NotFoundError(PortalError):
    pass


class BackendError(PortalError):
    """The hosted backend (auth, storage) failed or rejected the call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthServiceError(BackendError):
    pass


class SessionRejectedError(AuthServiceError):
    """The access token was refused (expired, revoked or malformed)."""


class StorageError(BackendError):
    pass
