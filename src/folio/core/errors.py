"""
Exception hierarchy for folio.

Every error that crosses a module boundary derives from FolioError and
carries the HTTP status the API layer should answer with.
"""

from __future__ import annotations


class FolioError(Exception):
    """Base exception for folio errors."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class UpstreamError(FolioError):
    """The GitHub API failed, timed out, or returned a non-success status."""

    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None):
        self.upstream_status = upstream_status
        super().__init__(message)


class PerRepositoryError(FolioError):
    """Reconciling a single repository failed."""

    def __init__(self, repository: str, message: str):
        self.repository = repository
        super().__init__(f"Failed to sync {repository}: {message}")


class SignatureError(FolioError):
    """Webhook signature missing or invalid."""

    status_code = 401


class AuthorizationError(FolioError):
    """Admin-only operation called without a valid admin credential."""

    status_code = 401


class NotFoundError(FolioError):
    """Referenced entity does not exist."""

    status_code = 404


class ConflictError(FolioError):
    """Uniqueness violation, e.g. a duplicate project name."""

    status_code = 400


class DatabaseError(FolioError):
    """The project store could not be read or written."""

    status_code = 500


class InvalidRequestError(FolioError):
    """A request was well-formed but asked for something unsupported."""

    status_code = 400
