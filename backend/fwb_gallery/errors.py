from __future__ import annotations
from sqlalchemy.exc import SQLAlchemyError

# Storage errors are propagated unchanged as SQLAlchemy's own hierarchy.
PersistenceFailure = SQLAlchemyError


class GalleryError(Exception):
    """Base for errors the core returns to its immediate caller."""
    code = "error"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.code


class NotFound(GalleryError):
    """Referenced record does not exist"""
    code = "not_found"
    status_code = 404


class NotVotable(GalleryError):
    """Submission is not open for voting"""
    code = "not_votable"
    status_code = 409


class ContentionTimeout(GalleryError):
    """Timed out waiting for a serializing lock; safe to retry"""
    code = "contention_timeout"
    status_code = 503
    retryable = True

    def __init__(self, key: str, timeout: float):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Could not acquire lock {key!r} within {timeout:g}s")


class ConstraintViolation(GalleryError):
    """A uniqueness or integrity constraint rejected the write"""
    code = "constraint_violation"
    status_code = 409


class SlotsExhausted(GalleryError):
    """Submitter has no remaining submission slots"""
    code = "slots_exhausted"
    status_code = 409


class InvalidCursor(GalleryError):
    """Gallery cursor could not be decoded"""
    code = "invalid_cursor"
    status_code = 400
