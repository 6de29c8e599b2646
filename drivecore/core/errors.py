"""
Error taxonomy for the storage lifecycle engine.

Every rejection carries a human-readable message. NotFound, Forbidden and
QuotaExceeded are user-facing and never retried; NameResolutionExhausted is
an internal condition; BlobStoreUnavailable wraps object store failures.
"""
from typing import Optional


class DriveError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DriveError):
    """Raised when a record is missing or soft-deleted."""
    pass


class ForbiddenError(DriveError):
    """Raised when the caller does not own the record."""
    pass


class QuotaExceededError(DriveError):
    """Raised when storage quota would be exceeded."""

    def __init__(
        self,
        message: str,
        owner_id: Optional[str] = None,
        used_bytes: int = 0,
        quota_bytes: int = 0,
        incoming_bytes: int = 0
    ):
        super().__init__(message)
        self.owner_id = owner_id
        self.used_bytes = used_bytes
        self.quota_bytes = quota_bytes
        self.incoming_bytes = incoming_bytes


class NameResolutionExhaustedError(DriveError):
    """Raised when no free ``name (n)`` variant exists within the attempt cap."""
    pass


class BlobStoreUnavailableError(DriveError):
    """Raised when the object store rejects or cannot serve a request."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key
