"""Common repository errors used across storage adapters."""

from __future__ import annotations


class RepositoryError(RuntimeError):
    """Base class for storage layer failures."""


class ValidationError(RepositoryError):
    """Raised when user input fails validation, before any I/O."""


class NotFoundError(RepositoryError):
    """Raised when a requested gallery id does not exist."""

    def __init__(self, gallery_id: str) -> None:
        super().__init__(f"Gallery with id {gallery_id} was not found")
        self.gallery_id = gallery_id


class MissingBackendConfigurationError(RepositoryError):
    """Raised on first use when no storage location was configured."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "S3_GALLERIES_BUCKET environment variable is not configured"
        )


class StorageUnavailableError(RepositoryError):
    """Raised when the underlying blob medium fails to read or write."""


class SerializationError(RepositoryError):
    """Raised when stored bytes cannot be decoded into a gallery."""
