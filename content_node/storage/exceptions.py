class ContentStorageError(Exception):
    """Base exception for all content storage errors."""


class BackendUnavailableError(ContentStorageError):
    """Raised when the storage backend cannot be reached."""


class ContentNotFoundError(ContentStorageError):
    """Raised when reading a reference that has no stored content."""
