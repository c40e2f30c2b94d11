class TempFileError(Exception):
    """Raised when a temporary file cannot be created."""


class StreamIOError(TempFileError):
    """Raised when copying a stream into a temporary file fails midway."""
