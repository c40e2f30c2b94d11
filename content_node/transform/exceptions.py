class TransformationError(Exception):
    """Base exception for all transformation errors."""


class TransformationFailure(TransformationError):
    """Raised when a codec, subprocess or digest computation fails."""


class ArgumentInvalidError(TransformationError, ValueError):
    """Raised when a worker is called with missing or unsupported arguments."""
