class MessagingError(Exception):
    """Base exception for message handling errors."""


class MessageFormatError(MessagingError):
    """Raised when a message or payload violates the message contract."""


class UnsupportedMessageError(MessagingError):
    """Raised when no handler is registered for a message kind."""
