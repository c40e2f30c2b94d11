from collections.abc import Callable
from typing import Any

from content_node.logging.logger import Log
from content_node.messaging.exceptions import UnsupportedMessageError

Handler = Callable[[Any], None]


class MessageDispatcher:
    """Routes each inbound message to the handler registered for its type."""

    def __init__(self) -> None:
        self._handlers: dict[type, Handler] = {}

    def register(self, message_type: type, handler: Handler) -> None:
        if message_type in self._handlers:
            raise ValueError(f"A handler is already registered for {message_type.__name__}")
        self._handlers[message_type] = handler
        Log.debug(f"Registered handler for {message_type.__name__}")

    def dispatch(self, message: object) -> None:
        handler = self._handlers.get(type(message))
        if handler is None:
            raise UnsupportedMessageError(
                f"No handler registered for {type(message).__name__}. "
                f"Known: {[kind.__name__ for kind in self._handlers]}"
            )
        handler(message)
