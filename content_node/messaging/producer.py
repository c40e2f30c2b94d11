import queue
from abc import ABC, abstractmethod
from typing import Any

from content_node.messaging.codec import reply_to_payload
from content_node.messaging.models import HashReply, TransformationReply


class BaseMessageProducer(ABC):
    """Contract for sending replies back to requesters over the bus."""

    @abstractmethod
    def send(self, reply: TransformationReply | HashReply) -> None:
        """Publish a reply. Fire-and-forget: no acknowledgement is awaited."""


class QueueMessageProducer(BaseMessageProducer):
    """Publishes reply payloads onto an in-process queue."""

    def __init__(self, replies: "queue.Queue[dict[str, Any]]") -> None:
        self._replies = replies

    def send(self, reply: TransformationReply | HashReply) -> None:
        self._replies.put(reply_to_payload(reply))
