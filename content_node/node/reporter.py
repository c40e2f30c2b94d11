from abc import ABC, abstractmethod
from dataclasses import dataclass

from content_node.logging.logger import Log
from content_node.messaging.models import TransformationReply
from content_node.messaging.producer import BaseMessageProducer


class ProgressReporter(ABC):
    """Callback surface a worker uses to announce the state of a transformation."""

    @abstractmethod
    def on_started(self) -> None: ...

    @abstractmethod
    def on_progress(self, progress: float) -> None:
        """Report the completed fraction, within [0, 1]."""

    @abstractmethod
    def on_complete(self) -> None: ...


@dataclass(frozen=True)
class ReplyingProgressReporter(ProgressReporter):
    """Turns reporter calls for one request into replies on the bus."""

    request_id: str
    producer: BaseMessageProducer

    def on_started(self) -> None:
        Log.debug(f"Starting transformation {self.request_id}")
        self.producer.send(TransformationReply.in_progress(self.request_id))

    def on_progress(self, progress: float) -> None:
        Log.debug(f"{progress * 100:.1f}% progress on transformation {self.request_id}")
        self.producer.send(TransformationReply.in_progress(self.request_id, progress))

    def on_complete(self) -> None:
        Log.debug(f"Completed transformation {self.request_id}")
        self.producer.send(TransformationReply.complete(self.request_id))


class LoggingProgressReporter(ProgressReporter):
    """Reporter that only logs; used when a worker runs outside a node."""

    def __init__(self, label: str = "transformation") -> None:
        self._label = label

    def on_started(self) -> None:
        Log.info(f"Starting {self._label}")

    def on_progress(self, progress: float) -> None:
        Log.info(f"{progress * 100:.1f}% progress on {self._label}")

    def on_complete(self) -> None:
        Log.info(f"Completed {self._label}")
