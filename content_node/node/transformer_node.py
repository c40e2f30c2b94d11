from dataclasses import replace
from enum import Enum

from content_node.logging.logger import Log
from content_node.messaging.dispatcher import MessageDispatcher
from content_node.messaging.models import TransformationReply, TransformationRequest
from content_node.messaging.producer import BaseMessageProducer
from content_node.node.reporter import ReplyingProgressReporter
from content_node.transform.base import BaseTransformerWorker


class RequestState(str, Enum):
    RECEIVED = "RECEIVED"
    STARTED = "STARTED"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


def describe_error(exc: BaseException) -> str:
    """Non-empty, requester-facing description of a failure."""
    message = str(exc).strip()
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


class TransformationNode:
    """Run one transformation request and reply at every state transition.

    RECEIVED -> STARTED -> (progress)* -> COMPLETE | FAILED. Every request ends
    with exactly one terminal reply. The node keeps no state between requests.
    """

    def __init__(self, worker: BaseTransformerWorker, producer: BaseMessageProducer) -> None:
        self._worker = worker
        self._producer = producer

    def register(self, dispatcher: MessageDispatcher) -> None:
        dispatcher.register(TransformationRequest, self.handle)

    def handle(self, request: TransformationRequest) -> RequestState:
        """Execute a single request with error handling."""
        _enter(request, RequestState.RECEIVED)
        reporter = ReplyingProgressReporter(request.request_id, self._producer)
        try:
            reporter.on_started()
            _enter(request, RequestState.STARTED)
            # Workers get copies; handlers set size on the references they write.
            self._worker.transform(
                replace(request.source_reference),
                replace(request.target_reference),
                request.options,
                reporter,
            )
        except Exception as exc:
            return self._handle_failure(request, exc)

        reporter.on_complete()
        _enter(request, RequestState.COMPLETE)
        return RequestState.COMPLETE

    def _handle_failure(self, request: TransformationRequest, exc: Exception) -> RequestState:
        detail = describe_error(exc)
        Log.exception(f"Transformation {request.request_id} failed: {detail}")
        self._producer.send(TransformationReply.failed(request.request_id, detail))
        _enter(request, RequestState.FAILED)
        return RequestState.FAILED


def _enter(request: TransformationRequest, state: RequestState) -> None:
    Log.info(f"Transformation {request.request_id} {state.value}")
