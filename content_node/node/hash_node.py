from content_node.logging.logger import Log
from content_node.messaging.dispatcher import MessageDispatcher
from content_node.messaging.models import HashReply, HashRequest, ReplyStatus
from content_node.messaging.producer import BaseMessageProducer
from content_node.node.transformer_node import describe_error
from content_node.transform.hash_worker import HashWorker


class HashNode:
    """Answer each HashRequest with exactly one terminal HashReply."""

    def __init__(self, worker: HashWorker, producer: BaseMessageProducer) -> None:
        self._worker = worker
        self._producer = producer

    def register(self, dispatcher: MessageDispatcher) -> None:
        dispatcher.register(HashRequest, self.handle)

    def handle(self, request: HashRequest) -> None:
        Log.info(
            f"Processing hash request {request.request_id} "
            f"({len(request.references)} references, {request.algorithm})"
        )
        try:
            hashes = self._worker.generate_hashes(request.references, request.algorithm)
        except Exception as exc:
            detail = describe_error(exc)
            Log.exception(f"Hash request {request.request_id} failed: {detail}")
            self._producer.send(
                HashReply(request.request_id, ReplyStatus.FAILED, error_detail=detail)
            )
            return
        self._producer.send(HashReply(request.request_id, ReplyStatus.COMPLETE, hashes=hashes))
        Log.info(f"Hash request {request.request_id} completed")
