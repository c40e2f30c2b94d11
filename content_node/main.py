import queue
from typing import Any

from content_node.config.settings import Settings
from content_node.logging.logger import Log
from content_node.messaging.consumer import QueueConsumer
from content_node.messaging.dispatcher import MessageDispatcher
from content_node.messaging.producer import QueueMessageProducer
from content_node.node.hash_node import HashNode
from content_node.node.transformer_node import TransformationNode
from content_node.storage.factory import ContentReferenceHandlerFactory
from content_node.storage.s3_handler import S3ContentReferenceHandler
from content_node.tempfiles.provider import TempFileProvider
from content_node.transform.factory import TransformerWorkerFactory
from content_node.transform.hash_worker import HashWorker


def build_consumer(
    settings: Settings,
    requests: "queue.Queue[Any]",
    replies: "queue.Queue[dict[str, Any]]",
) -> QueueConsumer:
    """Wire handler, workers and nodes behind a consumer of the requests queue."""
    temp_files = TempFileProvider(root_override=settings.temp_dir_root)
    handler = ContentReferenceHandlerFactory.create(settings, temp_files)
    if isinstance(handler, S3ContentReferenceHandler):
        handler.initialize()
    producer = QueueMessageProducer(replies)

    dispatcher = MessageDispatcher()
    worker = TransformerWorkerFactory.create(settings, handler, temp_files)
    TransformationNode(worker, producer).register(dispatcher)
    hash_worker = worker if isinstance(worker, HashWorker) else HashWorker(
        handler, default_algorithm=settings.hash_algorithm
    )
    HashNode(hash_worker, producer).register(dispatcher)
    return QueueConsumer(requests, dispatcher, settings)


def main() -> None:
    """Entry point: configure -> build dependencies -> start consuming."""
    settings = Settings()
    Log.configure(settings.log_level)
    requests: queue.Queue[Any] = queue.Queue()
    replies: queue.Queue[dict[str, Any]] = queue.Queue()
    consumer = build_consumer(settings, requests, replies)
    Log.info(
        f"Content node started (storage={settings.storage_backend}, "
        f"transformer={settings.transformer}, concurrency={settings.consumer_concurrency})"
    )
    consumer.run_concurrently(settings.consumer_concurrency)


if __name__ == "__main__":
    main()
