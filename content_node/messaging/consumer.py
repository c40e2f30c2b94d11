import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from content_node.config.settings import Settings
from content_node.logging.logger import Log
from content_node.messaging.codec import message_from_payload
from content_node.messaging.dispatcher import MessageDispatcher
from content_node.messaging.exceptions import MessagingError

_NOTHING_TAKEN = object()


class QueueConsumer:
    """Poll loop: take -> decode -> dispatch.

    Each payload taken from the queue is handled by exactly one loop, so
    running several loops concurrently keeps at-most-once handling.
    """

    def __init__(
        self,
        requests: "queue.Queue[Any]",
        dispatcher: MessageDispatcher,
        settings: Settings,
    ) -> None:
        self._requests = requests
        self._dispatcher = dispatcher
        self._settings = settings
        self._stopped = threading.Event()

    def run(self, max_messages: int | None = None) -> None:
        """Main poll loop. Runs until stopped or interrupted.

        If max_messages is set, stop after handling that many messages (for testing).
        """
        Log.info("Consumer started, waiting for requests")
        handled = 0
        try:
            while not self._stopped.is_set():
                if max_messages is not None and handled >= max_messages:
                    break
                payload = self._try_take()
                if payload is _NOTHING_TAKEN:
                    continue
                self._handle(payload)
                handled += 1
        except KeyboardInterrupt:
            Log.info("Consumer shutting down gracefully")

    def run_concurrently(self, concurrency: int) -> None:
        """Run concurrency poll loops on a thread pool until stopped."""
        with ThreadPoolExecutor(
            max_workers=concurrency, thread_name_prefix="consumer"
        ) as pool:
            loops = [pool.submit(self.run) for _ in range(concurrency)]
            try:
                for loop in loops:
                    loop.result()
            except KeyboardInterrupt:
                Log.info("Consumer shutting down gracefully")
                self.stop()

    def stop(self) -> None:
        self._stopped.set()

    def _try_take(self) -> Any:
        try:
            return self._requests.get(timeout=self._settings.consumer_poll_interval_seconds)
        except queue.Empty:
            Log.debug("No requests available")
            return _NOTHING_TAKEN

    def _handle(self, payload: Any) -> None:
        """Decode and dispatch one payload. Bad messages are logged and skipped."""
        try:
            message = message_from_payload(payload)
            self._dispatcher.dispatch(message)
        except MessagingError as exc:
            Log.warning(f"Discarding message: {exc}")
        except Exception as exc:
            Log.exception(f"Unhandled error while dispatching message: {exc}")
        finally:
            self._requests.task_done()
