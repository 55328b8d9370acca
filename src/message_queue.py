import threading
from queue import Queue, Empty
from typing import Optional

from models import Transaction


class InMemoryQueue:
    """
    Bounded thread-safe FIFO of transactions feeding one shard worker.
    All synchronization is internal - callers never need to lock.
    """

    DEFAULT_TIMEOUT = 0.1

    def __init__(self, maxsize: int = 0):
        self._main_queue: Queue[Transaction] = Queue(maxsize=maxsize)
        self._shutdown_event = threading.Event()

    def publish_message(self, message: Transaction) -> None:
        """Add message to queue, blocking while the queue is full. Thread-safe."""
        self._main_queue.put(message)

    def consume_message(self) -> Optional[Transaction]:
        """
        Get next message from queue.
        Returns None if queue is empty after timeout.
        Thread-safe.
        """
        try:
            return self._main_queue.get(timeout=self.DEFAULT_TIMEOUT)
        except Empty:
            return None

    def is_empty(self) -> bool:
        """Check if queue is empty."""
        return self._main_queue.empty()

    def size(self) -> int:
        """Return approximate queue size."""
        return self._main_queue.qsize()

    def shutdown(self) -> None:
        """Signal no more messages will be published."""
        self._shutdown_event.set()

    def is_shutdown(self) -> bool:
        """Check if shutdown has been signaled."""
        return self._shutdown_event.is_set()
