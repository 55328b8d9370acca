import logging
import threading
from typing import List

from engine import Engine
from errors import MalformedRecordError
from ledger import TransactionLedger
from message_queue import InMemoryQueue
from models import AccountSnapshot, ProcessingResult, ProcessingStats
from records import TransactionSource
from state import AccountBook

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Orchestrates transaction processing with publisher-consumer pattern.

    One publisher thread reads the CSV and routes each transaction to the
    shard owning its client (client_id % num_workers). Each consumer thread
    exclusively owns one Engine, so transactions of a client are applied in
    input order without any per-client locking. Shards share one ledger so
    transaction ids stay unique across clients.
    """

    def __init__(self, num_workers: int = 1, queue_size: int = 10000):
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")
        self._num_workers = num_workers
        self._queue_size = queue_size
        self._stats = ProcessingStats()
        self._errors: List[BaseException] = []
        self._errors_lock = threading.Lock()

    @property
    def stats(self) -> ProcessingStats:
        """Counters of the most recent run."""
        return self._stats

    def process_file(self, filepath: str) -> List[AccountSnapshot]:
        """
        Process CSV file and return final account snapshots ordered by client id.

        Raises SourceError if the file cannot be opened or read; rows that fail
        validation or business rules are logged and skipped.
        """
        source = TransactionSource.open(filepath)

        self._stats = ProcessingStats()
        self._errors = []
        ledger = TransactionLedger()
        shards = [Engine(ledger=ledger) for _ in range(self._num_workers)]
        queues = [InMemoryQueue(maxsize=self._queue_size) for _ in range(self._num_workers)]

        logger.info(f"Starting processing of {filepath} with {self._num_workers} worker(s)")

        with source:
            publisher_thread = threading.Thread(target=self._publish_transactions, args=(source, queues))
            publisher_thread.start()

            consumer_threads = []
            for shard, queue in zip(shards, queues):
                consumer_thread = threading.Thread(target=self._consume_transactions, args=(shard, queue))
                consumer_thread.start()
                consumer_threads.append(consumer_thread)

            publisher_thread.join()
            for consumer_thread in consumer_threads:
                consumer_thread.join()

        if self._errors:
            raise self._errors[0]

        book = AccountBook()
        for shard in shards:
            book.merge(shard.book)
            self._stats.merge(shard.stats)

        logger.info(f"Processing complete: {self._stats.processed} applied, {self._stats.failed} rejected")
        return book.render()

    def _publish_transactions(self, source: TransactionSource, queues: List[InMemoryQueue]) -> None:
        """Read rows and publish each transaction to the queue of its client's shard."""
        try:
            for line_number, parsed in source:
                if isinstance(parsed, MalformedRecordError):
                    logger.warning(f"Skipping line {line_number}: {parsed}")
                    self._stats.record(ProcessingResult.MALFORMED_RECORD)
                    continue
                queues[parsed.client_id % len(queues)].publish_message(parsed)
        except Exception as e:
            self._record_error(e)
        finally:
            for queue in queues:
                queue.shutdown()

    def _consume_transactions(self, shard: Engine, queue: InMemoryQueue) -> None:
        """Consumer loop: pull from this shard's queue and apply in order."""
        failed = False
        while True:
            transaction = queue.consume_message()
            if transaction is None:
                if queue.is_shutdown() and queue.is_empty():
                    break
                continue

            # Keep draining after a failure so the publisher never blocks on a full queue.
            if failed:
                continue

            try:
                shard.apply(transaction)
            except Exception as e:
                logger.error(f"Worker failed on {transaction}: {e}")
                self._record_error(e)
                failed = True

    def _record_error(self, error: BaseException) -> None:
        with self._errors_lock:
            self._errors.append(error)
