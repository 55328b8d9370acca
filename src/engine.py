from typing import Iterable, List, Optional

from ledger import TransactionLedger
from models import AccountSnapshot, ProcessingResult, ProcessingStats, Transaction
from processor import process_transaction
from state import AccountBook, DisputeTracker


class Engine:
    """
    Applies a single ordered stream of transactions.

    Owns the account book and dispute tracker. The ledger can be injected so
    that several engines (one per client shard) share deposit history.
    """

    def __init__(self, ledger: Optional[TransactionLedger] = None):
        self.book = AccountBook()
        self.disputes = DisputeTracker()
        self.ledger = ledger if ledger is not None else TransactionLedger()
        self.stats = ProcessingStats()

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """Apply one transaction. Business rejections are returned, never raised."""
        result = process_transaction(self.book, self.ledger, self.disputes, transaction)
        self.stats.record(result)
        return result

    def apply_all(self, transactions: Iterable[Transaction]) -> ProcessingStats:
        for transaction in transactions:
            self.apply(transaction)
        return self.stats

    def render(self) -> List[AccountSnapshot]:
        return self.book.render()
