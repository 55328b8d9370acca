import threading
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from amount import Amount
from errors import DuplicateTransactionError


@dataclass(frozen=True)
class LedgerEntry:
    transaction_id: int
    client_id: int
    amount: Amount


class TransactionLookup(Protocol):
    """Anything that can recover the owner and amount of a past deposit."""

    def lookup(self, transaction_id: int) -> Optional[LedgerEntry]:
        ...


class TransactionLedger:
    """
    In-memory store of applied deposits, keyed by transaction id.
    Entries are write-once. Safe to share between shard workers.
    """

    def __init__(self):
        self._entries: Dict[int, LedgerEntry] = {}
        self._lock = threading.Lock()

    def record_deposit(self, transaction_id: int, client_id: int, amount: Amount) -> LedgerEntry:
        """Store a deposit for future dispute lookups. Raises DuplicateTransactionError on reuse."""
        entry = LedgerEntry(transaction_id=transaction_id, client_id=client_id, amount=amount)
        with self._lock:
            if transaction_id in self._entries:
                raise DuplicateTransactionError(transaction_id)
            self._entries[transaction_id] = entry
        return entry

    def lookup(self, transaction_id: int) -> Optional[LedgerEntry]:
        with self._lock:
            return self._entries.get(transaction_id)

    def __contains__(self, transaction_id: int) -> bool:
        with self._lock:
            return transaction_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
