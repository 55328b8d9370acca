import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from amount import Amount
from errors import AmountOverflowError, MalformedRecordError

MAX_CLIENT_ID = 2 ** 16 - 1
MAX_TRANSACTION_ID = 2 ** 32 - 1


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class ProcessingResult(Enum):
    SUCCESS = "success"
    MALFORMED_RECORD = "malformed_record"
    DUPLICATE_TX = "duplicate_tx"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNKNOWN_ACCOUNT = "unknown_account"
    UNKNOWN_TX = "unknown_tx"
    CLIENT_MISMATCH = "client_mismatch"
    ALREADY_DISPUTED = "already_disputed"
    ALREADY_CHARGED_BACK = "already_charged_back"
    NOT_DISPUTED = "not_disputed"
    ACCOUNT_LOCKED = "account_locked"
    AMOUNT_OVERFLOW = "amount_overflow"

    @property
    def is_success(self) -> bool:
        return self is ProcessingResult.SUCCESS


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Amount] = None

    def __post_init__(self):
        if self.transaction_type.carries_amount != (self.amount is not None):
            raise MalformedRecordError(
                f"{self.transaction_type.value} {'requires' if self.transaction_type.carries_amount else 'forbids'} an amount"
            )

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


def _parse_id(name: str, text: str, upper: int, fields: Dict[str, Optional[str]]) -> int:
    stripped = text.strip()
    if not (stripped.isascii() and stripped.isdigit()):
        raise MalformedRecordError(f"{name} {text!r} is not a non-negative integer", fields)
    value = int(stripped)
    if value > upper:
        raise MalformedRecordError(f"{name} {value} outside 0..{upper}", fields)
    return value


def parse_transaction(type_token: str, client: str, tx: str, amount_text: Optional[str] = None) -> Transaction:
    """
    Validate raw text fields and build a Transaction.

    Raises MalformedRecordError for unknown types, bad ids, or an amount that is
    missing, forbidden, unparseable or not strictly positive.
    """
    fields = {"type": type_token, "client": client, "tx": tx, "amount": amount_text}

    try:
        transaction_type = TransactionType(type_token.strip().lower())
    except ValueError:
        raise MalformedRecordError(f"unknown transaction type {type_token!r}", fields) from None

    client_id = _parse_id("client", client, MAX_CLIENT_ID, fields)
    transaction_id = _parse_id("tx", tx, MAX_TRANSACTION_ID, fields)

    amount = None
    if amount_text is not None and amount_text.strip():
        if not transaction_type.carries_amount:
            raise MalformedRecordError(f"{transaction_type.value} must not carry an amount", fields)
        try:
            amount = Amount.parse(amount_text)
        except AmountOverflowError as e:
            raise MalformedRecordError(f"amount {amount_text.strip()!r} out of range", fields) from e
        except ValueError as e:
            raise MalformedRecordError(str(e), fields) from None
        if not amount.is_positive():
            raise MalformedRecordError(f"amount {amount} must be positive", fields)
    elif transaction_type.carries_amount:
        raise MalformedRecordError(f"{transaction_type.value} requires an amount", fields)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


@dataclass
class ClientAccount:
    """
    Mutable per-client balances. Each mutator computes every new balance
    before assigning any, so an AmountOverflowError leaves the account as it was.
    """

    client_id: int
    available: Amount = Amount.ZERO
    held: Amount = Amount.ZERO
    locked: bool = False

    @property
    def total(self) -> Amount:
        return self.available + self.held

    def credit(self, amount: Amount) -> None:
        self.available = self.available + amount

    def debit(self, amount: Amount) -> None:
        self.available = self.available - amount

    def hold(self, amount: Amount) -> None:
        available = self.available - amount
        held = self.held + amount
        self.available, self.held = available, held

    def release_hold(self, amount: Amount) -> None:
        held = self.held - amount
        available = self.available + amount
        self.available, self.held = available, held

    def remove_held(self, amount: Amount) -> None:
        self.held = self.held - amount

    def lock(self) -> None:
        self.locked = True

    def snapshot(self) -> "AccountSnapshot":
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Amount
    held: Amount
    total: Amount
    locked: bool


class ProcessingStats:
    """Thread-safe counters for tracking processing statistics."""

    def __init__(self):
        self._lock = threading.Lock()
        self.processed = 0
        self.failed = 0
        self._failures: Dict[ProcessingResult, int] = {}

    def record(self, result: ProcessingResult) -> None:
        with self._lock:
            if result.is_success:
                self.processed += 1
            else:
                self.failed += 1
                self._failures[result] = self._failures.get(result, 0) + 1

    def merge(self, other: "ProcessingStats") -> None:
        with self._lock:
            self.processed += other.processed
            self.failed += other.failed
            for result, count in other.failures().items():
                self._failures[result] = self._failures.get(result, 0) + count

    def failures(self) -> Dict[ProcessingResult, int]:
        """Failure counts by result."""
        with self._lock:
            return dict(self._failures)
