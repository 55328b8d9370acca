from typing import Any, Dict, Optional


class PaymentsError(Exception):
    """Base exception for payments engine failures."""

    def __init__(self, message: str, code: str = "PAYMENTS_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class SourceError(PaymentsError):
    """
    The transaction source could not be started (unreadable file, bad header).
    Fatal: the caller aborts the run instead of skipping a record.
    """

    def __init__(self, source: str, reason: str):
        super().__init__(
            f"Cannot read transactions from {source}: {reason}",
            code="SOURCE_UNAVAILABLE",
            details={"source": source, "reason": reason},
        )


class MalformedRecordError(PaymentsError, ValueError):
    """A single input row could not be turned into a Transaction."""

    def __init__(self, reason: str, fields: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Malformed record: {reason}",
            code="MALFORMED_RECORD",
            details={"reason": reason, "fields": fields or {}},
        )
        self.reason = reason


class AmountOverflowError(PaymentsError, ArithmeticError):
    """Fixed-precision amount left its representable range."""

    def __init__(self, units: int):
        super().__init__(
            f"Amount of {units} ten-thousandths is out of range",
            code="AMOUNT_OVERFLOW",
            details={"units": units},
        )


class DuplicateTransactionError(PaymentsError):
    """A deposit reused a transaction id that is already in the ledger."""

    def __init__(self, transaction_id: int):
        super().__init__(
            f"Transaction {transaction_id} already recorded",
            code="DUPLICATE_TX",
            details={"transaction_id": transaction_id},
        )
        self.transaction_id = transaction_id
