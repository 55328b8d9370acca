"""
Transaction state transitions.

Every function takes the state it touches as explicit arguments and returns a
ProcessingResult. A rejected transaction leaves all state untouched: new
balances are computed with checked arithmetic before anything is assigned.
Caller is responsible for feeding transactions of one client in input order.
"""
import logging
from typing import Optional, Tuple

from errors import AmountOverflowError, DuplicateTransactionError
from ledger import LedgerEntry, TransactionLedger, TransactionLookup
from models import ClientAccount, ProcessingResult, Transaction, TransactionType
from state import AccountBook, DisputeState, DisputeTracker

logger = logging.getLogger(__name__)


def process_transaction(
    book: AccountBook,
    ledger: TransactionLedger,
    disputes: DisputeTracker,
    transaction: Transaction,
) -> ProcessingResult:
    """Route a transaction to its state transition."""
    match transaction.transaction_type:
        case TransactionType.DEPOSIT:
            return deposit(book, ledger, transaction)
        case TransactionType.WITHDRAWAL:
            return withdrawal(book, transaction)
        case TransactionType.DISPUTE:
            return dispute(book, ledger, disputes, transaction)
        case TransactionType.RESOLVE:
            return resolve(book, ledger, disputes, transaction)
        case TransactionType.CHARGEBACK:
            return chargeback(book, ledger, disputes, transaction)
        case _:
            return ProcessingResult.MALFORMED_RECORD


def deposit(book: AccountBook, ledger: TransactionLedger, transaction: Transaction) -> ProcessingResult:
    account = book.get(transaction.client_id)

    if account is not None and account.locked:
        logger.warning(f"Deposit tx {transaction.transaction_id}: account {transaction.client_id} is locked")
        return ProcessingResult.ACCOUNT_LOCKED

    if transaction.transaction_id in ledger:
        logger.warning(f"Deposit tx {transaction.transaction_id}: transaction id already used")
        return ProcessingResult.DUPLICATE_TX

    if account is not None:
        try:
            account.available + transaction.amount
        except AmountOverflowError:
            logger.warning(f"Deposit tx {transaction.transaction_id}: available balance of client {transaction.client_id} would overflow")
            return ProcessingResult.AMOUNT_OVERFLOW

    try:
        ledger.record_deposit(transaction.transaction_id, transaction.client_id, transaction.amount)
    except DuplicateTransactionError:
        logger.warning(f"Deposit tx {transaction.transaction_id}: transaction id already used")
        return ProcessingResult.DUPLICATE_TX

    book.get_or_create(transaction.client_id).credit(transaction.amount)
    return ProcessingResult.SUCCESS


def withdrawal(book: AccountBook, transaction: Transaction) -> ProcessingResult:
    account = book.get(transaction.client_id)

    if account is None:
        logger.warning(f"Withdrawal tx {transaction.transaction_id}: client {transaction.client_id} has no account")
        return ProcessingResult.UNKNOWN_ACCOUNT

    if account.locked:
        logger.warning(f"Withdrawal tx {transaction.transaction_id}: account {transaction.client_id} is locked")
        return ProcessingResult.ACCOUNT_LOCKED

    if account.available < transaction.amount:
        logger.warning(f"Withdrawal tx {transaction.transaction_id}: insufficient funds ({account.available} < {transaction.amount})")
        return ProcessingResult.INSUFFICIENT_FUNDS

    account.debit(transaction.amount)
    return ProcessingResult.SUCCESS


def _disputed_deposit(
    book: AccountBook,
    ledger: TransactionLookup,
    transaction: Transaction,
) -> Tuple[Optional[ClientAccount], Optional[LedgerEntry], ProcessingResult]:
    """
    Resolve the deposit a dispute, resolve or chargeback refers to.

    The account lock is not checked here: a locked account still settles its
    open disputes.
    """
    label = transaction.transaction_type.value.capitalize()
    original = ledger.lookup(transaction.transaction_id)

    if original is None:
        logger.warning(f"{label} for tx {transaction.transaction_id}: no such deposit")
        return None, None, ProcessingResult.UNKNOWN_TX

    if original.client_id != transaction.client_id:
        logger.warning(f"{label} for tx {transaction.transaction_id}: client mismatch (expected {original.client_id}, got {transaction.client_id})")
        return None, None, ProcessingResult.CLIENT_MISMATCH

    account = book.get(transaction.client_id)
    if account is None:
        logger.warning(f"{label} for tx {transaction.transaction_id}: client {transaction.client_id} has no account")
        return None, None, ProcessingResult.UNKNOWN_ACCOUNT

    return account, original, ProcessingResult.SUCCESS


def dispute(book: AccountBook, ledger: TransactionLookup, disputes: DisputeTracker, transaction: Transaction) -> ProcessingResult:
    account, original, result = _disputed_deposit(book, ledger, transaction)
    if not result.is_success:
        return result

    match disputes.state(transaction.transaction_id):
        case DisputeState.DISPUTED:
            logger.warning(f"Dispute for tx {transaction.transaction_id}: transaction already disputed")
            return ProcessingResult.ALREADY_DISPUTED
        case DisputeState.CHARGED_BACK:
            logger.warning(f"Dispute for tx {transaction.transaction_id}: transaction already charged back")
            return ProcessingResult.ALREADY_CHARGED_BACK

    # Available may go negative when the deposited funds were already withdrawn.
    try:
        account.hold(original.amount)
    except AmountOverflowError:
        logger.warning(f"Dispute for tx {transaction.transaction_id}: balances of client {transaction.client_id} would overflow")
        return ProcessingResult.AMOUNT_OVERFLOW

    disputes.mark_disputed(transaction.transaction_id)
    return ProcessingResult.SUCCESS


def resolve(book: AccountBook, ledger: TransactionLookup, disputes: DisputeTracker, transaction: Transaction) -> ProcessingResult:
    account, original, result = _disputed_deposit(book, ledger, transaction)
    if not result.is_success:
        return result

    if not disputes.is_disputed(transaction.transaction_id):
        logger.warning(f"Resolve for tx {transaction.transaction_id}: transaction is not disputed")
        return ProcessingResult.NOT_DISPUTED

    try:
        account.release_hold(original.amount)
    except AmountOverflowError:
        logger.warning(f"Resolve for tx {transaction.transaction_id}: available balance of client {transaction.client_id} would overflow")
        return ProcessingResult.AMOUNT_OVERFLOW

    disputes.mark_resolved(transaction.transaction_id)
    return ProcessingResult.SUCCESS


def chargeback(book: AccountBook, ledger: TransactionLookup, disputes: DisputeTracker, transaction: Transaction) -> ProcessingResult:
    account, original, result = _disputed_deposit(book, ledger, transaction)
    if not result.is_success:
        return result

    if not disputes.is_disputed(transaction.transaction_id):
        logger.warning(f"Chargeback for tx {transaction.transaction_id}: transaction is not disputed")
        return ProcessingResult.NOT_DISPUTED

    account.remove_held(original.amount)
    account.lock()
    disputes.mark_charged_back(transaction.transaction_id)
    return ProcessingResult.SUCCESS
