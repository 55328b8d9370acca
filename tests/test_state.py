import sys
import os
import threading

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from amount import Amount
from errors import DuplicateTransactionError
from ledger import LedgerEntry, TransactionLedger
from state import AccountBook, DisputeState, DisputeTracker


class TestAccountBook:
    def test_get_or_create_is_lazy_and_stable(self):
        book = AccountBook()
        assert book.get(1) is None
        account = book.get_or_create(1)
        assert book.get_or_create(1) is account
        assert 1 in book
        assert len(book) == 1

    def test_render_sorted_by_client(self):
        book = AccountBook()
        for client_id in (5, 1, 3):
            book.get_or_create(client_id).credit(Amount.parse(str(client_id)))

        snapshots = book.render()
        assert [s.client_id for s in snapshots] == [1, 3, 5]
        assert snapshots[2].available == Amount.parse("5")

    def test_merge_disjoint_books(self):
        first, second = AccountBook(), AccountBook()
        first.get_or_create(1)
        second.get_or_create(2)
        first.merge(second)
        assert sorted(first.accounts()) == [1, 2]

    def test_merge_overlapping_books_fails(self):
        first, second = AccountBook(), AccountBook()
        first.get_or_create(1)
        second.get_or_create(1)
        with pytest.raises(ValueError):
            first.merge(second)


class TestDisputeTracker:
    def test_unknown_transaction_is_not_disputed(self):
        assert DisputeTracker().state(7) == DisputeState.NOT_DISPUTED

    def test_dispute_resolve_cycle(self):
        tracker = DisputeTracker()
        tracker.mark_disputed(1)
        assert tracker.is_disputed(1)
        tracker.mark_resolved(1)
        assert tracker.state(1) == DisputeState.NOT_DISPUTED
        tracker.mark_disputed(1)
        assert tracker.is_disputed(1)

    def test_chargeback_is_terminal(self):
        tracker = DisputeTracker()
        tracker.mark_disputed(1)
        tracker.mark_charged_back(1)
        assert tracker.state(1) == DisputeState.CHARGED_BACK
        with pytest.raises(ValueError):
            tracker.mark_disputed(1)
        with pytest.raises(ValueError):
            tracker.mark_resolved(1)

    def test_resolve_requires_dispute(self):
        with pytest.raises(ValueError):
            DisputeTracker().mark_resolved(1)


class TestTransactionLedger:
    def test_record_and_lookup(self):
        ledger = TransactionLedger()
        entry = ledger.record_deposit(1, 2, Amount.parse("3"))
        assert entry == LedgerEntry(transaction_id=1, client_id=2, amount=Amount.parse("3"))
        assert ledger.lookup(1) == entry
        assert 1 in ledger
        assert len(ledger) == 1

    def test_lookup_unknown_returns_none(self):
        assert TransactionLedger().lookup(1) is None

    def test_duplicate_rejected_without_overwrite(self):
        ledger = TransactionLedger()
        ledger.record_deposit(1, 2, Amount.parse("3"))
        with pytest.raises(DuplicateTransactionError) as excinfo:
            ledger.record_deposit(1, 9, Amount.parse("4"))
        assert excinfo.value.transaction_id == 1
        assert ledger.lookup(1).client_id == 2

    def test_concurrent_duplicates_have_one_winner(self):
        ledger = TransactionLedger()
        winners = []

        def record(client_id):
            try:
                ledger.record_deposit(1, client_id, Amount.parse("1"))
                winners.append(client_id)
            except DuplicateTransactionError:
                pass

        threads = [threading.Thread(target=record, args=(client_id,)) for client_id in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(winners) == 1
        assert ledger.lookup(1).client_id == winners[0]
