from enum import Enum
from typing import Dict, List, Optional

from models import AccountSnapshot, ClientAccount


class AccountBook:
    """
    Client accounts keyed by client id, created lazily on first deposit.
    A book is owned by exactly one worker; shards are merged after processing.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}

    def get(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def get_or_create(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts keyed by client id."""
        return dict(self._accounts)

    def merge(self, other: "AccountBook") -> None:
        """Adopt the accounts of a disjoint shard."""
        overlap = self._accounts.keys() & other._accounts.keys()
        if overlap:
            raise ValueError(f"Cannot merge account books sharing clients {sorted(overlap)}")
        self._accounts.update(other._accounts)

    def render(self) -> List[AccountSnapshot]:
        """Snapshots of every account, ordered by ascending client id."""
        return [self._accounts[client_id].snapshot() for client_id in sorted(self._accounts)]

    def __contains__(self, client_id: int) -> bool:
        return client_id in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)


class DisputeState(Enum):
    NOT_DISPUTED = "not_disputed"
    DISPUTED = "disputed"
    CHARGED_BACK = "charged_back"


class DisputeTracker:
    """
    Dispute status per transaction id.

    Only transactions that have been disputed at least once are stored;
    everything else reads as NOT_DISPUTED. CHARGED_BACK is terminal.
    """

    def __init__(self):
        self._states: Dict[int, DisputeState] = {}

    def state(self, transaction_id: int) -> DisputeState:
        return self._states.get(transaction_id, DisputeState.NOT_DISPUTED)

    def is_disputed(self, transaction_id: int) -> bool:
        return self.state(transaction_id) is DisputeState.DISPUTED

    def mark_disputed(self, transaction_id: int) -> None:
        if self.state(transaction_id) is not DisputeState.NOT_DISPUTED:
            raise ValueError(f"Transaction {transaction_id} cannot be disputed from {self.state(transaction_id).value}")
        self._states[transaction_id] = DisputeState.DISPUTED

    def mark_resolved(self, transaction_id: int) -> None:
        self._require_disputed(transaction_id)
        del self._states[transaction_id]

    def mark_charged_back(self, transaction_id: int) -> None:
        self._require_disputed(transaction_id)
        self._states[transaction_id] = DisputeState.CHARGED_BACK

    def _require_disputed(self, transaction_id: int) -> None:
        if not self.is_disputed(transaction_id):
            raise ValueError(f"Transaction {transaction_id} is not under dispute")
