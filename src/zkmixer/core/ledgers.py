"""Commitment and nullifier ledgers built on the sparse Merkle map."""

import logging
from typing import FrozenSet, Iterable

from zkmixer.core.denomination import NOT_DEPOSITED, validate_denomination
from zkmixer.core.sparse_map import DEFAULT_DEPTH, SparseMerkleMap
from zkmixer.exceptions import InvalidLedgerValueError
from zkmixer.models.schemas import DepositEvent, WithdrawEvent

logger = logging.getLogger(__name__)

UNSPENT = 0
SPENT = 1


class _Ledger(SparseMerkleMap):
    """Sparse map restricted to a closed set of values."""

    ALLOWED_VALUES: FrozenSet[int] = frozenset()

    def set(self, key: int, value: int) -> bytes:
        if isinstance(value, bool) or value not in self.ALLOWED_VALUES:
            raise InvalidLedgerValueError(
                f"{type(self).__name__} cannot hold value {value!r}"
            )
        return super().set(key, int(value))


class CommitmentLedger(_Ledger):
    """
    Map of commitment -> denomination tag.

    0 means never deposited; 1, 2 or 3 is the tier the commitment was
    deposited at. Entries only ever move from 0 to a tier.
    """

    ALLOWED_VALUES = frozenset({NOT_DEPOSITED, 1, 2, 3})

    def record_deposit(self, commitment: int, denomination: int) -> bytes:
        """Record a deposit in this replica and return the new root."""
        tier = validate_denomination(denomination)
        return self.set(commitment, int(tier))

    def denomination_of(self, commitment: int) -> int:
        return self.get(commitment)

    @classmethod
    def from_events(cls, events: Iterable[DepositEvent], depth: int = DEFAULT_DEPTH) -> "CommitmentLedger":
        """Rebuild a replica by replaying deposit events in order."""
        ledger = cls(depth=depth)
        count = 0
        for event in events:
            ledger.record_deposit(event.commitment, event.denomination)
            count += 1
        logger.debug(f"Rebuilt commitment ledger from {count} deposit events")
        return ledger


class NullifierLedger(_Ledger):
    """
    Map of nullifier hash -> spent flag.

    A key set to 1 is spent for good; nothing resets it.
    """

    ALLOWED_VALUES = frozenset({UNSPENT, SPENT})

    def mark_spent(self, nullifier_hash: int) -> bytes:
        """Mark a nullifier hash spent in this replica and return the new root."""
        return self.set(nullifier_hash, SPENT)

    def is_spent(self, nullifier_hash: int) -> bool:
        return self.get(nullifier_hash) == SPENT

    @classmethod
    def from_events(cls, events: Iterable[WithdrawEvent], depth: int = DEFAULT_DEPTH) -> "NullifierLedger":
        """Rebuild a replica by replaying withdraw events in order."""
        ledger = cls(depth=depth)
        count = 0
        for event in events:
            ledger.mark_spent(event.nullifier_hash)
            count += 1
        logger.debug(f"Rebuilt nullifier ledger from {count} withdraw events")
        return ledger
