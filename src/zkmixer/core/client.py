"""Depositor/withdrawer side of the protocol.

A client keeps its own replicas of both ledgers, rebuilt from the public
event log, and uses them only to produce witnesses. The replicas are never
authoritative: if the mixer's roots moved on since the last sync the
submission is rejected, and the client is expected to ``sync()`` and retry.
"""

import logging
from typing import Optional

from zkmixer.core.accounts import AccountLedger, identity_field
from zkmixer.core.commitment import UNLOCKED, DepositNote, create_note
from zkmixer.core.events import EventLog
from zkmixer.core.ledgers import CommitmentLedger, NullifierLedger
from zkmixer.core.mixer import DepositReceipt, WithdrawalReceipt, ZKMixer
from zkmixer.core.sparse_map import DEFAULT_DEPTH
from zkmixer.models.schemas import EventKind

logger = logging.getLogger(__name__)


def build_commitment_ledger_from_events(events: EventLog, depth: int = DEFAULT_DEPTH) -> CommitmentLedger:
    """Replay every deposit event into a fresh commitment ledger."""
    return CommitmentLedger.from_events(events.fetch_events(EventKind.DEPOSIT), depth=depth)


def build_nullifier_ledger_from_events(events: EventLog, depth: int = DEFAULT_DEPTH) -> NullifierLedger:
    """Replay every withdraw event into a fresh nullifier ledger."""
    return NullifierLedger.from_events(events.fetch_events(EventKind.WITHDRAW), depth=depth)


class MixerClient:
    """Wraps deposit and withdrawal around local ledger replicas."""

    def __init__(self, mixer: ZKMixer, accounts: AccountLedger, events: EventLog):
        self.mixer = mixer
        self.accounts = accounts
        self.events = events
        self.commitments = CommitmentLedger(depth=mixer.tree_depth)
        self.nullifiers = NullifierLedger(depth=mixer.tree_depth)
        self.sync()

    def sync(self) -> None:
        """Rebuild both replicas from the event log."""
        self.commitments = build_commitment_ledger_from_events(self.events, self.mixer.tree_depth)
        self.nullifiers = build_nullifier_ledger_from_events(self.events, self.mixer.tree_depth)
        logger.debug(
            f"Synced replicas: {len(self.commitments)} commitments, "
            f"{len(self.nullifiers)} nullifiers"
        )

    def is_in_sync(self) -> bool:
        """True when both replica roots equal the mixer's roots."""
        return (
            self.commitments.get_root() == self.mixer.commitment_root
            and self.nullifiers.get_root() == self.mixer.nullifier_root
        )

    def deposit(
        self,
        caller: str,
        denomination: int,
        lock_address: Optional[str] = None,
    ) -> DepositNote:
        """
        Create a note and deposit it.

        Args:
            caller: Depositing account; its current nonce goes into the note
            denomination: Tier 1, 2 or 3
            lock_address: If given, only this address may withdraw

        Returns:
            DepositNote: The secret needed to withdraw later
        """
        lock_field = identity_field(lock_address) if lock_address is not None else UNLOCKED
        note = create_note(self.accounts.nonce_of(caller), denomination, lock_field)
        self.deposit_note(caller, note)
        return note

    def deposit_note(self, caller: str, note: DepositNote) -> DepositReceipt:
        """Submit an existing note's commitment."""
        witness = self.commitments.get_witness(note.commitment)
        receipt = self.mixer.deposit(caller, note.commitment, witness, note.denomination)
        self.commitments.record_deposit(note.commitment, note.denomination)
        return receipt

    def withdraw(self, caller: str, note: DepositNote) -> WithdrawalReceipt:
        """Redeem a note to ``caller``."""
        nullifier_hash = note.nullifier_hash
        commitment_witness = self.commitments.get_witness(note.commitment)
        nullifier_witness = self.nullifiers.get_witness(nullifier_hash)

        receipt = self.mixer.withdraw(
            caller,
            note.secret_nullifier,
            nullifier_witness,
            commitment_witness,
            note.sequence_nonce,
            note.denomination,
            note.lock_address_field,
        )
        self.nullifiers.mark_spent(nullifier_hash)
        return receipt
