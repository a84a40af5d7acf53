"""Core Mixer: the commitment/nullifier state machine.

The mixer holds exactly two digests: the root of the commitment ledger and
the root of the nullifier ledger. It never stores the ledgers themselves.
Callers bring witnesses computed from their own replicas, and every check
reduces to "does this witness reproduce the root I hold?".

Transaction Flow:

    DEPOSIT:
        1. Denomination must be tier 1, 2 or 3
        2. Witness proves commitment -> 0 under the held commitment root
        3. Tier amount moves from caller to pool
        4. Commitment root becomes the root for commitment -> tier, recorded
           together with DepositEvent(commitment, tier)

    WITHDRAW:
        1. Denomination must be tier 1, 2 or 3
        2. A non-zero lock address must equal the caller's identity field
        3. Witness proves H(nullifier) -> 0 under the held nullifier root
        4. commitment = H(nonce, nullifier, tier, lock) is recomputed
        5. Witness proves commitment -> tier under the held commitment root
        6. Tier amount moves from pool to caller
        7. Nullifier root becomes the root for H(nullifier) -> 1, recorded
           together with WithdrawEvent(H(nullifier))

Key Invariants:
    - A commitment can be deposited once; a nullifier hash spent once
    - Withdrawal denomination and lock address are bound by the commitment
    - A rejected transition changes neither root
    - New roots and their event are recorded together or not at all; if
      recording fails after funds moved, the funds are moved back
    - Transitions are serialized; each validates against one root snapshot
"""

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Optional, Protocol, Sequence

from pydantic import BaseModel

from zkmixer.core.accounts import AccountLedger, TransferResult, identity_field
from zkmixer.core.commitment import UNLOCKED, compute_commitment, hash_nullifier
from zkmixer.core.denomination import NOT_DEPOSITED, tier_amount, validate_denomination, validate_tier_amounts
from zkmixer.core.events import EventLog
from zkmixer.core.ledgers import SPENT, UNSPENT
from zkmixer.core.sparse_map import DEFAULT_DEPTH, MapWitness, compute_root_for_value, default_digests
from zkmixer.exceptions import (
    CommitmentAlreadyDepositedError,
    CommitmentNotFoundError,
    InsufficientFundsError,
    InvalidWitnessError,
    NullifierAlreadySpentError,
    RecipientMismatchError,
    TransitionRejectedError,
    WitnessMismatchError,
)
from zkmixer.models.schemas import (
    DepositEvent,
    EventKind,
    MixerStateResponse,
    MixerStatistics,
    WithdrawEvent,
)
from zkmixer.utils.encoding import bytes_to_hex
from zkmixer.utils.hash import FIELD_BITS

logger = logging.getLogger(__name__)

MIN_TREE_DEPTH = FIELD_BITS
MAX_TREE_DEPTH = DEFAULT_DEPTH

DEPOSIT_WITNESS_ERROR_MSG = "already deposited commitment"
WITHDRAW_SPENT_ERROR_MSG = "already withdrawn commitment"
WITHDRAW_INVALID_NULLIFIER_ERROR_MSG = "invalid nullifier"
WITHDRAW_INVALID_COMMITMENT_ERROR_MSG = "commitment not found"
RECIPIENT_MISMATCH_ERROR_MSG = "recipient mismatch"


@dataclass(frozen=True)
class MixerState:
    """The durable state of the mixer: two ledger roots."""

    commitment_root: bytes
    nullifier_root: bytes
    tree_depth: int = DEFAULT_DEPTH

    @classmethod
    def initial(cls, tree_depth: int = DEFAULT_DEPTH) -> "MixerState":
        """State built from two empty ledgers."""
        empty_root = default_digests(tree_depth)[-1]
        return cls(commitment_root=empty_root, nullifier_root=empty_root, tree_depth=tree_depth)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "commitment_root": bytes_to_hex(self.commitment_root),
            "nullifier_root": bytes_to_hex(self.nullifier_root),
            "tree_depth": self.tree_depth,
        }

    def to_response(self) -> MixerStateResponse:
        return MixerStateResponse(**self.to_dict())


class StateStore(Protocol):
    """
    Durable home for the two roots.

    A store is also the event journal: ``save_transition`` writes the new
    roots and the event that explains them in one atomic step, so replaying
    the journal always reproduces the stored roots.
    """

    def load(self) -> Optional[MixerState]:
        ...

    def save(self, state: MixerState) -> None:
        ...

    def save_transition(self, state: MixerState, kind: EventKind, payload: BaseModel) -> None:
        ...


class DepositReceipt:
    """Receipt for a successful deposit."""

    def __init__(
        self,
        transaction_hash: str,
        commitment: int,
        denomination: int,
        amount: int,
        commitment_root: bytes,
        timestamp: datetime,
    ):
        self.transaction_hash = transaction_hash
        self.commitment = commitment
        self.denomination = denomination
        self.amount = amount
        self.commitment_root = commitment_root
        self.timestamp = timestamp

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "transaction_hash": self.transaction_hash,
            "commitment": str(self.commitment),
            "denomination": self.denomination,
            "amount": self.amount,
            "commitment_root": bytes_to_hex(self.commitment_root),
            "timestamp": self.timestamp.isoformat(),
        }


class WithdrawalReceipt:
    """Receipt for a successful withdrawal."""

    def __init__(
        self,
        transaction_hash: str,
        nullifier_hash: int,
        recipient: str,
        amount: int,
        nullifier_root: bytes,
        timestamp: datetime,
    ):
        self.transaction_hash = transaction_hash
        self.nullifier_hash = nullifier_hash
        self.recipient = recipient
        self.amount = amount
        self.nullifier_root = nullifier_root
        self.timestamp = timestamp

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "transaction_hash": self.transaction_hash,
            "nullifier_hash": str(self.nullifier_hash),
            "recipient": self.recipient,
            "amount": self.amount,
            "nullifier_root": bytes_to_hex(self.nullifier_root),
            "timestamp": self.timestamp.isoformat(),
        }


def _root_for(witness: MapWitness, key: int, value: int, depth: int) -> bytes:
    """Witness root computation with malformed witnesses reported as mismatches."""
    if not isinstance(witness, MapWitness):
        raise WitnessMismatchError("witness must be a MapWitness")
    if witness.depth != depth:
        raise WitnessMismatchError(
            f"witness depth {witness.depth} does not match tree depth {depth}"
        )
    try:
        return compute_root_for_value(witness, key, value)
    except (InvalidWitnessError, ValueError) as e:
        raise WitnessMismatchError(f"unusable witness: {e}") from e


class ZKMixer:
    """
    Pooled fixed-denomination mixer.

    Owns the commitment and nullifier roots. Funds are custodied by the
    ``accounts`` collaborator under ``pool_address``.
    """

    def __init__(
        self,
        accounts: AccountLedger,
        events: EventLog,
        pool_address: str = "zkmixer-pool",
        tree_depth: int = DEFAULT_DEPTH,
        tier_amounts: Optional[Sequence[int]] = None,
        state_store: Optional[StateStore] = None,
    ):
        """
        Initialize mixer state.

        If ``state_store`` already holds roots they are restored; otherwise
        the mixer starts from two empty ledgers and persists that state.

        Args:
            accounts: Balance transfer collaborator
            events: Event log collaborator
            pool_address: Account that holds pooled funds
            tree_depth: Depth of both sparse maps (255 or 256)
            tier_amounts: Optional override of the three tier amounts
            state_store: Optional durable storage for the roots. When given,
                events are journaled by the store together with the roots,
                and ``events`` must read that same journal (``SQLEventLog``
                over the store's database)

        Raises:
            ValueError: If the depth cannot address every field element, or
                differs from the persisted depth
        """
        if isinstance(tree_depth, bool) or not isinstance(tree_depth, int):
            raise ValueError("Tree depth must be an integer")
        if not MIN_TREE_DEPTH <= tree_depth <= MAX_TREE_DEPTH:
            raise ValueError(
                f"Tree depth must be between {MIN_TREE_DEPTH} and {MAX_TREE_DEPTH}, "
                f"got {tree_depth}"
            )

        self.accounts = accounts
        self.events = events
        self.pool_address = pool_address
        self.tier_amounts = validate_tier_amounts(tier_amounts) if tier_amounts is not None else None
        self.state_store = state_store
        self._lock = threading.Lock()

        state = state_store.load() if state_store is not None else None
        if state is None:
            state = MixerState.initial(tree_depth)
            if state_store is not None:
                state_store.save(state)
        elif state.tree_depth != tree_depth:
            raise ValueError(
                f"Persisted tree depth {state.tree_depth} does not match configured {tree_depth}"
            )
        self._state = state
        self.tree_depth = tree_depth

        self.transactions: Dict[str, dict] = {}
        self.total_deposits = 0
        self.total_withdrawals = 0
        self.rejected_transitions = 0
        self.deposited_volume = 0
        self.withdrawn_volume = 0
        self.last_rejection: Optional[str] = None
        self.start_time = datetime.now()

    @classmethod
    def from_settings(cls, settings, accounts: AccountLedger, events: EventLog,
                      state_store: Optional[StateStore] = None) -> "ZKMixer":
        """Build a mixer from :class:`zkmixer.config.MixerSettings`."""
        return cls(
            accounts=accounts,
            events=events,
            pool_address=settings.pool_address,
            tree_depth=settings.tree_depth,
            tier_amounts=settings.tier_amounts,
            state_store=state_store,
        )

    @property
    def state(self) -> MixerState:
        return self._state

    @property
    def commitment_root(self) -> bytes:
        return self._state.commitment_root

    @property
    def nullifier_root(self) -> bytes:
        return self._state.nullifier_root

    def get_state(self) -> MixerState:
        """Return current mixer state."""
        return self._state

    def tier_amount(self, denomination: int) -> int:
        return tier_amount(denomination, self.tier_amounts)

    def _commit(self, state: MixerState, kind: EventKind, payload: BaseModel) -> None:
        """Record the new roots with their event, then adopt the roots."""
        if self.state_store is not None:
            self.state_store.save_transition(state, kind, payload)
        else:
            self.events.emit(kind, payload)
        self._state = state

    def _refund(self, from_address: str, to_address: str, amount: int, operation: str) -> None:
        logger.error(f"{operation.capitalize()} could not be recorded; returning {amount} to {to_address}")
        if self.accounts.transfer(from_address, to_address, amount) is not TransferResult.SUCCESS:
            logger.critical(f"Refund of {amount} from {from_address} to {to_address} failed")

    def _reject(self, error: TransitionRejectedError, operation: str) -> None:
        self.rejected_transitions += 1
        self.last_rejection = f"{operation}: {error}"
        logger.warning(f"{operation.capitalize()} rejected: {type(error).__name__}: {error}")

    def deposit(
        self,
        caller: str,
        commitment: int,
        witness: MapWitness,
        denomination: int,
    ) -> DepositReceipt:
        """
        Deposit one tier amount under a fresh commitment.

        Args:
            caller: Depositing account
            commitment: Public commitment of the note
            witness: Commitment ledger witness for ``commitment``
            denomination: Tier 1, 2 or 3

        Returns:
            DepositReceipt: Commitment, amount and new commitment root

        Raises:
            InvalidDenominationError: If denomination is not a legal tier
            WitnessMismatchError: If the witness is malformed
            CommitmentAlreadyDepositedError: If the witness is for another key,
                stale, or shows the commitment already present
            InsufficientFundsError: If caller cannot pay the tier amount
            StorageError: If the store cannot record the transition; the
                tier amount is returned to the caller
        """
        try:
            tier = validate_denomination(denomination)
            amount = self.tier_amount(tier)

            with self._lock:
                snapshot = self._state

                root_before = _root_for(witness, commitment, NOT_DEPOSITED, snapshot.tree_depth)
                if witness.key != commitment or root_before != snapshot.commitment_root:
                    raise CommitmentAlreadyDepositedError(DEPOSIT_WITNESS_ERROR_MSG)

                root_after = _root_for(witness, commitment, int(tier), snapshot.tree_depth)

                result = self.accounts.transfer(caller, self.pool_address, amount)
                if result is not TransferResult.SUCCESS:
                    raise InsufficientFundsError(
                        f"{caller} cannot deposit {amount} ({result.value})"
                    )

                event = DepositEvent(commitment=commitment, denomination=int(tier))
                try:
                    self._commit(replace(snapshot, commitment_root=root_after), EventKind.DEPOSIT, event)
                except Exception:
                    self._refund(self.pool_address, caller, amount, "deposit")
                    raise

                transaction_hash = "deposit_" + str(uuid.uuid4())
                self.transactions[transaction_hash] = {
                    "type": "deposit",
                    "commitment": str(commitment),
                    "denomination": int(tier),
                    "amount": amount,
                    "status": "confirmed",
                    "timestamp": datetime.now(),
                }
                self.total_deposits += 1
                self.deposited_volume += amount

        except TransitionRejectedError as e:
            self._reject(e, "deposit")
            raise

        logger.info(
            f"Deposit {transaction_hash}: tier {int(tier)} ({amount}), "
            f"commitment root {root_after.hex()[:16]}..."
        )
        return DepositReceipt(
            transaction_hash=transaction_hash,
            commitment=commitment,
            denomination=int(tier),
            amount=amount,
            commitment_root=root_after,
            timestamp=datetime.now(),
        )

    def withdraw(
        self,
        caller: str,
        secret_nullifier: int,
        nullifier_witness: MapWitness,
        commitment_witness: MapWitness,
        sequence_nonce: int,
        denomination: int,
        lock_address_field: int = UNLOCKED,
    ) -> WithdrawalReceipt:
        """
        Redeem a note and pay its tier amount to the caller.

        Args:
            caller: Withdrawing account; receives the funds
            secret_nullifier: Note secret
            nullifier_witness: Nullifier ledger witness for H(secret_nullifier)
            commitment_witness: Commitment ledger witness for the note commitment
            sequence_nonce: Depositor nonce captured in the note
            denomination: Tier claimed by the note
            lock_address_field: Lock address in the note, 0 if unlocked

        Returns:
            WithdrawalReceipt: Nullifier hash, amount and new nullifier root

        Raises:
            InvalidDenominationError: If denomination is not a legal tier
            RecipientMismatchError: If the note is locked to someone else
            NullifierAlreadySpentError: If the nullifier witness is for another
                key, stale, or shows the nullifier hash spent
            CommitmentNotFoundError: If the commitment witness is for another
                key, stale, or shows the recomputed commitment absent
            WitnessMismatchError: If a witness is malformed
            InsufficientFundsError: If the pool cannot pay
            StorageError: If the store cannot record the transition; the
                payout is returned to the pool
        """
        try:
            tier = validate_denomination(denomination)
            amount = self.tier_amount(tier)

            if lock_address_field != UNLOCKED and lock_address_field != identity_field(caller):
                raise RecipientMismatchError(RECIPIENT_MISMATCH_ERROR_MSG)

            nullifier_hash = hash_nullifier(secret_nullifier)
            expected_commitment = compute_commitment(
                sequence_nonce, secret_nullifier, tier, lock_address_field
            )

            with self._lock:
                snapshot = self._state

                root_unspent = _root_for(nullifier_witness, nullifier_hash, UNSPENT, snapshot.tree_depth)
                if nullifier_witness.key != nullifier_hash:
                    raise NullifierAlreadySpentError(WITHDRAW_INVALID_NULLIFIER_ERROR_MSG)
                if root_unspent != snapshot.nullifier_root:
                    raise NullifierAlreadySpentError(WITHDRAW_SPENT_ERROR_MSG)

                root_deposited = _root_for(
                    commitment_witness, expected_commitment, int(tier), snapshot.tree_depth
                )
                if commitment_witness.key != expected_commitment or root_deposited != snapshot.commitment_root:
                    raise CommitmentNotFoundError(WITHDRAW_INVALID_COMMITMENT_ERROR_MSG)

                root_after = _root_for(nullifier_witness, nullifier_hash, SPENT, snapshot.tree_depth)

                result = self.accounts.transfer(self.pool_address, caller, amount)
                if result is not TransferResult.SUCCESS:
                    raise InsufficientFundsError(f"pool cannot pay {amount} ({result.value})")

                event = WithdrawEvent(nullifier_hash=nullifier_hash)
                try:
                    self._commit(replace(snapshot, nullifier_root=root_after), EventKind.WITHDRAW, event)
                except Exception:
                    self._refund(caller, self.pool_address, amount, "withdraw")
                    raise

                transaction_hash = "withdrawal_" + str(uuid.uuid4())
                self.transactions[transaction_hash] = {
                    "type": "withdrawal",
                    "nullifier_hash": str(nullifier_hash),
                    "denomination": int(tier),
                    "amount": amount,
                    "status": "confirmed",
                    "timestamp": datetime.now(),
                }
                self.total_withdrawals += 1
                self.withdrawn_volume += amount

        except TransitionRejectedError as e:
            self._reject(e, "withdraw")
            raise

        logger.info(
            f"Withdrawal {transaction_hash}: tier {int(tier)} ({amount}), "
            f"nullifier root {root_after.hex()[:16]}..."
        )
        return WithdrawalReceipt(
            transaction_hash=transaction_hash,
            nullifier_hash=nullifier_hash,
            recipient=caller,
            amount=amount,
            nullifier_root=root_after,
            timestamp=datetime.now(),
        )

    def get_transaction(self, transaction_hash: str) -> Optional[dict]:
        """Get transaction details."""
        return self.transactions.get(transaction_hash)

    def get_statistics(self) -> MixerStatistics:
        """Get mixer statistics."""
        uptime = (datetime.now() - self.start_time).total_seconds() / 3600
        return MixerStatistics(
            total_deposits=self.total_deposits,
            total_withdrawals=self.total_withdrawals,
            rejected_transitions=self.rejected_transitions,
            pool_balance=self.accounts.balance_of(self.pool_address),
            deposited_volume=self.deposited_volume,
            withdrawn_volume=self.withdrawn_volume,
            uptime_hours=uptime,
            last_rejection=self.last_rejection,
        )

    def __repr__(self) -> str:
        return (
            f"ZKMixer(depth={self.tree_depth}, "
            f"commitment_root={self.commitment_root.hex()[:16]}..., "
            f"nullifier_root={self.nullifier_root.hex()[:16]}...)"
        )
