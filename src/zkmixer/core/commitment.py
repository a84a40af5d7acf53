"""Commitment and nullifier derivation for deposit notes."""

import secrets
from dataclasses import dataclass, field

from zkmixer.core.denomination import validate_denomination
from zkmixer.exceptions import InvalidCommitmentError, InvalidNullifierError
from zkmixer.utils.hash import (
    COMMITMENT_DOMAIN,
    FIELD_MODULUS,
    NULLIFIER_DOMAIN,
    hash_fields,
)

MAX_SEQUENCE_NONCE = 2**32 - 1
UNLOCKED = 0


def _is_field(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < FIELD_MODULUS


def generate_nullifier() -> int:
    """
    Generate a uniformly random secret nullifier.

    Returns:
        int: Non-zero field element
    """
    while True:
        candidate = secrets.randbelow(FIELD_MODULUS)
        if candidate != 0:
            return candidate


def hash_nullifier(secret_nullifier: int) -> int:
    """
    Compute the public nullifier hash H(nullifier).

    The hash is the key recorded as spent in the nullifier ledger.

    Raises:
        InvalidNullifierError: If input is not a field element
    """
    if not _is_field(secret_nullifier):
        raise InvalidNullifierError("Nullifier must be a field element")
    return hash_fields(secret_nullifier, domain=NULLIFIER_DOMAIN)


def compute_commitment(
    sequence_nonce: int,
    secret_nullifier: int,
    denomination: int,
    lock_address_field: int = UNLOCKED,
) -> int:
    """
    Compute commitment = H(nonce, nullifier, denomination, lock address).

    Args:
        sequence_nonce: Depositor's account nonce at deposit time (uint32)
        secret_nullifier: Random field element
        denomination: Tier 1, 2 or 3
        lock_address_field: Recipient identity field, or 0 when unlocked

    Returns:
        int: Commitment field element

    Raises:
        InvalidCommitmentError: If any input is out of range
        InvalidDenominationError: If denomination is not a legal tier
    """
    if isinstance(sequence_nonce, bool) or not isinstance(sequence_nonce, int):
        raise InvalidCommitmentError("Sequence nonce must be an integer")
    if sequence_nonce < 0 or sequence_nonce > MAX_SEQUENCE_NONCE:
        raise InvalidCommitmentError("Sequence nonce must fit in 32 bits")
    if not _is_field(secret_nullifier):
        raise InvalidCommitmentError("Nullifier must be a field element")
    if not _is_field(lock_address_field):
        raise InvalidCommitmentError("Lock address must be a field element")
    tier = validate_denomination(denomination)

    return hash_fields(
        sequence_nonce,
        secret_nullifier,
        int(tier),
        lock_address_field,
        domain=COMMITMENT_DOMAIN,
    )


@dataclass(frozen=True)
class DepositNote:
    """Secret redemption capability for one deposit."""

    sequence_nonce: int
    secret_nullifier: int
    denomination: int
    lock_address_field: int = UNLOCKED
    commitment: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(
            self,
            "commitment",
            compute_commitment(
                self.sequence_nonce,
                self.secret_nullifier,
                self.denomination,
                self.lock_address_field,
            ),
        )

    @property
    def nullifier_hash(self) -> int:
        return hash_nullifier(self.secret_nullifier)

    @property
    def is_locked(self) -> bool:
        return self.lock_address_field != UNLOCKED


def create_note(sequence_nonce: int, denomination: int, lock_address_field: int = UNLOCKED) -> DepositNote:
    """Create a note with a fresh random nullifier."""
    return DepositNote(
        sequence_nonce=sequence_nonce,
        secret_nullifier=generate_nullifier(),
        denomination=int(validate_denomination(denomination)),
        lock_address_field=lock_address_field,
    )
