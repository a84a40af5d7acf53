"""Balance transfer and caller identity collaborators."""

import logging
import threading
from enum import Enum
from typing import Dict, Protocol

from zkmixer.utils.hash import IDENTITY_DOMAIN, FIELD_MODULUS, hash_fields, sha256

logger = logging.getLogger(__name__)


class TransferResult(str, Enum):
    """Outcome of a balance transfer."""
    SUCCESS = "success"
    INSUFFICIENT_FUNDS = "insufficient_funds"


def identity_field(address: str) -> int:
    """
    Map an opaque caller address to a non-zero field element.

    The result is what a depositor puts in ``lock_address_field`` to lock a
    note to this address, and what the mixer compares against on withdrawal.
    """
    if not isinstance(address, str) or not address:
        raise ValueError("Address must be a non-empty string")
    digest = int.from_bytes(sha256(address), "big") % FIELD_MODULUS
    value = hash_fields(digest, domain=IDENTITY_DOMAIN)
    # 0 is reserved for "unlocked"
    return value or 1


class AccountLedger(Protocol):
    """Custodian of balances; the mixer only asks it to move funds."""

    def transfer(self, from_address: str, to_address: str, amount: int) -> TransferResult:
        ...

    def balance_of(self, address: str) -> int:
        ...

    def nonce_of(self, address: str) -> int:
        ...


class InMemoryAccountLedger:
    """
    Simple balance book for tests, demos and local simulation.

    Each successful debit increments the sender's nonce, mirroring an
    account-based chain where every signed action bumps the nonce.
    """

    def __init__(self):
        self._balances: Dict[str, int] = {}
        self._nonces: Dict[str, int] = {}
        self._lock = threading.Lock()

    def fund(self, address: str, amount: int) -> None:
        """Credit an account out of thin air."""
        if amount < 0:
            raise ValueError("Funding amount must be non-negative")
        with self._lock:
            self._balances[address] = self._balances.get(address, 0) + amount

    def transfer(self, from_address: str, to_address: str, amount: int) -> TransferResult:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError("Transfer amount must be a positive integer")
        with self._lock:
            balance = self._balances.get(from_address, 0)
            if balance < amount:
                logger.debug(
                    f"Transfer of {amount} from {from_address} refused (balance {balance})"
                )
                return TransferResult.INSUFFICIENT_FUNDS
            self._balances[from_address] = balance - amount
            self._balances[to_address] = self._balances.get(to_address, 0) + amount
            self._nonces[from_address] = self._nonces.get(from_address, 0) + 1
        return TransferResult.SUCCESS

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def nonce_of(self, address: str) -> int:
        return self._nonces.get(address, 0)

    def total_supply(self) -> int:
        return sum(self._balances.values())
