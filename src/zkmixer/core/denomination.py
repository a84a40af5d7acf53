"""Fixed denomination tiers accepted by the pool."""

from enum import IntEnum
from typing import Optional, Sequence

from zkmixer.exceptions import InvalidDenominationError


class DenominationTier(IntEnum):
    """The three legal deposit/withdrawal denominations."""

    TIER_1 = 1
    TIER_2 = 2
    TIER_3 = 3


# Default transfer amount per tier
POOLS = {
    DenominationTier.TIER_1: 100_000,
    DenominationTier.TIER_2: 500_000,
    DenominationTier.TIER_3: 1_000_000,
}

NOT_DEPOSITED = 0


def validate_denomination(value) -> DenominationTier:
    """
    Coerce a raw denomination into a tier.

    Args:
        value: Candidate denomination (int or DenominationTier)

    Returns:
        DenominationTier: The matching tier

    Raises:
        InvalidDenominationError: If value is not exactly 1, 2 or 3
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDenominationError(f"denomination must be 1, 2 or 3, got {value!r}")
    try:
        return DenominationTier(value)
    except ValueError:
        raise InvalidDenominationError(f"denomination must be 1, 2 or 3, got {value!r}") from None


def validate_tier_amounts(amounts: Sequence[int]) -> tuple:
    """Check a per-deployment override of the three tier amounts."""
    amounts = tuple(amounts)
    if len(amounts) != 3:
        raise ValueError("Exactly three tier amounts are required")
    for amount in amounts:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError("Tier amounts must be positive integers")
    return amounts


def tier_amount(denomination, amounts: Optional[Sequence[int]] = None) -> int:
    """
    Map a denomination to its transfer amount.

    Every tier is matched explicitly; anything else is rejected.

    Args:
        denomination: 1, 2 or 3
        amounts: Optional override for the three tier amounts

    Returns:
        int: Amount moved by a deposit or withdrawal of this tier
    """
    tier = validate_denomination(denomination)
    if amounts is None:
        table = (POOLS[DenominationTier.TIER_1], POOLS[DenominationTier.TIER_2], POOLS[DenominationTier.TIER_3])
    else:
        table = validate_tier_amounts(amounts)

    if tier is DenominationTier.TIER_1:
        return table[0]
    elif tier is DenominationTier.TIER_2:
        return table[1]
    elif tier is DenominationTier.TIER_3:
        return table[2]
    raise InvalidDenominationError(f"denomination must be 1, 2 or 3, got {denomination!r}")
