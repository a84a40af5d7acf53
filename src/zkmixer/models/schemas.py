"""Pydantic data models for the ZK-Mixer system."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """Kinds of events emitted by the mixer."""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


class DepositEvent(BaseModel):
    """Emitted on every successful deposit."""
    model_config = ConfigDict(frozen=True)

    commitment: int = Field(..., ge=0, description="Commitment field element")
    denomination: int = Field(..., ge=1, le=3, description="Deposited tier")


class WithdrawEvent(BaseModel):
    """Emitted on every successful withdrawal."""
    model_config = ConfigDict(frozen=True)

    nullifier_hash: int = Field(..., ge=0, description="Spent nullifier hash")


EVENT_MODELS = {
    EventKind.DEPOSIT: DepositEvent,
    EventKind.WITHDRAW: WithdrawEvent,
}


class DepositNoteModel(BaseModel):
    """Wire form of a deposit note."""
    sequence_nonce: int = Field(..., ge=0, lt=2**32)
    commitment: int = Field(..., ge=0)
    secret_nullifier: int = Field(..., ge=0)
    denomination: int = Field(..., ge=1, le=3)
    lock_address_field: int = Field(default=0, ge=0)


class MixerStateResponse(BaseModel):
    """Response model for mixer state."""
    commitment_root: str = Field(..., description="Commitment ledger root (hex)")
    nullifier_root: str = Field(..., description="Nullifier ledger root (hex)")
    tree_depth: int = Field(..., description="Sparse map depth")
    last_update: datetime = Field(default_factory=datetime.now)


class MixerStatistics(BaseModel):
    """Statistics about the mixer."""
    total_deposits: int = 0
    total_withdrawals: int = 0
    rejected_transitions: int = 0
    pool_balance: int = 0
    deposited_volume: int = 0
    withdrawn_volume: int = 0
    uptime_hours: float = 0.0
    last_rejection: Optional[str] = None
    last_update: datetime = Field(default_factory=datetime.now)
