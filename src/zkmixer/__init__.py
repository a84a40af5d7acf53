"""Main package initialization."""

__version__ = "0.1.0"
__author__ = "ZK-Mixer Team"
__description__ = "Fixed-denomination pooled mixer over sparse Merkle map ledgers"

from .core.denomination import DenominationTier, tier_amount
from .core.commitment import DepositNote, compute_commitment, hash_nullifier
from .core.sparse_map import SparseMerkleMap, MapWitness
from .core.ledgers import CommitmentLedger, NullifierLedger
from .core.mixer import ZKMixer, MixerState
from .core.client import MixerClient
from .core.notes import format_deposit_note, parse_deposit_note

__all__ = [
    "DenominationTier",
    "tier_amount",
    "DepositNote",
    "compute_commitment",
    "hash_nullifier",
    "SparseMerkleMap",
    "MapWitness",
    "CommitmentLedger",
    "NullifierLedger",
    "ZKMixer",
    "MixerState",
    "MixerClient",
    "format_deposit_note",
    "parse_deposit_note",
]
