"""Custom exceptions for the ZK-Mixer system."""


class ZKMixerException(Exception):
    """Base exception for all ZK-Mixer errors."""
    pass


# Cryptography Errors
class CryptoError(ZKMixerException):
    """Base exception for cryptographic errors."""
    pass


class InvalidCommitmentError(CryptoError):
    """Raised when commitment inputs are invalid."""
    pass


class InvalidNullifierError(CryptoError):
    """Raised when a nullifier is invalid."""
    pass


# Sparse Map Errors
class SparseMapError(ZKMixerException):
    """Base exception for sparse Merkle map errors."""
    pass


class InvalidWitnessError(SparseMapError):
    """Raised when a witness is structurally malformed."""
    pass


class InvalidLedgerValueError(SparseMapError):
    """Raised when a ledger is asked to hold a value it does not allow."""
    pass


# Transition Errors
class TransitionRejectedError(ZKMixerException):
    """Base exception for a rejected deposit or withdrawal.

    Raising any subclass guarantees that neither root was modified.
    """
    pass


class InvalidDenominationError(TransitionRejectedError):
    """Raised when a denomination is outside {1, 2, 3}."""
    pass


class WitnessMismatchError(TransitionRejectedError):
    """Raised when a witness does not reproduce the held root."""
    pass


class CommitmentAlreadyDepositedError(WitnessMismatchError):
    """Raised when a commitment cannot be proven absent."""
    pass


class NullifierAlreadySpentError(WitnessMismatchError):
    """Raised when a nullifier hash cannot be proven unspent."""
    pass


class CommitmentNotFoundError(WitnessMismatchError):
    """Raised when the recomputed commitment is not in the ledger."""
    pass


class RecipientMismatchError(TransitionRejectedError):
    """Raised when a locked note is redeemed by another identity."""
    pass


class InsufficientFundsError(TransitionRejectedError):
    """Raised when the balance transfer collaborator refuses a transfer."""
    pass


# Storage Errors
class StorageError(ZKMixerException):
    """Base exception for storage errors."""
    pass


class StateNotFoundError(StorageError):
    """Raised when no persisted mixer state exists."""
    pass


class SerializationError(StorageError):
    """Raised when serialization fails."""
    pass


class DeserializationError(StorageError):
    """Raised when deserialization fails."""
    pass


class NoteFormatError(DeserializationError):
    """Raised when a deposit note string cannot be parsed."""
    pass
