"""Deposit note string encoding.

A note string is the base64 of
``<nonce>-<commitment>-<nullifier>-<denomination>-<lockAddressField>``
with every component in decimal. Whoever holds the string can withdraw
(subject to the lock address), so it must travel out of band.
"""

import base64
import binascii

from pydantic import ValidationError

from zkmixer.core.commitment import DepositNote
from zkmixer.exceptions import (
    InvalidCommitmentError,
    InvalidDenominationError,
    NoteFormatError,
    SerializationError,
)
from zkmixer.models.schemas import DepositNoteModel

NOTE_SEPARATOR = "-"


def format_deposit_note(note: DepositNote) -> str:
    """Encode a note as a portable string."""
    try:
        model = DepositNoteModel(
            sequence_nonce=note.sequence_nonce,
            commitment=note.commitment,
            secret_nullifier=note.secret_nullifier,
            denomination=int(note.denomination),
            lock_address_field=note.lock_address_field,
        )
    except ValidationError as e:
        raise SerializationError(f"Cannot encode note: {e}") from e

    raw = NOTE_SEPARATOR.join(
        str(part)
        for part in (
            model.sequence_nonce,
            model.commitment,
            model.secret_nullifier,
            model.denomination,
            model.lock_address_field,
        )
    )
    return base64.b64encode(raw.encode("ascii")).decode("ascii")


def parse_deposit_note(text: str) -> DepositNote:
    """
    Decode a note string.

    The embedded commitment must match the one recomputed from the other
    fields, so a corrupted or hand-edited note is rejected here rather than
    failing later at withdrawal.

    Raises:
        NoteFormatError: If the string is not a valid note
    """
    if not isinstance(text, str):
        raise NoteFormatError("Note must be a string")
    try:
        raw = base64.b64decode(text.strip().encode("ascii"), validate=True).decode("ascii")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise NoteFormatError(f"Note is not valid base64: {e}") from e

    parts = raw.split(NOTE_SEPARATOR)
    if len(parts) != 5:
        raise NoteFormatError(f"Note must have 5 components, got {len(parts)}")

    try:
        model = DepositNoteModel(
            sequence_nonce=int(parts[0]),
            commitment=int(parts[1]),
            secret_nullifier=int(parts[2]),
            denomination=int(parts[3]),
            lock_address_field=int(parts[4]),
        )
    except (ValueError, ValidationError) as e:
        raise NoteFormatError(f"Invalid note component: {e}") from e

    try:
        note = DepositNote(
            sequence_nonce=model.sequence_nonce,
            secret_nullifier=model.secret_nullifier,
            denomination=model.denomination,
            lock_address_field=model.lock_address_field,
        )
    except (InvalidCommitmentError, InvalidDenominationError) as e:
        raise NoteFormatError(f"Invalid note: {e}") from e

    if note.commitment != model.commitment:
        raise NoteFormatError("Note commitment does not match its contents")
    return note
