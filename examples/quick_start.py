#!/usr/bin/env python3
"""
Quick start guide for the ZK-Mixer system.

Run this to see a complete workflow example.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from zkmixer.config import configure_logging
from zkmixer.core.accounts import InMemoryAccountLedger
from zkmixer.core.client import MixerClient
from zkmixer.core.events import InMemoryEventLog
from zkmixer.core.mixer import ZKMixer
from zkmixer.core.notes import format_deposit_note, parse_deposit_note
from zkmixer.exceptions import NullifierAlreadySpentError, RecipientMismatchError


def main():
    """Run a simple example of the ZK-Mixer system."""
    configure_logging("WARNING")

    print("=" * 70)
    print("ZK-MIXER QUICK START EXAMPLE")
    print("=" * 70)
    print()

    # Step 1: Initialize the mixer
    print("Step 1: Initialize the ZK-Mixer")
    print("-" * 70)
    accounts = InMemoryAccountLedger()
    accounts.fund("alice", 2_000_000)
    events = InMemoryEventLog()
    mixer = ZKMixer(accounts, events)
    print(f"✓ {mixer}")
    print()

    # Step 2: Alice deposits tier 1 without a lock
    print("Step 2: Alice deposits tier 1 (100000)")
    print("-" * 70)
    alice = MixerClient(mixer, accounts, events)
    note = alice.deposit("alice", 1)
    note_text = format_deposit_note(note)
    print(f"✓ Commitment: {str(note.commitment)[:32]}...")
    print(f"  Note: {note_text[:48]}...")
    print()

    # Step 3: Bob receives the note and withdraws
    print("Step 3: Bob redeems the note")
    print("-" * 70)
    bob = MixerClient(mixer, accounts, events)
    bob.withdraw("bob", parse_deposit_note(note_text))
    print(f"✓ Bob balance: {accounts.balance_of('bob')}")
    try:
        bob.withdraw("carol", parse_deposit_note(note_text))
    except NullifierAlreadySpentError as e:
        print(f"✓ Replay refused: {e}")
    print()

    # Step 4: Alice deposits a note locked to Bob
    print("Step 4: Alice deposits tier 1 locked to Bob")
    print("-" * 70)
    alice.sync()
    locked = alice.deposit("alice", 1, lock_address="bob")
    carol = MixerClient(mixer, accounts, events)
    try:
        carol.withdraw("carol", locked)
    except RecipientMismatchError as e:
        print(f"✓ Carol refused: {e}")
    bob.sync()
    bob.withdraw("bob", locked)
    print(f"✓ Bob balance: {accounts.balance_of('bob')}")
    print()

    print("Mixer state:")
    for key, value in mixer.get_state().to_dict().items():
        print(f"  {key}: {value}")
    print(f"Statistics: {mixer.get_statistics().model_dump()}")


if __name__ == "__main__":
    main()
