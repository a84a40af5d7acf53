"""Property-based tests using Hypothesis for mixer invariants."""

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from zkmixer.core.accounts import InMemoryAccountLedger, identity_field
from zkmixer.core.client import MixerClient
from zkmixer.core.commitment import create_note
from zkmixer.core.denomination import tier_amount
from zkmixer.core.events import InMemoryEventLog
from zkmixer.core.ledgers import CommitmentLedger, NullifierLedger
from zkmixer.core.mixer import ZKMixer
from zkmixer.core.sparse_map import SparseMerkleMap, compute_root_for_value
from zkmixer.exceptions import (
    CommitmentAlreadyDepositedError,
    NullifierAlreadySpentError,
    RecipientMismatchError,
    TransitionRejectedError,
)
from zkmixer.models.schemas import EventKind

POOL = "zkmixer-pool"
USERS = ["alice", "bob", "carol", "dave"]

tiers = st.integers(min_value=1, max_value=3)


def fresh_system():
    accounts = InMemoryAccountLedger()
    for user in USERS:
        accounts.fund(user, 10**9)
    events = InMemoryEventLog()
    mixer = ZKMixer(accounts, events, pool_address=POOL)
    return accounts, events, mixer, MixerClient(mixer, accounts, events)


class TestSparseMapProperties:
    """Property-based tests for the sparse map."""

    @given(st.dictionaries(st.integers(min_value=0, max_value=2**16 - 1), st.integers(min_value=1, max_value=3), max_size=20))
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    def test_root_depends_only_on_contents(self, entries: dict):
        """Property: Insertion order does not change the root."""
        forward = SparseMerkleMap(depth=16)
        backward = SparseMerkleMap(depth=16)
        for key, value in entries.items():
            forward.set(key, value)
        for key, value in reversed(list(entries.items())):
            backward.set(key, value)
        assert forward.get_root() == backward.get_root()

    @given(
        st.dictionaries(st.integers(min_value=0, max_value=255), st.integers(min_value=1, max_value=3), max_size=10),
        st.integers(min_value=0, max_value=255),
        st.integers(min_value=0, max_value=3),
    )
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    def test_witness_predicts_set(self, entries: dict, key: int, value: int):
        """Property: One witness verifies the old value and yields the new root."""
        smap = SparseMerkleMap(depth=8)
        for k, v in entries.items():
            smap.set(k, v)
        witness = smap.get_witness(key)
        assert compute_root_for_value(witness, key, smap.get(key)) == smap.get_root()
        predicted = compute_root_for_value(witness, key, value)
        smap.set(key, value)
        assert predicted == smap.get_root()


class TestMixerProperties:
    """Property-based tests for the state machine."""

    @given(tiers, tiers)
    @settings(max_examples=20, deadline=None)
    def test_no_double_deposit(self, first: int, second: int):
        """Property: A commitment is accepted at most once, at any tier."""
        _, _, mixer, client = fresh_system()
        note = client.deposit("alice", first)
        before = mixer.get_state()
        with pytest.raises(CommitmentAlreadyDepositedError):
            mixer.deposit("bob", note.commitment, client.commitments.get_witness(note.commitment), second)
        assert mixer.get_state() == before

    @given(tiers, st.sampled_from(USERS), tiers, st.sampled_from([None, "alice", "bob"]))
    @settings(max_examples=20, deadline=None)
    def test_no_double_withdraw(self, tier: int, caller: str, claimed: int, lock: str):
        """Property: After one redemption every replay fails."""
        _, _, mixer, client = fresh_system()
        note = client.deposit("alice", tier)
        client.withdraw("carol", note)
        before = mixer.get_state()

        lock_field = identity_field(lock) if lock is not None else 0
        with pytest.raises(TransitionRejectedError):
            mixer.withdraw(
                caller,
                note.secret_nullifier,
                client.nullifiers.get_witness(note.nullifier_hash),
                client.commitments.get_witness(note.commitment),
                note.sequence_nonce,
                claimed,
                lock_field,
            )
        assert mixer.get_state() == before

    @given(tiers, tiers)
    @settings(max_examples=20, deadline=None)
    def test_denomination_binding(self, deposited: int, claimed: int):
        """Property: Only the deposited tier can be withdrawn."""
        _, _, mixer, client = fresh_system()
        note = client.deposit("alice", deposited)
        commitments, nullifiers = client.commitments, client.nullifiers

        call = lambda: mixer.withdraw(
            "bob",
            note.secret_nullifier,
            nullifiers.get_witness(note.nullifier_hash),
            commitments.get_witness(note.commitment),
            note.sequence_nonce,
            claimed,
            note.lock_address_field,
        )
        if claimed == deposited:
            assert call().amount == tier_amount(deposited)
        else:
            with pytest.raises(TransitionRejectedError):
                call()

    @given(st.sampled_from(USERS), st.sampled_from(USERS))
    @settings(max_examples=20, deadline=None)
    def test_lock_enforcement(self, lock: str, caller: str):
        """Property: A locked note pays only its lock address."""
        _, _, mixer, client = fresh_system()
        note = client.deposit("alice", 1, lock_address=lock)
        if caller == lock:
            client.withdraw(caller, note)
        else:
            with pytest.raises(RecipientMismatchError):
                client.withdraw(caller, note)

    @given(
        st.lists(
            st.tuples(st.sampled_from(["deposit", "withdraw", "replay"]), st.sampled_from(USERS), tiers),
            min_size=1,
            max_size=12,
        )
    )
    @settings(max_examples=15, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_conservation_and_replay(self, operations):
        """Property: Pool balance tracks tier amounts and events replay to the held roots."""
        accounts, events, mixer, client = fresh_system()
        unspent, spent = [], []
        deposited = withdrawn = 0
        legal_amounts = {tier_amount(t) for t in (1, 2, 3)}

        for action, user, tier in operations:
            if action == "deposit":
                unspent.append(client.deposit(user, tier))
                deposited += tier_amount(tier)
            elif action == "withdraw" and unspent:
                note = unspent.pop(0)
                receipt = client.withdraw(user, note)
                assert receipt.amount in legal_amounts
                withdrawn += receipt.amount
                spent.append(note)
            elif action == "replay" and spent:
                with pytest.raises(NullifierAlreadySpentError):
                    client.withdraw(user, spent[-1])

            assert accounts.balance_of(POOL) == deposited - withdrawn

        replayed_commitments = CommitmentLedger.from_events(events.fetch_events(EventKind.DEPOSIT))
        replayed_nullifiers = NullifierLedger.from_events(events.fetch_events(EventKind.WITHDRAW))
        assert replayed_commitments.get_root() == mixer.commitment_root
        assert replayed_nullifiers.get_root() == mixer.nullifier_root
        assert accounts.total_supply() == 10**9 * len(USERS)
