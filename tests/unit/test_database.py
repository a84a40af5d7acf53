"""Tests for database storage layer."""

import pytest
import tempfile
import os

from sqlalchemy.exc import SQLAlchemyError

from zkmixer.core.accounts import InMemoryAccountLedger
from zkmixer.core.client import MixerClient
from zkmixer.core.mixer import MixerState, ZKMixer
from zkmixer.exceptions import DeserializationError, StateNotFoundError, StorageError
from zkmixer.models.schemas import DepositEvent, EventKind, WithdrawEvent
from zkmixer.storage.database import (
    DatabaseManager,
    EventRecord,
    SQLEventLog,
    SQLStateStore,
    get_db_manager,
    reset_db_manager,
)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    db_url = f"sqlite:///{path}"
    manager = DatabaseManager(db_url)
    manager.create_tables()
    yield manager
    # Cleanup
    manager.engine.dispose()
    os.unlink(path)


class TestDatabaseManager:
    """Test database manager initialization."""

    def test_database_creation(self, temp_db):
        assert temp_db.engine is not None
        assert temp_db.SessionLocal is not None

    def test_get_session(self, temp_db):
        session = temp_db.get_session()
        assert session is not None
        session.close()


class TestRootOperations:
    """Test persisted roots."""

    def test_load_before_save(self, temp_db):
        with temp_db.get_session() as session:
            with pytest.raises(StateNotFoundError):
                temp_db.load_roots(session)

    def test_save_and_load(self, temp_db):
        state = MixerState(commitment_root=b"\x01" * 32, nullifier_root=b"\x02" * 32, tree_depth=16)
        with temp_db.get_session() as session:
            temp_db.save_roots(session, state)
        with temp_db.get_session() as session:
            assert temp_db.load_roots(session) == state

    def test_save_overwrites_single_row(self, temp_db):
        first = MixerState.initial(16)
        second = MixerState(commitment_root=b"\x03" * 32, nullifier_root=first.nullifier_root, tree_depth=16)
        with temp_db.get_session() as session:
            temp_db.save_roots(session, first)
            temp_db.save_roots(session, second)
            assert temp_db.load_roots(session) == second


class TestEventOperations:
    """Test the event log table."""

    def test_events_kept_in_order(self, temp_db):
        big = 2**254 + 17
        with temp_db.get_session() as session:
            temp_db.append_event(session, EventKind.DEPOSIT, DepositEvent(commitment=big, denomination=3))
            temp_db.append_event(session, EventKind.WITHDRAW, WithdrawEvent(nullifier_hash=5))
            temp_db.append_event(session, EventKind.DEPOSIT, DepositEvent(commitment=2, denomination=1))

            deposits = temp_db.list_events(session, EventKind.DEPOSIT)
            assert [e.commitment for e in deposits] == [big, 2]
            assert temp_db.list_events(session, "withdraw") == [WithdrawEvent(nullifier_hash=5)]
            assert temp_db.get_event_count(session) == 3
            assert temp_db.get_event_count(session, EventKind.DEPOSIT) == 2

    def test_corrupt_payload(self, temp_db):
        with temp_db.get_session() as session:
            session.add(EventRecord(kind=EventKind.DEPOSIT, payload="{not json"))
            session.commit()
            with pytest.raises(DeserializationError):
                temp_db.list_events(session, EventKind.DEPOSIT)


class TestPersistentMixer:
    """Test a mixer restarted over the same database."""

    def test_restart_restores_roots_and_replicas(self, temp_db):
        accounts = InMemoryAccountLedger()
        accounts.fund("alice", 1_000_000)
        store = SQLStateStore(temp_db)
        events = SQLEventLog(temp_db)

        mixer = ZKMixer(accounts, events, state_store=store)
        client = MixerClient(mixer, accounts, events)
        note = client.deposit("alice", 1)

        restarted = ZKMixer(accounts, events, state_store=SQLStateStore(temp_db))
        assert restarted.get_state() == mixer.get_state()

        fresh_client = MixerClient(restarted, accounts, events)
        assert fresh_client.is_in_sync()
        fresh_client.withdraw("bob", note)
        assert accounts.balance_of("bob") == 100_000

    def test_depth_mismatch_on_restart(self, temp_db):
        accounts = InMemoryAccountLedger()
        ZKMixer(accounts, SQLEventLog(temp_db), tree_depth=256, state_store=SQLStateStore(temp_db))
        with pytest.raises(ValueError):
            ZKMixer(accounts, SQLEventLog(temp_db), tree_depth=255, state_store=SQLStateStore(temp_db))


class TestTransitionRecording:
    """Test roots and events written in one transaction."""

    def test_record_transition_writes_both(self, temp_db):
        state = MixerState(commitment_root=b"\x04" * 32, nullifier_root=b"\x05" * 32)
        SQLStateStore(temp_db).save_transition(state, EventKind.WITHDRAW, WithdrawEvent(nullifier_hash=9))

        with temp_db.get_session() as session:
            assert temp_db.load_roots(session) == state
            assert temp_db.list_events(session, EventKind.WITHDRAW) == [WithdrawEvent(nullifier_hash=9)]

    def test_failed_event_insert_keeps_old_roots(self, temp_db, monkeypatch):
        store = SQLStateStore(temp_db)
        initial = MixerState.initial()
        store.save(initial)

        def broken_stage_event(session, kind, payload):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(temp_db, "_stage_event", broken_stage_event)
        advanced = MixerState(commitment_root=b"\x06" * 32, nullifier_root=initial.nullifier_root)
        with pytest.raises(StorageError):
            store.save_transition(advanced, EventKind.DEPOSIT, DepositEvent(commitment=1, denomination=1))

        assert store.load() == initial
        with temp_db.get_session() as session:
            assert temp_db.get_event_count(session) == 0

    def test_mixer_refunds_when_database_fails(self, temp_db, monkeypatch):
        accounts = InMemoryAccountLedger()
        accounts.fund("alice", 1_000_000)
        events = SQLEventLog(temp_db)
        mixer = ZKMixer(accounts, events, state_store=SQLStateStore(temp_db))
        client = MixerClient(mixer, accounts, events)
        initial = mixer.get_state()

        def broken_stage_event(session, kind, payload):
            raise SQLAlchemyError("disk full")

        with monkeypatch.context() as patch:
            patch.setattr(temp_db, "_stage_event", broken_stage_event)
            with pytest.raises(StorageError):
                client.deposit("alice", 2)

        assert mixer.get_state() == initial
        assert SQLStateStore(temp_db).load() == initial
        assert accounts.balance_of("alice") == 1_000_000
        assert accounts.balance_of(mixer.pool_address) == 0

        note = client.deposit("alice", 2)
        restarted = ZKMixer(accounts, events, state_store=SQLStateStore(temp_db))
        fresh_client = MixerClient(restarted, accounts, events)
        assert fresh_client.is_in_sync()
        fresh_client.withdraw("bob", note)
        assert accounts.balance_of("bob") == 500_000


class TestDefaultManager:
    """Test module-level manager."""

    def test_get_db_manager_singleton(self, tmp_path):
        reset_db_manager()
        url = f"sqlite:///{tmp_path / 'default.db'}"
        first = get_db_manager(url)
        assert get_db_manager(url) is first
        reset_db_manager()
        assert get_db_manager(url) is not first
        reset_db_manager()
