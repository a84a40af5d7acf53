"""Pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from zkmixer.core.accounts import InMemoryAccountLedger
from zkmixer.core.client import MixerClient
from zkmixer.core.events import InMemoryEventLog
from zkmixer.core.mixer import ZKMixer

POOL = "zkmixer-pool"
STARTING_BALANCE = 10_000_000


@pytest.fixture
def accounts():
    """Account ledger with three funded users."""
    ledger = InMemoryAccountLedger()
    for name in ("alice", "bob", "carol"):
        ledger.fund(name, STARTING_BALANCE)
    return ledger


@pytest.fixture
def events():
    """Fresh in-memory event log."""
    return InMemoryEventLog()


@pytest.fixture
def mixer(accounts, events):
    """Mixer over empty ledgers."""
    return ZKMixer(accounts=accounts, events=events, pool_address=POOL)


@pytest.fixture
def client(mixer, accounts, events):
    """Client with replicas synced to the mixer."""
    return MixerClient(mixer, accounts, events)


@pytest.fixture(scope="session")
def test_data():
    """Fixture providing test data."""
    return {
        "starting_balance": STARTING_BALANCE,
        "pool": POOL,
        "sample_tree_depth": 8,
    }


def pytest_configure(config):
    config.addinivalue_line("markers", "benchmark: performance benchmarks")
