"""Shared fixtures for SplitLedger tests."""

import pytest

from ledger import Ledger
from store import LedgerStore, MemoryKeyValueStore


@pytest.fixture
def kv():
    """Empty in-memory key-value store."""
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv):
    return LedgerStore(kv)


@pytest.fixture
def ledger(store):
    """Empty ledger owned by Alice."""
    return Ledger(store, "Alice")
