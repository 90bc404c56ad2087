"""Fixtures for indexer tests."""

import pytest

from tests.indexer.fakes import FakeChainReader, FakeLedgerStore


@pytest.fixture
def chain() -> FakeChainReader:
    """Fake chain reader."""
    return FakeChainReader()


@pytest.fixture
def store() -> FakeLedgerStore:
    """Fake ledger store."""
    return FakeLedgerStore()
