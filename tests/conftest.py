"""Shared fixtures for sortition tests.

Provides in-memory stand-ins for the chain collaborators:
- A ticket ledger backed by a dict
- A difficulty oracle with a settable difficulty
- A deterministic VRF key and address derivation
"""

from __future__ import annotations

import hashlib

import pytest

from sortition import (
    SortitionConfig,
    SortitionNode,
    SortitionScheduler,
    SortPhase,
    StaticKeyProvider,
    VRF,
)

# Fixed key so draws are reproducible across runs
TEST_KEY = hashlib.sha256(b"sortition-test-key").digest()
OTHER_KEY = hashlib.sha256(b"sortition-other-key").digest()

TEST_SEED = hashlib.sha256(b"round-seed").digest()
TEST_HEIGHT = 120
TEST_ROUND = 0
TEST_PHASE = SortPhase.VOTE


class FakeLedger:
    """Ticket counts keyed by address, the same at every height."""

    def __init__(self, counts: dict[str, int] | None = None):
        self.counts = dict(counts or {})
        self.queries: list[tuple[str, int]] = []

    def ticket_count(self, address: str, height: int) -> int:
        self.queries.append((address, height))
        return self.counts.get(address, 0)


class FakeOracle:
    def __init__(self, diff: float = 0.2):
        self.diff = diff

    def difficulty_at(self, height: int, round: int) -> float:
        return self.diff


class HashAddresses:
    def pubkey_to_address(self, pubkey: bytes) -> str:
        return hashlib.sha256(pubkey).hexdigest()[:40]


@pytest.fixture
def vrf() -> VRF:
    return VRF(private_key_bytes=TEST_KEY)


@pytest.fixture
def addresses() -> HashAddresses:
    return HashAddresses()


@pytest.fixture
def ledger(vrf, addresses) -> FakeLedger:
    return FakeLedger({addresses.pubkey_to_address(vrf.public_key_bytes): 100})


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle(diff=0.2)


@pytest.fixture
def scheduler():
    scheduler = SortitionScheduler(pool_size=4, batch_size=16)
    yield scheduler
    scheduler.shutdown()


@pytest.fixture
def config() -> SortitionConfig:
    return SortitionConfig(pool_size=4, batch_size=16, lookback_blocks=10, bootstrap_height=10)


@pytest.fixture
def node(ledger, oracle, vrf, addresses, config, scheduler) -> SortitionNode:
    return SortitionNode(
        ledger=ledger,
        oracle=oracle,
        keys=StaticKeyProvider(vrf),
        addresses=addresses,
        config=config,
        scheduler=scheduler,
    )


@pytest.fixture
def winning_msgs(node):
    msgs = node.run_sortition(TEST_SEED, TEST_HEIGHT, TEST_ROUND, TEST_PHASE)
    assert msgs, "fixed key should win at least one ticket at diff=0.2"
    return msgs
