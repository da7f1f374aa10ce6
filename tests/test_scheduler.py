"""Tests for the sortition worker pool.

Tests cover:
1. Exactly-once drawing of every ticket
2. Edge difficulties (0 and 1) and empty ticket counts
3. Win statistics over a large ticket count
4. Cancellation and deadlines
5. Pool reuse across rounds
"""

from __future__ import annotations

import hashlib
import threading

import pytest

from sortition.exceptions import InvalidDifficultyError, SortitionCancelledError, SortitionTimeoutError
from sortition.lottery import ticket_hash, wins
from sortition.models import HashProof, SortitionInput, SortPhase
from sortition.scheduler import SortitionScheduler, get_default_scheduler, shutdown_default_scheduler

VRF_HASH = hashlib.sha256(b"scheduler vrf hash").digest()


@pytest.fixture
def proof() -> HashProof:
    return HashProof(
        input=SortitionInput(seed=b"seed", height=100, round=0, phase=SortPhase.VOTE),
        vrf_hash=VRF_HASH,
        vrf_proof=b"\x00" * 81,
        pubkey=b"\x02" * 33,
    )


class TestSortRound:
    """Tests for SortitionScheduler.sort_round."""

    def test_zero_tickets_yields_empty(self, scheduler, proof):
        assert scheduler.sort_round(VRF_HASH, 0, 0, 0.5, proof) == []

    def test_negative_count_rejected(self, scheduler, proof):
        with pytest.raises(ValueError):
            scheduler.sort_round(VRF_HASH, -1, 0, 0.5, proof)

    def test_invalid_difficulty_rejected(self, scheduler, proof):
        with pytest.raises(InvalidDifficultyError):
            scheduler.sort_round(VRF_HASH, 10, 0, 1.5, proof)

    def test_full_difficulty_selects_every_ticket_once(self, scheduler, proof):
        msgs = scheduler.sort_round(VRF_HASH, 250, 0, 1.0, proof)
        indexes = sorted(m.sort_hash.index for m in msgs)
        assert indexes == list(range(250))

    def test_zero_difficulty_selects_none(self, scheduler, proof):
        assert scheduler.sort_round(VRF_HASH, 250, 0, 0.0, proof) == []

    def test_below_smallest_ratio_selects_none(self, scheduler, proof):
        assert scheduler.sort_round(VRF_HASH, 250, 0, 2.0**-300, proof) == []

    def test_matches_sequential_draws(self, scheduler, proof):
        expected = {i for i in range(500) if wins(ticket_hash(VRF_HASH, i, 0), 0.1)}
        msgs = scheduler.sort_round(VRF_HASH, 500, 0, 0.1, proof)
        assert {m.sort_hash.index for m in msgs} == expected
        assert len(msgs) == len(expected)

    def test_messages_carry_hash_num_and_proof(self, scheduler, proof):
        msgs = scheduler.sort_round(VRF_HASH, 40, 3, 1.0, proof)
        for m in msgs:
            assert m.sort_hash.num == 3
            assert m.sort_hash.hash == ticket_hash(VRF_HASH, m.sort_hash.index, 3)
            assert m.proof is proof

    @pytest.mark.parametrize("batch_size", [1, 7, 64, 10_000])
    def test_batch_size_does_not_change_result(self, proof, batch_size):
        reference = {i for i in range(300) if wins(ticket_hash(VRF_HASH, i, 0), 0.2)}
        scheduler = SortitionScheduler(pool_size=3, batch_size=batch_size)
        try:
            msgs = scheduler.sort_round(VRF_HASH, 300, 0, 0.2, proof)
        finally:
            scheduler.shutdown()
        assert sorted(m.sort_hash.index for m in msgs) == sorted(reference)

    def test_win_rate_statistics(self, proof):
        # 100000 draws at 1% -> mean 1000, sd ~31.5; allow five sigma
        scheduler = SortitionScheduler(pool_size=8, batch_size=1024)
        try:
            msgs = scheduler.sort_round(VRF_HASH, 100_000, 0, 0.01, proof)
        finally:
            scheduler.shutdown()
        assert 840 <= len(msgs) <= 1160
        assert len({m.sort_hash.index for m in msgs}) == len(msgs)


class TestCancellation:
    """Tests for cancel tokens and deadlines."""

    def test_preset_cancel_raises(self, scheduler, proof):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(SortitionCancelledError):
            scheduler.sort_round(VRF_HASH, 1000, 0, 0.5, proof, cancel=cancel)

    def test_expired_deadline_raises(self, scheduler, proof):
        with pytest.raises(SortitionTimeoutError):
            scheduler.sort_round(VRF_HASH, 10_000, 0, 0.5, proof, timeout=0)

    def test_timeout_is_a_cancellation(self):
        assert issubclass(SortitionTimeoutError, SortitionCancelledError)

    def test_pool_usable_after_cancel(self, scheduler, proof):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(SortitionCancelledError):
            scheduler.sort_round(VRF_HASH, 100, 0, 1.0, proof, cancel=cancel)
        assert len(scheduler.sort_round(VRF_HASH, 100, 0, 1.0, proof)) == 100

    def test_generous_deadline_completes(self, scheduler, proof):
        msgs = scheduler.sort_round(VRF_HASH, 100, 0, 1.0, proof, timeout=60)
        assert len(msgs) == 100


class TestPool:
    """Tests for pool lifecycle."""

    def test_executor_reused_across_rounds(self, scheduler, proof):
        scheduler.sort_round(VRF_HASH, 10, 0, 0.5, proof)
        first = scheduler._executor
        scheduler.sort_round(VRF_HASH, 10, 0, 0.5, proof)
        assert scheduler._executor is first

    def test_restart_after_shutdown(self, scheduler, proof):
        scheduler.sort_round(VRF_HASH, 10, 0, 1.0, proof)
        scheduler.shutdown()
        assert scheduler._executor is None
        assert len(scheduler.sort_round(VRF_HASH, 10, 0, 1.0, proof)) == 10

    def test_rejects_invalid_sizes(self):
        with pytest.raises(ValueError):
            SortitionScheduler(pool_size=0)
        with pytest.raises(ValueError):
            SortitionScheduler(batch_size=0)

    def test_default_scheduler_is_process_wide(self):
        try:
            assert get_default_scheduler() is get_default_scheduler()
        finally:
            shutdown_default_scheduler()

    def test_default_scheduler_per_size(self):
        try:
            small = get_default_scheduler(pool_size=2, batch_size=5)
            assert (small.pool_size, small.batch_size) == (2, 5)
            assert get_default_scheduler(pool_size=2, batch_size=5) is small
            assert get_default_scheduler() is not small
        finally:
            shutdown_default_scheduler()

    def test_concurrent_rounds_share_pool(self, scheduler, proof):
        results = []

        def run():
            results.append(len(scheduler.sort_round(VRF_HASH, 200, 0, 1.0, proof)))

        threads = [threading.Thread(target=run) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == [200] * 4
