"""Sortition scheduler - bounded parallel map over a participant's tickets.

A large stake holder may hold thousands of tickets, each an independent
pure draw. The scheduler splits ``[0, count)`` into contiguous batches,
hands them to a fixed-size worker pool, and blocks until every batch is
accounted for. Only winning tickets come back, in no particular order;
consumers key on ``SortHash.index``.

The pool is process-wide: created once per (pool size, batch size) and
reused across rounds.

The workers are threads. Hashing a short preimage with SHA-256 holds the
GIL, so the pool bounds concurrency and keeps rounds off the caller's
thread but gives no CPU speedup over drawing sequentially.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from . import defaults
from .exceptions import SortitionCancelledError, SortitionTimeoutError
from .lottery import difficulty_threshold, draw
from .models import HashProof, SortHash, SortMsg

logger = logging.getLogger(__name__)


class SortitionScheduler:
    """Fixed-size worker pool evaluating ticket draws.

    Example:
        >>> scheduler = SortitionScheduler(pool_size=8)
        >>> msgs = scheduler.sort_round(vrf_hash, count=5000, num=0, diff=0.01, proof=proof)
    """

    def __init__(
        self,
        pool_size: int = defaults.POOL_SIZE,
        batch_size: int = defaults.BATCH_SIZE,
    ):
        if pool_size < 1:
            raise ValueError(f"pool_size must be positive, got {pool_size}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.pool_size = pool_size
        self.batch_size = batch_size
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.pool_size,
                    thread_name_prefix="sortition",
                )
            return self._executor

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool. A later round starts a fresh one."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=True)

    def sort_round(
        self,
        vrf_hash: bytes,
        count: int,
        num: int,
        diff: float,
        proof: HashProof,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> list[SortMsg]:
        """Draw every ticket in ``[0, count)`` and collect the winners.

        Args:
            vrf_hash: VRF output of this round
            count: Number of tickets held
            num: Committee discriminator
            diff: Per-ticket win probability
            proof: Hash proof embedded in every produced message
            cancel: Optional token; setting it abandons the round
            timeout: Optional deadline in seconds for the whole round

        Returns:
            One SortMsg per winning ticket, in no particular order

        Raises:
            SortitionCancelledError: If ``cancel`` was set
            SortitionTimeoutError: If the deadline passed
            InvalidDifficultyError: If ``diff`` is not in [0, 1]
        """
        if count < 0:
            raise ValueError(f"Ticket count must be non-negative, got {count}")
        threshold = difficulty_threshold(diff)
        if count == 0:
            return []

        cancel = cancel or threading.Event()
        deadline = time.monotonic() + timeout if timeout is not None else None
        executor = self._get_executor()

        futures: set[Future] = set()
        for start in range(0, count, self.batch_size):
            stop = min(start + self.batch_size, count)
            futures.add(executor.submit(self._draw_batch, vrf_hash, start, stop, num, threshold, cancel))

        msgs: list[SortMsg] = []
        processed = 0
        try:
            while futures:
                remaining = None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise SortitionTimeoutError(
                            f"Sortition round exceeded {timeout}s with {len(futures)} batches pending"
                        )
                done, futures = wait(futures, timeout=remaining, return_when=FIRST_COMPLETED)
                for fut in done:
                    drawn, winners = fut.result()
                    processed += drawn
                    msgs.extend(
                        SortMsg(sort_hash=SortHash(hash=h, index=index, num=num), proof=proof)
                        for index, h in winners
                    )
        except BaseException:
            cancel.set()
            for fut in futures:
                fut.cancel()
            raise

        if processed != count:
            raise RuntimeError(f"Sortition drew {processed} tickets, expected {count}")
        return msgs

    @staticmethod
    def _draw_batch(
        vrf_hash: bytes,
        start: int,
        stop: int,
        num: int,
        threshold: int,
        cancel: threading.Event,
    ) -> tuple[int, list[tuple[int, bytes]]]:
        winners = []
        for index in range(start, stop):
            if cancel.is_set():
                raise SortitionCancelledError(f"Sortition cancelled at ticket {index}")
            h = draw(vrf_hash, index, num, threshold)
            if h is not None:
                winners.append((index, h))
        return stop - start, winners


# =============================================================================
# PROCESS-WIDE POOL
# =============================================================================

_default_schedulers: dict[tuple[int, int], SortitionScheduler] = {}
_default_lock = threading.Lock()


def get_default_scheduler(
    pool_size: int = defaults.POOL_SIZE,
    batch_size: int = defaults.BATCH_SIZE,
) -> SortitionScheduler:
    """Get or create the process-wide scheduler for the given sizes.

    Callers asking for the same sizes share one pool.
    """
    key = (pool_size, batch_size)
    with _default_lock:
        scheduler = _default_schedulers.get(key)
        if scheduler is None:
            scheduler = SortitionScheduler(pool_size=pool_size, batch_size=batch_size)
            _default_schedulers[key] = scheduler
            logger.debug(f"Started sortition pool with {pool_size} workers, batch size {batch_size}")
        return scheduler


def shutdown_default_scheduler() -> None:
    """Stop every process-wide pool that was started."""
    with _default_lock:
        schedulers = list(_default_schedulers.values())
        _default_schedulers.clear()
    for scheduler in schedulers:
        scheduler.shutdown()
