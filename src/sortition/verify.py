"""Sort message verification.

A receiver runs these checks on every sort message before counting it,
in order, stopping at the first failure:

1. Bootstrap carve-out: at or below the bootstrap height, trust the message
2. Structure: proof, sort hash and input must be present
3. Ownership: the claimed ticket index must be below the sender's ticket count
4. Context: input height, seed and phase must match the local round
5. VRF: the proof must validate the VRF hash for the sender's key
6. Ticket hash: recomputed from the VRF hash, index and num
7. Difficulty: the ticket hash must clear the round's difficulty

The bootstrap carve-out accepts forged messages below the bootstrap height.
It is a known trust boundary of the protocol's genesis phase and is logged
on every use.
"""

from __future__ import annotations

import hmac
import logging

from .config import SortitionConfig
from .exceptions import (
    ContextMismatchError,
    DifficultyNotMetError,
    MalformedSortMsgError,
    SortHashMismatchError,
    SortVerificationError,
    TicketIndexError,
)
from .interfaces import AddressDeriver, DifficultyOracle, TicketLedger
from .lottery import ticket_hash, wins
from .models import SortitionInput, SortMsg, VerificationResult
from .vrf import vrf_verify

logger = logging.getLogger(__name__)


class SortVerifier:
    """Verifies sort messages received from other participants.

    Holds no mutable state; one instance may verify from many threads.
    """

    def __init__(
        self,
        ledger: TicketLedger,
        oracle: DifficultyOracle,
        addresses: AddressDeriver,
        config: SortitionConfig | None = None,
    ):
        self.ledger = ledger
        self.oracle = oracle
        self.addresses = addresses
        self.config = config or SortitionConfig()

    def verify_sort(self, height: int, phase: int, seed: bytes, msg: SortMsg | None) -> None:
        """Verify one sort message against the local round context.

        Args:
            height: Local block height the message is for
            phase: Local sortition phase
            seed: Local round seed
            msg: The received message

        Raises:
            SortVerificationError: A subclass naming the failed check
        """
        if height <= self.config.bootstrap_height:
            logger.debug(f"Trusting sort message at bootstrap height {height}")
            return

        if msg is None or msg.proof is None or msg.sort_hash is None or msg.proof.input is None:
            raise MalformedSortMsgError("Sort message is missing proof, sort hash or input")
        proof, sort_hash = msg.proof, msg.sort_hash

        address = self.addresses.pubkey_to_address(proof.pubkey)
        count = self.ledger.ticket_count(address, self.config.snapshot_height(height))
        if sort_hash.index < 0 or sort_hash.index >= count:
            raise TicketIndexError(
                f"Sort index {sort_hash.index} outside ticket count {count} of {address}, height {height}"
            )

        if proof.input.height != height:
            raise ContextMismatchError(f"Height mismatch: {proof.input.height} != {height}")
        if not hmac.compare_digest(proof.input.seed, seed):
            raise ContextMismatchError("Seed mismatch")
        if proof.input.phase != phase:
            raise ContextMismatchError(f"Phase mismatch: {proof.input.phase} != {phase}")

        round_ = proof.input.round
        sort_input = SortitionInput(seed=seed, height=height, round=round_, phase=phase)
        try:
            vrf_verify(proof.pubkey, sort_input.encode(), proof.vrf_proof, proof.vrf_hash)
        except SortVerificationError as e:
            logger.debug(f"VRF verification failed: {e}, height={height} round={round_} phase={phase} who={address[:16]}")
            raise

        expected = ticket_hash(proof.vrf_hash, sort_hash.index, sort_hash.num)
        if not hmac.compare_digest(expected, sort_hash.hash):
            raise SortHashMismatchError(f"Sort hash mismatch for index {sort_hash.index}")

        diff = self.oracle.difficulty_at(height, round_)
        if not wins(sort_hash.hash, diff):
            logger.error(
                f"Sort difficulty not met: height={height} phase={phase} round={round_} "
                f"diff={diff * 1_000_000:.3f}ppm who={address}"
            )
            raise DifficultyNotMetError(f"Ticket {sort_hash.index} does not meet difficulty {diff}")

    def check_sort(self, height: int, phase: int, seed: bytes, msg: SortMsg | None) -> VerificationResult:
        """Verify one sort message, returning the outcome instead of raising."""
        try:
            self.verify_sort(height, phase, seed, msg)
        except SortVerificationError as e:
            return VerificationResult(ok=False, reason=e.reason, message=str(e))
        return VerificationResult(ok=True)

    def verify_sort_batch(self, height: int, phase: int, seed: bytes, msgs: list[SortMsg]) -> list[SortMsg]:
        """Verify many messages and keep the accepted ones."""
        accepted = []
        for msg in msgs:
            result = self.check_sort(height, phase, seed, msg)
            if result.ok:
                accepted.append(msg)
            else:
                logger.debug(f"Rejected sort message ({result.reason}): {result.message}")
        return accepted
