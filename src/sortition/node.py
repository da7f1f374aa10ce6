"""Sortition node - runs and verifies sortition rounds.

One round for the local participant:

1. Fetch the local staking key; no key means no sortition this round
2. Read the ticket count of its address at ``height - lookback``
3. Read the round's difficulty
4. Evaluate the VRF once over the canonical round input
5. Draw every ticket through the scheduler and keep the winners
"""

from __future__ import annotations

import logging
import threading

from .config import SortitionConfig
from .exceptions import InvalidVRFKeyError
from .interfaces import AddressDeriver, DifficultyOracle, KeyProvider, TicketLedger
from .models import HashProof, SortitionInput, SortMsg, VerificationResult
from .scheduler import SortitionScheduler, get_default_scheduler
from .verify import SortVerifier
from .vrf import VRF, evaluate

logger = logging.getLogger(__name__)


class SortitionNode:
    """Local participant in cryptographic sortition.

    Example:
        >>> node = SortitionNode(ledger, oracle, keys, addresses)
        >>> msgs = node.run_sortition(seed, height=120, round=0, phase=SortPhase.VOTE)
        >>> node.verify_sort(120, SortPhase.VOTE, seed, msgs[0])
    """

    def __init__(
        self,
        ledger: TicketLedger,
        oracle: DifficultyOracle,
        keys: KeyProvider,
        addresses: AddressDeriver,
        config: SortitionConfig | None = None,
        scheduler: SortitionScheduler | None = None,
    ):
        """Initialize the node.

        Args:
            ledger: Ticket count snapshots
            oracle: Difficulty per height and round
            keys: Local staking key source
            addresses: Public key to address mapping
            config: Sortition settings (defaults to standard)
            scheduler: Worker pool (defaults to the process-wide pool sized by config)
        """
        self.ledger = ledger
        self.oracle = oracle
        self.keys = keys
        self.addresses = addresses
        self.config = config or SortitionConfig()
        self.scheduler = scheduler or get_default_scheduler(self.config.pool_size, self.config.batch_size)
        self.verifier = SortVerifier(ledger, oracle, addresses, self.config)

    def _local_key(self) -> VRF | None:
        key = self.keys.current_private_key()
        if key is None:
            return None
        try:
            return VRF.from_key(key)
        except InvalidVRFKeyError as e:
            logger.warning(f"Local staking key is unusable, skipping sortition: {e}")
            return None

    def run_sortition(
        self,
        seed: bytes,
        height: int,
        round: int,
        phase: int,
        cancel: threading.Event | None = None,
    ) -> list[SortMsg] | None:
        """Run one sortition round for the local participant.

        Args:
            seed: Round seed
            height: Block height
            round: Round within the height
            phase: Sortition phase
            cancel: Optional token to abandon the round

        Returns:
            Winning sort messages (possibly empty), or None when this node
            holds no usable staking key
        """
        vrf = self._local_key()
        if vrf is None:
            return None
        address = self.addresses.pubkey_to_address(vrf.public_key_bytes)
        count = self.ledger.ticket_count(address, self.config.snapshot_height(height))

        diff = self.oracle.difficulty_at(height, round)

        sort_input = SortitionInput(seed=seed, height=height, round=round, phase=phase)
        output = evaluate(vrf, sort_input)
        proof = HashProof(
            input=sort_input,
            vrf_hash=output.hash,
            vrf_proof=output.proof,
            pubkey=vrf.public_key_bytes,
        )

        msgs = self.scheduler.sort_round(
            output.hash,
            count,
            self.config.committee,
            diff,
            proof,
            cancel=cancel,
            timeout=self.config.round_timeout,
        )
        logger.debug(
            f"Sortition height={height} round={round} phase={phase} count={count} "
            f"won={len(msgs)} diff={diff * 1_000_000:.3f}ppm addr={address[:16]}"
        )
        return msgs

    def verify_sort(self, height: int, phase: int, seed: bytes, msg: SortMsg | None) -> None:
        """Verify a received sort message. See :meth:`SortVerifier.verify_sort`."""
        self.verifier.verify_sort(height, phase, seed, msg)

    def check_sort(self, height: int, phase: int, seed: bytes, msg: SortMsg | None) -> VerificationResult:
        return self.verifier.check_sort(height, phase, seed, msg)
