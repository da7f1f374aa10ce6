"""Sortition - VRF-based stake-weighted committee selection.

This package implements cryptographic sortition for proof-of-stake consensus:
- VRF (Verifiable Random Function) over secp256k1 bound to a per-round seed
- Independent per-ticket lottery draws against a target probability
- A fixed-size worker pool drawing all of a participant's tickets
- Verification of sort messages received from other participants
"""

__version__ = "1.0.0"

from .config import SortitionConfig
from .exceptions import (
    ContextMismatchError,
    DifficultyNotMetError,
    InvalidDifficultyError,
    InvalidVRFKeyError,
    MalformedSortMsgError,
    RejectReason,
    SortHashMismatchError,
    SortitionCancelledError,
    SortitionError,
    SortitionTimeoutError,
    SortVerificationError,
    TicketIndexError,
    VRFVerificationError,
)
from .interfaces import (
    AddressDeriver,
    DifficultyOracle,
    KeyProvider,
    StaticKeyProvider,
    TicketLedger,
)
from .lottery import difficulty_threshold, ticket_hash, wins
from .models import (
    HashProof,
    SortHash,
    SortitionInput,
    SortMsg,
    SortPhase,
    VerificationResult,
    VRFOutput,
)
from .node import SortitionNode
from .scheduler import SortitionScheduler, get_default_scheduler, shutdown_default_scheduler
from .verify import SortVerifier
from .vrf import VRF, evaluate, vrf_verify

__all__ = [
    # VRF
    "VRF",
    "VRFOutput",
    "evaluate",
    "vrf_verify",
    # Models
    "SortitionInput",
    "SortPhase",
    "HashProof",
    "SortHash",
    "SortMsg",
    "VerificationResult",
    # Lottery
    "ticket_hash",
    "wins",
    "difficulty_threshold",
    # Scheduler
    "SortitionScheduler",
    "get_default_scheduler",
    "shutdown_default_scheduler",
    # Node
    "SortitionNode",
    "SortVerifier",
    "SortitionConfig",
    # Collaborators
    "TicketLedger",
    "DifficultyOracle",
    "KeyProvider",
    "AddressDeriver",
    "StaticKeyProvider",
    # Errors
    "SortitionError",
    "InvalidDifficultyError",
    "InvalidVRFKeyError",
    "SortitionCancelledError",
    "SortitionTimeoutError",
    "SortVerificationError",
    "MalformedSortMsgError",
    "TicketIndexError",
    "ContextMismatchError",
    "VRFVerificationError",
    "SortHashMismatchError",
    "DifficultyNotMetError",
    "RejectReason",
]
