"""Sortition exceptions.

Ineligibility (no key, no tickets, no wins) is never an exception; it is an
empty or ``None`` result. Everything below is a real failure.
"""

from __future__ import annotations

from enum import StrEnum


class RejectReason(StrEnum):
    """Why a sort message was rejected by the verifier."""

    MALFORMED = "malformed"  # Missing proof, sort hash or input
    TICKET_INDEX = "ticket_index"  # Claims a ticket the sender does not hold
    CONTEXT_MISMATCH = "context_mismatch"  # Height, seed or phase differ
    VRF_PROOF = "vrf_proof"  # VRF proof or output does not verify
    SORT_HASH = "sort_hash"  # Ticket hash does not match the VRF output
    DIFFICULTY = "difficulty"  # Valid proof, but the ticket did not win


# =============================================================================
# BASE
# =============================================================================


class SortitionError(Exception):
    """Base exception for sortition errors."""

    pass


class InvalidDifficultyError(SortitionError, ValueError):
    """Difficulty is not a probability in [0, 1]."""

    pass


class InvalidVRFKeyError(SortitionError, ValueError):
    """Private key cannot be used for VRF evaluation."""

    pass


# =============================================================================
# SCHEDULER
# =============================================================================


class SortitionCancelledError(SortitionError):
    """A sortition round was cancelled before all tickets were drawn."""

    pass


class SortitionTimeoutError(SortitionCancelledError):
    """A sortition round exceeded its deadline."""

    pass


# =============================================================================
# VERIFICATION
# =============================================================================


class SortVerificationError(SortitionError):
    """Base error for rejected sort messages.

    Every subclass carries a distinct :class:`RejectReason` so callers can
    act on the cause, not only on failure.
    """

    reason: RejectReason = RejectReason.MALFORMED


class MalformedSortMsgError(SortVerificationError):
    """Sort message is missing required fields."""

    reason = RejectReason.MALFORMED


class TicketIndexError(SortVerificationError):
    """Sort message claims a ticket index beyond the sender's ticket count."""

    reason = RejectReason.TICKET_INDEX


class ContextMismatchError(SortVerificationError):
    """Sort message was computed for another height, seed or phase."""

    reason = RejectReason.CONTEXT_MISMATCH


class VRFVerificationError(SortVerificationError):
    """VRF proof does not validate against the public key and input."""

    reason = RejectReason.VRF_PROOF


class SortHashMismatchError(SortVerificationError):
    """Ticket hash does not match the one recomputed from the VRF output."""

    reason = RejectReason.SORT_HASH


class DifficultyNotMetError(SortVerificationError):
    """Ticket hash does not clear the difficulty threshold."""

    reason = RejectReason.DIFFICULTY
