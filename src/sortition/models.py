"""Data models for sortition.

These models represent the sortition input, the VRF output bound to it,
and the sort message a winning ticket produces. ``to_dict``/``from_dict``
give the JSON-ready wire form handed to the gossip layer.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from .exceptions import RejectReason

# Domain separator for the canonical input encoding
DOMAIN_SEPARATOR_INPUT = b"sortition-input-v1"


# =============================================================================
# ENUMS
# =============================================================================


class SortPhase(IntEnum):
    """Context a sortition is run for.

    Part of the VRF input, so a seed cannot be replayed across phases.
    """

    PROPOSE = 0  # Block proposer selection
    VOTE = 1  # Committee voting
    COMMIT = 2  # Commit votes


# =============================================================================
# SORTITION INPUT
# =============================================================================


@dataclass(frozen=True)
class SortitionInput:
    """Public per-round input to the VRF."""

    seed: bytes
    height: int
    round: int
    phase: int

    def encode(self) -> bytes:
        """Canonical encoding fed to the VRF.

        Producer and verifier both go through this method, so the same
        logical input always yields the same bytes.
        """
        return (
            DOMAIN_SEPARATOR_INPUT
            + struct.pack(">I", len(self.seed))
            + self.seed
            + struct.pack(">qii", self.height, self.round, int(self.phase))
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": self.seed.hex(),
            "height": self.height,
            "round": self.round,
            "phase": int(self.phase),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SortitionInput:
        return cls(
            seed=bytes.fromhex(data["seed"]),
            height=int(data["height"]),
            round=int(data["round"]),
            phase=int(data["phase"]),
        )


# =============================================================================
# VRF OUTPUT
# =============================================================================


@dataclass(frozen=True)
class VRFOutput:
    """Result of a VRF evaluation.

    ``hash`` is the pseudorandom output; ``proof`` lets any holder of the
    matching public key check it was derived from the input.
    """

    hash: bytes
    proof: bytes

    def hash_as_int(self) -> int:
        """Get the output as an integer for comparison."""
        return int.from_bytes(self.hash, "big")


@dataclass
class HashProof:
    """A VRF output bundled with its input and the claimant's public key.

    Embedded in every sort message so a verifier needs no side channel
    to reconstruct the VRF call.
    """

    input: SortitionInput | None
    vrf_hash: bytes
    vrf_proof: bytes
    pubkey: bytes

    def to_dict(self) -> dict[str, Any]:
        return {
            "input": self.input.to_dict() if self.input else None,
            "vrf_hash": self.vrf_hash.hex(),
            "vrf_proof": self.vrf_proof.hex(),
            "pubkey": self.pubkey.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HashProof:
        return cls(
            input=SortitionInput.from_dict(data["input"]) if data.get("input") else None,
            vrf_hash=bytes.fromhex(data.get("vrf_hash", "")),
            vrf_proof=bytes.fromhex(data.get("vrf_proof", "")),
            pubkey=bytes.fromhex(data.get("pubkey", "")),
        )


# =============================================================================
# SORT MESSAGE
# =============================================================================


@dataclass
class SortHash:
    """Selection value of one winning ticket."""

    hash: bytes  # Ticket hash, derived from the VRF hash
    index: int  # Ticket index in [0, ticket_count)
    num: int = 0  # Committee discriminator

    def to_dict(self) -> dict[str, Any]:
        return {"hash": self.hash.hex(), "index": self.index, "num": self.num}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SortHash:
        return cls(
            hash=bytes.fromhex(data["hash"]),
            index=int(data["index"]),
            num=int(data.get("num", 0)),
        )


@dataclass
class SortMsg:
    """Wire record announcing one winning ticket.

    Only produced for tickets that cleared the difficulty threshold.
    """

    sort_hash: SortHash | None
    proof: HashProof | None

    @property
    def index(self) -> int | None:
        return self.sort_hash.index if self.sort_hash else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "sort_hash": self.sort_hash.to_dict() if self.sort_hash else None,
            "proof": self.proof.to_dict() if self.proof else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SortMsg:
        """Create from dictionary.

        Missing sub-records decode to ``None`` and are rejected later by the
        verifier rather than here.
        """
        return cls(
            sort_hash=SortHash.from_dict(data["sort_hash"]) if data.get("sort_hash") else None,
            proof=HashProof.from_dict(data["proof"]) if data.get("proof") else None,
        )


# =============================================================================
# VERIFICATION RESULT
# =============================================================================


@dataclass
class VerificationResult:
    """Outcome of verifying one sort message."""

    ok: bool
    reason: RejectReason | None = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }
