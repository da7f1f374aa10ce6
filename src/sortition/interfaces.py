"""Collaborator protocols for sortition.

Sortition reads chain state it does not own. The node process supplies
these; any object with matching methods satisfies them.

* Ticket ledger - finalized ticket counts per address and height.
* Difficulty oracle - per-ticket win probability for a height and round.
* Key provider - the local staking key, if this node stakes at all.
* Address derivation - maps a public key to the ledger's address space.

Errors raised by any of them propagate unchanged; sortition does not
retry point-in-time consensus queries.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cryptography.hazmat.primitives.asymmetric import ec

from .vrf import VRF

PrivateKeyLike = VRF | ec.EllipticCurvePrivateKey | bytes


@runtime_checkable
class TicketLedger(Protocol):
    """Stake ledger snapshot queries."""

    def ticket_count(self, address: str, height: int) -> int:
        """Tickets held by ``address`` in the finalized state at ``height``."""
        ...


@runtime_checkable
class DifficultyOracle(Protocol):
    """Per-ticket win probability."""

    def difficulty_at(self, height: int, round: int) -> float:
        """Probability in (0, 1] that one ticket wins at ``(height, round)``."""
        ...


@runtime_checkable
class KeyProvider(Protocol):
    """Source of the local staking key."""

    def current_private_key(self) -> PrivateKeyLike | None:
        """The local staking key, or None when this node is not staking.

        A VRF, a cryptography secp256k1 key, or a 32-byte raw scalar.
        """
        ...


@runtime_checkable
class AddressDeriver(Protocol):
    """Public key to ledger address mapping."""

    def pubkey_to_address(self, pubkey: bytes) -> str:
        ...


class StaticKeyProvider:
    """Key provider holding a single, fixed key (or none)."""

    def __init__(self, key: PrivateKeyLike | None = None):
        self._key = key

    def current_private_key(self) -> PrivateKeyLike | None:
        return self._key
