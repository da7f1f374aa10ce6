"""Per-ticket lottery draws.

Each ticket a participant holds is an independent draw:

1. ticket_hash = SHA256(SHA256("<vrf hash hex>+<index>+<num>"))
2. the ticket wins iff ticket_hash / 2^256 <= diff

The VRF hash is uniform and unpredictable, so every ticket is a Bernoulli
trial with success probability ``diff`` and a holder of ``count`` tickets
expects ``count * diff`` wins.
"""

from __future__ import annotations

import hashlib
import math
from fractions import Fraction

from .exceptions import InvalidDifficultyError

# =============================================================================
# CONSTANTS
# =============================================================================

HASH_BITS = 256
HASH_SPACE = 1 << HASH_BITS  # 2^256
HASH_SPACE_RATIO = Fraction(HASH_SPACE)

# Separator between the fields of the ticket hash preimage
TICKET_DELIMITER = "+"


# =============================================================================
# TICKET HASHER
# =============================================================================


def hash2(data: bytes) -> bytes:
    """SHA-256 applied twice."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def ticket_hash(vrf_hash: bytes, index: int, num: int = 0) -> bytes:
    """Derive the selection value of one ticket.

    The preimage is the lowercase hex of ``vrf_hash`` followed by the
    decimal ``index`` and ``num``, joined by ``+``. Producer and verifier
    must agree on it bit for bit.
    """
    data = TICKET_DELIMITER.join((vrf_hash.hex(), str(index), str(num)))
    return hash2(data.encode("utf-8"))


# =============================================================================
# THRESHOLD COMPARATOR
# =============================================================================


def difficulty_threshold(diff: float) -> int:
    """Largest hash value (as an integer) that still wins at ``diff``.

    ``y / 2^256 <= diff`` holds exactly when ``y <= floor(diff * 2^256)``.
    The float is converted to a rational without rounding, so the boundary
    matches an arbitrary-precision computation.

    Raises:
        InvalidDifficultyError: If ``diff`` is not a probability in [0, 1]
    """
    if isinstance(diff, float) and math.isnan(diff):
        raise InvalidDifficultyError("Difficulty is NaN")
    if not 0 <= diff <= 1:
        raise InvalidDifficultyError(f"Difficulty must be in [0, 1], got {diff}")
    return math.floor(Fraction(diff) * HASH_SPACE_RATIO)


def hash_ratio(hash_bytes: bytes) -> Fraction:
    """Map a 256-bit hash to its exact position in [0, 1)."""
    return Fraction(int.from_bytes(hash_bytes, "big"), HASH_SPACE)


def beats_threshold(hash_bytes: bytes, threshold: int) -> bool:
    return int.from_bytes(hash_bytes, "big") <= threshold


def wins(hash_bytes: bytes, diff: float) -> bool:
    """Whether a ticket hash clears difficulty ``diff``."""
    return beats_threshold(hash_bytes, difficulty_threshold(diff))


def draw(vrf_hash: bytes, index: int, num: int, threshold: int) -> bytes | None:
    """Hash one ticket and return its hash if it wins, else None."""
    h = ticket_hash(vrf_hash, index, num)
    if beats_threshold(h, threshold):
        return h
    return None
