"""Verifiable Random Function (VRF) over secp256k1.

Provides the unpredictable but verifiable per-round randomness that
sortition draws its tickets from.

CONSTRUCTION
============

ECVRF-SECP256K1-SHA256-TAI, following the structure of RFC 9381:

1. H = hash_to_curve(PK, alpha) by try-and-increment
2. Gamma = x * H
3. k = RFC 6979 nonce over SHA256(H)
4. c = SHA256(suite || 0x02 || PK || H || Gamma || k*G || k*H || 0x00)[:16]
5. s = k + c * x (mod n)
6. proof = Gamma || c || s (33 + 16 + 32 = 81 bytes)
7. beta = SHA256(suite || 0x03 || Gamma || 0x00)

Unlike a plain deterministic signature, Gamma is fixed by (key, alpha), so
the output is unique even against a signer choosing its own nonce.

Key handling (generation, raw scalars, PEM, public key encoding) goes
through ``cryptography``; group arithmetic and RFC 6979 nonces through
``ecdsa``, since ``cryptography`` does not expose raw point operations.

See: https://datatracker.ietf.org/doc/html/rfc9381
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from ecdsa import SECP256k1
from ecdsa.ellipticcurve import INFINITY, PointJacobi
from ecdsa.rfc6979 import generate_k

from .exceptions import InvalidVRFKeyError, VRFVerificationError
from .models import SortitionInput, VRFOutput

logger = logging.getLogger(__name__)

# Suite identifier for ECVRF-SECP256K1-SHA256-TAI
SUITE = b"\xfe"

_CURVE = SECP256k1.curve
_G = SECP256k1.generator
_N = SECP256k1.order
_P = _CURVE.p()

POINT_SIZE = 33  # SEC1 compressed
CHALLENGE_SIZE = 16
SCALAR_SIZE = 32
PROOF_SIZE = POINT_SIZE + CHALLENGE_SIZE + SCALAR_SIZE
OUTPUT_SIZE = 32


# =============================================================================
# POINT ENCODING
# =============================================================================


def _encode_point(point) -> bytes:
    if point == INFINITY:
        raise ValueError("Cannot encode the point at infinity")
    x, y = point.x(), point.y()
    return bytes([2 + (y & 1)]) + x.to_bytes(32, "big")


def _decode_point(data: bytes) -> PointJacobi:
    """Decode a SEC1 compressed point, raising ValueError if it is not on the curve."""
    if len(data) != POINT_SIZE or data[0] not in (2, 3):
        raise ValueError("Invalid compressed point encoding")
    x = int.from_bytes(data[1:], "big")
    if x >= _P:
        raise ValueError("Point x-coordinate out of range")
    y2 = (pow(x, 3, _P) + _CURVE.a() * x + _CURVE.b()) % _P
    y = pow(y2, (_P + 1) // 4, _P)
    if (y * y) % _P != y2:
        raise ValueError("Point is not on the curve")
    if (y & 1) != (data[0] & 1):
        y = _P - y
    return PointJacobi(_CURVE, x, y, 1, _N)


def _public_point(public_key_bytes: bytes) -> PointJacobi:
    """Parse a public key through cryptography, which validates the point."""
    pub = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), public_key_bytes)
    numbers = pub.public_numbers()
    return PointJacobi(_CURVE, numbers.x, numbers.y, 1, _N)


# =============================================================================
# ECVRF PRIMITIVES
# =============================================================================


def _hash_to_curve(pk: bytes, alpha: bytes) -> PointJacobi:
    for ctr in range(256):
        digest = hashlib.sha256(SUITE + b"\x01" + pk + alpha + bytes([ctr]) + b"\x00").digest()
        try:
            return _decode_point(b"\x02" + digest)
        except ValueError:
            continue
    # Probability 2^-256; RFC 9381 treats this as an invalid input
    raise ValueError("hash_to_curve failed to find a valid point")


def _challenge(*points) -> int:
    data = SUITE + b"\x02" + b"".join(_encode_point(p) for p in points) + b"\x00"
    return int.from_bytes(hashlib.sha256(data).digest()[:CHALLENGE_SIZE], "big")


def _gamma_to_hash(gamma_bytes: bytes) -> bytes:
    # Cofactor of secp256k1 is 1, so Gamma is hashed as is
    return hashlib.sha256(SUITE + b"\x03" + gamma_bytes + b"\x00").digest()


def proof_to_hash(public_key_bytes: bytes, alpha: bytes, proof: bytes) -> bytes:
    """Verify a VRF proof and return the output it commits to.

    Args:
        public_key_bytes: SEC1 compressed secp256k1 public key (33 bytes)
        alpha: The VRF input
        proof: The 81-byte proof

    Returns:
        The 32-byte VRF output

    Raises:
        VRFVerificationError: If the key or proof is malformed, or the
            proof does not validate
    """
    # H is derived from the key bytes, so only the compressed form is accepted
    if len(public_key_bytes) != POINT_SIZE or public_key_bytes[0] not in (2, 3):
        raise VRFVerificationError("Public key must be a 33-byte SEC1 compressed point")
    try:
        y_point = _public_point(public_key_bytes)
    except (ValueError, TypeError) as e:
        raise VRFVerificationError(f"Invalid public key: {e}") from e

    if len(proof) != PROOF_SIZE:
        raise VRFVerificationError(f"Invalid proof length: {len(proof)}, expected {PROOF_SIZE}")

    gamma_bytes = proof[:POINT_SIZE]
    c = int.from_bytes(proof[POINT_SIZE : POINT_SIZE + CHALLENGE_SIZE], "big")
    s = int.from_bytes(proof[POINT_SIZE + CHALLENGE_SIZE :], "big")
    if s >= _N:
        raise VRFVerificationError("Proof scalar out of range")
    try:
        gamma = _decode_point(gamma_bytes)
        h_point = _hash_to_curve(public_key_bytes, alpha)
    except ValueError as e:
        raise VRFVerificationError(f"Invalid proof point: {e}") from e

    neg_c = (-c) % _N
    u = _G * s + y_point * neg_c
    v = h_point * s + gamma * neg_c
    try:
        expected = _challenge(y_point, h_point, gamma, u, v)
    except ValueError as e:
        raise VRFVerificationError(f"Degenerate proof: {e}") from e

    if not hmac.compare_digest(expected.to_bytes(CHALLENGE_SIZE, "big"), c.to_bytes(CHALLENGE_SIZE, "big")):
        raise VRFVerificationError("VRF proof challenge mismatch")

    return _gamma_to_hash(gamma_bytes)


def vrf_verify(public_key_bytes: bytes, alpha: bytes, proof: bytes, vrf_hash: bytes) -> None:
    """Check that ``proof`` validates ``vrf_hash`` for the key and input.

    Pure and safe to call concurrently.

    Raises:
        VRFVerificationError: On any malformed key or proof, or when the
            proven output differs from ``vrf_hash``
    """
    beta = proof_to_hash(public_key_bytes, alpha, proof)
    if not hmac.compare_digest(beta, bytes(vrf_hash)):
        raise VRFVerificationError("Invalid VRF hash")


# =============================================================================
# VRF KEY
# =============================================================================


class VRF:
    """VRF evaluator bound to one secp256k1 private key.

    Example:
        >>> vrf = VRF.generate()
        >>> output = vrf.prove(b"round input")
        >>> VRF.verify(vrf.public_key_bytes, b"round input", output)
        True
    """

    def __init__(
        self,
        private_key: ec.EllipticCurvePrivateKey | None = None,
        private_key_bytes: bytes | None = None,
    ):
        """Initialize VRF with a secp256k1 private key.

        Args:
            private_key: EllipticCurvePrivateKey on SECP256K1 (from cryptography)
            private_key_bytes: 32-byte big-endian private scalar

        Raises:
            InvalidVRFKeyError: If the key is missing, on another curve, or
                out of range
        """
        if private_key is None and private_key_bytes is not None:
            if len(private_key_bytes) != 32:
                raise InvalidVRFKeyError(f"Private key must be 32 bytes, got {len(private_key_bytes)}")
            try:
                private_key = ec.derive_private_key(int.from_bytes(private_key_bytes, "big"), ec.SECP256K1())
            except ValueError as e:
                raise InvalidVRFKeyError(f"Invalid private scalar: {e}") from e
        if private_key is None:
            raise InvalidVRFKeyError("Either private_key or private_key_bytes must be provided")
        if not isinstance(private_key, ec.EllipticCurvePrivateKey) or private_key.curve.name != "secp256k1":
            raise InvalidVRFKeyError("VRF requires a secp256k1 private key")

        self._private_key = private_key
        self._secret = private_key.private_numbers().private_value
        self._public_key_bytes = private_key.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.CompressedPoint,
        )

    @classmethod
    def generate(cls) -> VRF:
        """Generate a new VRF key pair."""
        return cls(private_key=ec.generate_private_key(ec.SECP256K1()))

    @classmethod
    def from_pem(cls, data: bytes, password: bytes | None = None) -> VRF:
        """Load a VRF key from a PEM-encoded private key."""
        try:
            key = serialization.load_pem_private_key(data, password=password)
        except (ValueError, TypeError) as e:
            raise InvalidVRFKeyError(f"Cannot load PEM private key: {e}") from e
        return cls(private_key=key)

    @property
    def public_key_bytes(self) -> bytes:
        """Get the SEC1 compressed public key."""
        return self._public_key_bytes

    @property
    def private_key_bytes(self) -> bytes:
        """Get the private scalar as 32 big-endian bytes."""
        return self._secret.to_bytes(32, "big")

    def prove(self, alpha: bytes) -> VRFOutput:
        """Compute the VRF output and proof for input alpha.

        Deterministic: the same key and input always give byte-identical
        output and proof.
        """
        pk = self._public_key_bytes
        h_point = _hash_to_curve(pk, alpha)
        h_bytes = _encode_point(h_point)
        gamma = h_point * self._secret

        k = generate_k(_N, self._secret, hashlib.sha256, hashlib.sha256(h_bytes).digest())
        c = _challenge(_public_point(pk), h_point, gamma, _G * k, h_point * k)
        s = (k + c * self._secret) % _N

        gamma_bytes = _encode_point(gamma)
        proof = gamma_bytes + c.to_bytes(CHALLENGE_SIZE, "big") + s.to_bytes(SCALAR_SIZE, "big")
        return VRFOutput(hash=_gamma_to_hash(gamma_bytes), proof=proof)

    @classmethod
    def from_key(cls, key: VRF | ec.EllipticCurvePrivateKey | bytes) -> VRF:
        """Coerce whatever a key store hands out into a VRF key."""
        if isinstance(key, VRF):
            return key
        if isinstance(key, (bytes, bytearray)):
            return cls(private_key_bytes=bytes(key))
        return cls(private_key=key)

    @staticmethod
    def verify(public_key_bytes: bytes, alpha: bytes, output: VRFOutput) -> bool:
        """Verify a VRF output and proof.

        Returns:
            True if the proof is valid, False otherwise
        """
        try:
            vrf_verify(public_key_bytes, alpha, output.proof, output.hash)
        except VRFVerificationError as e:
            logger.debug(f"VRF verification failed: {e}")
            return False
        return True


def evaluate(vrf: VRF, sort_input: SortitionInput) -> VRFOutput:
    """Evaluate the VRF over the canonical encoding of a sortition input."""
    return vrf.prove(sort_input.encode())
