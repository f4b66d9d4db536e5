"""Proof verification interface and a reference Schnorr backend.

A withdraw proof blob is the backend proof followed by its public witness:

    proof_blob = proof_bytes || public_witness

    public_witness = nb_public:u32BE || nb_secret:u32BE || length:u32BE
                     || root:32 || nullifier_hash:32 || recipient_field:32

The verifier authenticates the public witness together with the proof.
``ProofVerifier.verify`` additionally requires the authenticated public
inputs to equal the root, nullifier hash and recipient field the withdraw
handler is acting on; without that binding a valid proof for one
recipient could be replayed to pay another.

The Schnorr backend stands in for a SNARK verifier: a proof is a Schnorr
signature over the public witness made with the prover key held by the
proving service. It is an attestation, not a zero-knowledge proof, and
is intended for local deployments and tests.
"""

import logging
import secrets
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from Crypto.Hash import SHA256
from Crypto.PublicKey import ECC

from zkpool.exceptions import MalformedProofError
from zkpool.utils.encoding import HASH_LENGTH

logger = logging.getLogger(__name__)

NUM_PUBLIC_INPUTS = 3
WITNESS_HEADER = struct.Struct(">III")
PUBLIC_WITNESS_LENGTH = WITNESS_HEADER.size + NUM_PUBLIC_INPUTS * HASH_LENGTH


@dataclass(frozen=True)
class PublicInputs:
    """Public inputs of the withdraw circuit, in circuit order."""

    root: bytes
    nullifier_hash: bytes
    recipient_field: bytes


def encode_public_witness(inputs: PublicInputs) -> bytes:
    """Serialize public inputs into the witness layout appended to proofs."""
    elements = (inputs.root, inputs.nullifier_hash, inputs.recipient_field)
    for element in elements:
        if len(element) != HASH_LENGTH:
            raise ValueError("Public inputs must be 32 bytes each")
    header = WITNESS_HEADER.pack(NUM_PUBLIC_INPUTS, 0, NUM_PUBLIC_INPUTS)
    return header + b"".join(elements)


def decode_public_witness(witness: bytes) -> PublicInputs:
    """
    Parse a public witness.

    Raises:
        MalformedProofError: If the length or header does not match
    """
    if len(witness) != PUBLIC_WITNESS_LENGTH:
        raise MalformedProofError(
            f"Public witness must be {PUBLIC_WITNESS_LENGTH} bytes, got {len(witness)}"
        )
    nb_public, nb_secret, length = WITNESS_HEADER.unpack_from(witness)
    if (nb_public, nb_secret, length) != (NUM_PUBLIC_INPUTS, 0, NUM_PUBLIC_INPUTS):
        raise MalformedProofError(
            f"Unexpected witness header ({nb_public}, {nb_secret}, {length})"
        )
    body = witness[WITNESS_HEADER.size:]
    return PublicInputs(
        root=body[0:32],
        nullifier_hash=body[32:64],
        recipient_field=body[64:96],
    )


def split_proof_blob(blob: bytes) -> Tuple[bytes, PublicInputs]:
    """Split ``proof_bytes || public_witness`` and parse the witness."""
    if len(blob) < PUBLIC_WITNESS_LENGTH:
        raise MalformedProofError("Proof blob is shorter than its public witness")
    split_at = len(blob) - PUBLIC_WITNESS_LENGTH
    return blob[:split_at], decode_public_witness(blob[split_at:])


def build_proof_blob(proof_bytes: bytes, inputs: PublicInputs) -> bytes:
    return proof_bytes + encode_public_witness(inputs)


class ProofVerifier(ABC):
    """
    Accept/reject contract for withdraw proofs.

    Subclasses implement ``verify_proof`` for one proving system. The
    binding of authenticated public inputs to the withdraw arguments is
    done here so every backend gets it.
    """

    def verify(self, proof: bytes, expected: PublicInputs) -> bool:
        """
        Verify ``proof`` and require its public inputs to equal ``expected``.

        Returns:
            bool: True only if the proof is valid for exactly ``expected``
        """
        try:
            proof_bytes, inputs = split_proof_blob(proof)
        except MalformedProofError as e:
            logger.warning(f"Rejecting malformed proof: {e}")
            return False

        if inputs != expected:
            logger.warning("Proof public inputs do not match the withdrawal")
            return False

        return self.verify_proof(proof_bytes, encode_public_witness(inputs))

    @abstractmethod
    def verify_proof(self, proof_bytes: bytes, public_witness: bytes) -> bool:
        """Check ``proof_bytes`` against the serialized public witness."""


# NIST P-256 parameters
_CURVE = "P-256"
_ORDER = 0xffffffff00000000ffffffffffffffffbce6faada7179e84f3b9cac2fc632551
_GX = 0x6b17d1f2e12c4247f8bce6e563a440f277037d812deb33a0f4a13945d898c296
_GY = 0x4fe342e2fe1a7f9b8ee7eb4a7c0f9e162bce33576b315ececbb6406837bf51f5
_GENERATOR = ECC.EccPoint(_GX, _GY, curve=_CURVE)
SCHNORR_PROOF_LENGTH = 96


def _point_to_bytes(point) -> bytes:
    return int(point.x).to_bytes(32, "big") + int(point.y).to_bytes(32, "big")


def _point_from_bytes(data: bytes):
    """Decode ``x || y``; raises ValueError off the curve or at infinity."""
    if len(data) != 64:
        raise ValueError("Point encoding must be 64 bytes")
    x = int.from_bytes(data[:32], "big")
    y = int.from_bytes(data[32:], "big")
    point = ECC.EccPoint(x, y, curve=_CURVE)
    if point.is_point_at_infinity():
        raise ValueError("Point at infinity is not a valid encoding")
    return point


def _challenge(commitment: bytes, public_key: bytes, message: bytes) -> int:
    """Fiat-Shamir challenge e = H(R || P || m) mod n."""
    digest = SHA256.new(commitment + public_key + message).digest()
    return int.from_bytes(digest, "big") % _ORDER


class SchnorrProver:
    """Proving-service side of the Schnorr backend."""

    def __init__(self, secret: Optional[int] = None):
        if secret is None:
            secret = secrets.randbelow(_ORDER - 1) + 1
        if not 0 < secret < _ORDER:
            raise ValueError("Secret scalar out of range")
        self._secret = secret
        self.public_key = _point_to_bytes(_GENERATOR * secret)

    def prove(self, inputs: PublicInputs) -> bytes:
        """Produce ``proof_bytes || public_witness`` for ``inputs``."""
        witness = encode_public_witness(inputs)
        nonce = secrets.randbelow(_ORDER - 1) + 1
        commitment = _point_to_bytes(_GENERATOR * nonce)
        e = _challenge(commitment, self.public_key, witness)
        s = (nonce + e * self._secret) % _ORDER
        return commitment + s.to_bytes(32, "big") + witness


class SchnorrProofVerifier(ProofVerifier):
    """Verifies Schnorr attestations made by one prover key."""

    def __init__(self, public_key: bytes):
        self._point = _point_from_bytes(public_key)
        self.public_key = public_key

    def verify_proof(self, proof_bytes: bytes, public_witness: bytes) -> bool:
        if len(proof_bytes) != SCHNORR_PROOF_LENGTH:
            return False

        commitment, s_bytes = proof_bytes[:64], proof_bytes[64:]
        try:
            r_point = _point_from_bytes(commitment)
        except ValueError:
            return False

        s = int.from_bytes(s_bytes, "big")
        if s >= _ORDER:
            return False

        e = _challenge(commitment, self.public_key, public_witness)
        lhs = _GENERATOR * s
        rhs = r_point + self._point * e
        if lhs.is_point_at_infinity() or rhs.is_point_at_infinity():
            return False
        return lhs.x == rhs.x and lhs.y == rhs.y
