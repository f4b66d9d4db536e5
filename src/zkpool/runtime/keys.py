"""Ed25519 keypairs: an account address is its 32-byte public key."""

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from zkpool.utils.encoding import bytes_to_hex


class Keypair:
    """Signing key for one ledger account."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        self.address = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @classmethod
    def generate(cls) -> "Keypair":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        """Deterministic keypair from a 32-byte seed."""
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    def __repr__(self) -> str:
        return f"Keypair({bytes_to_hex(self.address)[:18]}...)"


def verify_signature(address: bytes, message: bytes, signature: bytes) -> bool:
    """Check an Ed25519 signature made by the key behind ``address``."""
    try:
        Ed25519PublicKey.from_public_bytes(address).verify(signature, message)
        return True
    except (InvalidSignature, ValueError):
        return False
