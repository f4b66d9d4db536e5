"""Deterministic account identities derived from the program id."""

from zkpool.utils.encoding import HASH_LENGTH
from zkpool.utils.hash import hash_concatenate

STATE_SEED = b"mixer_state"
VAULT_SEED = b"mixer_vault"
NULLIFIER_SEED = b"nullifier"
DERIVATION_MARKER = b"ProgramDerivedAddress"

# BN254 scalar field order; public inputs of the withdraw circuit live here.
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617


def derive_program_address(program_id: bytes, *seeds: bytes) -> bytes:
    """
    Derive a 32-byte address owned by ``program_id``.

    address = SHA-256(seed_0 || ... || seed_n || program_id || "ProgramDerivedAddress")
    """
    if len(program_id) != HASH_LENGTH:
        raise ValueError("Program id must be 32 bytes")
    for seed in seeds:
        if len(seed) > 32:
            raise ValueError("Seeds are limited to 32 bytes")
    return hash_concatenate(*seeds, program_id, DERIVATION_MARKER)


def derive_state_address(program_id: bytes) -> bytes:
    return derive_program_address(program_id, STATE_SEED)


def derive_vault_address(program_id: bytes) -> bytes:
    return derive_program_address(program_id, VAULT_SEED)


def derive_nullifier_address(program_id: bytes, nullifier_hash: bytes) -> bytes:
    """Marker address for a nullifier. Same hash, same address."""
    if len(nullifier_hash) != HASH_LENGTH:
        raise ValueError("Nullifier hash must be 32 bytes")
    return derive_program_address(program_id, NULLIFIER_SEED, nullifier_hash)


def recipient_field_for(address: bytes) -> bytes:
    """
    Field encoding of a recipient address as the circuit sees it.

    The address is read as a little-endian integer, reduced into the
    scalar field and written back as 32 little-endian bytes.
    """
    if len(address) != HASH_LENGTH:
        raise ValueError("Address must be 32 bytes")
    value = int.from_bytes(address, "little") % FIELD_MODULUS
    return value.to_bytes(HASH_LENGTH, "little")
