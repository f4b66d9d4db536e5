"""Unit tests for derived addresses and recipient encoding."""

import hashlib

import pytest

from zkpool.core.addresses import (
    FIELD_MODULUS,
    derive_nullifier_address,
    derive_program_address,
    derive_state_address,
    derive_vault_address,
    recipient_field_for,
)


class TestDerivation:
    """Test program-derived addresses."""

    def test_state_address_formula(self, program_id):
        expected = hashlib.sha256(b"mixer_state" + program_id + b"ProgramDerivedAddress").digest()
        assert derive_state_address(program_id) == expected

    def test_distinct_roles(self, program_id):
        state = derive_state_address(program_id)
        vault = derive_vault_address(program_id)
        marker = derive_nullifier_address(program_id, b"\x01" * 32)
        assert len({state, vault, marker}) == 3

    def test_nullifier_address_deterministic(self, program_id):
        nullifier = b"\x42" * 32
        assert derive_nullifier_address(program_id, nullifier) == derive_nullifier_address(
            program_id, nullifier
        )
        assert derive_nullifier_address(program_id, nullifier) != derive_nullifier_address(
            program_id, b"\x43" * 32
        )

    def test_depends_on_program(self, program_id, verifier_program_id):
        assert derive_vault_address(program_id) != derive_vault_address(verifier_program_id)

    def test_invalid_program_id(self):
        with pytest.raises(ValueError):
            derive_program_address(b"\x01" * 31, b"seed")

    def test_seed_too_long(self, program_id):
        with pytest.raises(ValueError):
            derive_program_address(program_id, b"\x00" * 33)


class TestRecipientField:
    """Test the field encoding of recipient addresses."""

    def test_small_value_unchanged(self):
        address = (12345).to_bytes(32, "little")
        assert recipient_field_for(address) == address

    def test_reduced_modulo_field(self):
        address = b"\xff" * 32
        value = int.from_bytes(recipient_field_for(address), "little")
        assert value == (2**256 - 1) % FIELD_MODULUS
        assert value < FIELD_MODULUS

    def test_modulus_maps_to_zero(self):
        assert recipient_field_for(FIELD_MODULUS.to_bytes(32, "little")) == bytes(32)

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            recipient_field_for(b"\x01" * 20)
