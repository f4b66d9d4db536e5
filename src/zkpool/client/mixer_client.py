"""Client-side helpers: derived addresses and transaction builders.

Typical withdraw flow:

    addresses = get_mixer_addresses(program_id, verifier_program_id)
    proof = prover.prove(PublicInputs(root, nullifier_hash, recipient_field))
    tx = build_withdraw_transaction(
        addresses, root, nullifier_hash, recipient.address, proof,
        relayer=relayer.address,
    ).sign(relayer)
    runtime.send_transaction(tx)

Deposits are signed system Transfers into ``addresses.vault`` followed
by a PushRoot carrying the new off-chain tree root:

    runtime.send_transaction(
        build_transfer_transaction(depositor.address, addresses.vault, denomination)
        .sign(depositor)
    )
"""

from dataclasses import dataclass
from typing import Optional

from zkpool.core.addresses import (
    derive_nullifier_address,
    derive_state_address,
    derive_vault_address,
    recipient_field_for,
)
from zkpool.core.instruction import Initialize, PushRoot, Withdraw
from zkpool.core.state import unpack_state
from zkpool.runtime.system import build_transfer_transaction
from zkpool.runtime.transaction import AccountMeta, Transaction

__all__ = [
    "MixerAddresses",
    "build_initialize_transaction",
    "build_push_root_transaction",
    "build_transfer_transaction",
    "build_withdraw_transaction",
    "get_latest_root",
    "get_mixer_addresses",
]


@dataclass(frozen=True)
class MixerAddresses:
    """Fixed addresses of one deployed pool."""

    program_id: bytes
    verifier_program_id: bytes
    state: bytes
    vault: bytes

    def nullifier(self, nullifier_hash: bytes) -> bytes:
        return derive_nullifier_address(self.program_id, nullifier_hash)


def get_mixer_addresses(program_id: bytes, verifier_program_id: bytes) -> MixerAddresses:
    return MixerAddresses(
        program_id=program_id,
        verifier_program_id=verifier_program_id,
        state=derive_state_address(program_id),
        vault=derive_vault_address(program_id),
    )


def build_initialize_transaction(
    addresses: MixerAddresses, denomination: int, payer: bytes
) -> Transaction:
    return Transaction(
        program_id=addresses.program_id,
        accounts=[
            AccountMeta(payer, is_signer=True, is_writable=True),
            AccountMeta(addresses.state, is_writable=True),
        ],
        data=Initialize(denomination).pack(),
    )


def build_push_root_transaction(
    addresses: MixerAddresses, root: bytes, authority: bytes
) -> Transaction:
    return Transaction(
        program_id=addresses.program_id,
        accounts=[
            AccountMeta(authority, is_signer=True),
            AccountMeta(addresses.state, is_writable=True),
        ],
        data=PushRoot(root).pack(),
    )


def build_withdraw_transaction(
    addresses: MixerAddresses,
    root: bytes,
    nullifier_hash: bytes,
    recipient: bytes,
    proof: bytes,
    relayer: bytes,
    recipient_field: Optional[bytes] = None,
    recipient_signs: bool = False,
) -> Transaction:
    """
    Build a Withdraw transaction.

    Args:
        addresses: Pool addresses
        root: Known Merkle root the proof was made against
        nullifier_hash: Nullifier hash of the spent deposit
        recipient: Payout address
        proof: ``proof_bytes || public_witness``
        relayer: Sender of the transaction; always signs
        recipient_field: Override for the field-encoded recipient
        recipient_signs: Whether the recipient co-signs and funds the marker
    """
    if recipient_field is None:
        recipient_field = recipient_field_for(recipient)

    return Transaction(
        program_id=addresses.program_id,
        accounts=[
            AccountMeta(relayer, is_signer=True, is_writable=True),
            AccountMeta(addresses.state, is_writable=True),
            AccountMeta(addresses.nullifier(nullifier_hash), is_writable=True),
            AccountMeta(addresses.vault, is_writable=True),
            AccountMeta(recipient, is_signer=recipient_signs, is_writable=True),
            AccountMeta(addresses.verifier_program_id),
        ],
        data=Withdraw(root, nullifier_hash, recipient_field, proof).pack(),
    )


def get_latest_root(state_data: bytes) -> bytes:
    """Most recently pushed root from raw state account data."""
    return unpack_state(state_data).history.latest_root()
