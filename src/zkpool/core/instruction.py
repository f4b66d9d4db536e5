"""Instruction wire format.

    0x00 || denomination:u64LE                                        Initialize
    0x01 || new_root:32                                               PushRoot
    0x02 || root:32 || nullifier_hash:32 || recipient_field:32 || proof  Withdraw

The decoder only checks tags and lengths. It never looks inside the
proof blob; that is the verifier's job.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from zkpool.exceptions import InvalidInstructionError
from zkpool.utils.encoding import HASH_LENGTH

WITHDRAW_FIXED_LENGTH = 3 * HASH_LENGTH


class InstructionTag(IntEnum):
    INITIALIZE = 0
    PUSH_ROOT = 1
    WITHDRAW = 2


@dataclass(frozen=True)
class Initialize:
    """Create (if needed) and initialize the pool state."""

    denomination: int

    tag = InstructionTag.INITIALIZE

    def pack(self) -> bytes:
        return bytes([self.tag]) + self.denomination.to_bytes(8, "little")


@dataclass(frozen=True)
class PushRoot:
    """Record a new Merkle root. Moves no funds."""

    new_root: bytes

    tag = InstructionTag.PUSH_ROOT

    def pack(self) -> bytes:
        if len(self.new_root) != HASH_LENGTH:
            raise ValueError("new_root must be 32 bytes")
        return bytes([self.tag]) + self.new_root


@dataclass(frozen=True)
class Withdraw:
    """Withdraw one denomination against a proof bundle."""

    root: bytes
    nullifier_hash: bytes
    recipient_field: bytes
    proof: bytes = b""

    tag = InstructionTag.WITHDRAW

    def pack(self) -> bytes:
        for name in ("root", "nullifier_hash", "recipient_field"):
            if len(getattr(self, name)) != HASH_LENGTH:
                raise ValueError(f"{name} must be 32 bytes")
        return (
            bytes([self.tag])
            + self.root
            + self.nullifier_hash
            + self.recipient_field
            + self.proof
        )


MixerInstruction = Union[Initialize, PushRoot, Withdraw]


def unpack_instruction(data: bytes) -> MixerInstruction:
    """
    Decode an instruction payload.

    Raises:
        InvalidInstructionError: On an empty payload, unknown tag or
            length mismatch
    """
    if not data:
        raise InvalidInstructionError("Empty instruction data")

    tag, rest = data[0], bytes(data[1:])

    if tag == InstructionTag.INITIALIZE:
        if len(rest) != 8:
            raise InvalidInstructionError(f"Initialize expects 8 bytes, got {len(rest)}")
        return Initialize(denomination=int.from_bytes(rest, "little"))

    if tag == InstructionTag.PUSH_ROOT:
        if len(rest) != HASH_LENGTH:
            raise InvalidInstructionError(f"PushRoot expects 32 bytes, got {len(rest)}")
        return PushRoot(new_root=rest)

    if tag == InstructionTag.WITHDRAW:
        if len(rest) < WITHDRAW_FIXED_LENGTH:
            raise InvalidInstructionError(
                f"Withdraw expects at least {WITHDRAW_FIXED_LENGTH} bytes, got {len(rest)}"
            )
        return Withdraw(
            root=rest[0:32],
            nullifier_hash=rest[32:64],
            recipient_field=rest[64:96],
            proof=rest[96:],
        )

    raise InvalidInstructionError(f"Unknown instruction tag: {tag}")
