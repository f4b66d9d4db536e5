"""Pool state and its fixed storage layout.

Storage layout (little-endian where numeric):

    offset  length  field
    0       8       denomination (u64)
    8       960     roots[0..30], 32 bytes each
    968     1       current_root_index (u8)

Total: 969 bytes. Field order and widths are part of the persisted format.
"""

from dataclasses import dataclass, field
from typing import Union

from zkpool.core.root_history import ROOT_HISTORY_SIZE, RootHistory
from zkpool.exceptions import InvalidMixerStateError, StorageTooSmallError
from zkpool.utils.encoding import HASH_LENGTH

DENOMINATION_OFFSET = 0
DENOMINATION_LENGTH = 8
ROOTS_OFFSET = DENOMINATION_OFFSET + DENOMINATION_LENGTH
ROOT_INDEX_OFFSET = ROOTS_OFFSET + HASH_LENGTH * ROOT_HISTORY_SIZE
STATE_LEN = ROOT_INDEX_OFFSET + 1

MAX_U64 = 2**64 - 1


@dataclass
class PoolState:
    """Configuration and root history of one deployed pool."""

    denomination: int
    history: RootHistory = field(default_factory=RootHistory)

    def __post_init__(self):
        if not 0 <= self.denomination <= MAX_U64:
            raise ValueError("Denomination must fit in an unsigned 64-bit integer")

    def is_known_root(self, root: bytes) -> bool:
        return self.history.is_known_root(root)

    def push_root(self, root: bytes) -> int:
        return self.history.push_root(root)

    @property
    def current_root_index(self) -> int:
        return self.history.current_root_index

    @property
    def roots(self):
        return self.history.roots

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "denomination": self.denomination,
            "current_root_index": self.current_root_index,
            "latest_root": self.history.latest_root().hex(),
            "known_roots": [root.hex() for root in self.history.known_roots()],
        }


def pack_state(state: PoolState) -> bytes:
    """Serialize ``state`` to exactly ``STATE_LEN`` bytes."""
    return (
        state.denomination.to_bytes(DENOMINATION_LENGTH, "little")
        + b"".join(state.history.roots)
        + bytes([state.history.current_root_index])
    )


def unpack_state(data: Union[bytes, bytearray, memoryview]) -> PoolState:
    """
    Deserialize pool state from a storage buffer.

    Only the first ``STATE_LEN`` bytes are read.

    Raises:
        StorageTooSmallError: If the buffer is shorter than the layout
        InvalidMixerStateError: If the stored root index is out of range
    """
    if len(data) < STATE_LEN:
        raise StorageTooSmallError(
            f"State storage is {len(data)} bytes, layout requires {STATE_LEN}"
        )

    data = bytes(data[:STATE_LEN])
    denomination = int.from_bytes(data[DENOMINATION_OFFSET:ROOTS_OFFSET], "little")
    roots = [
        data[ROOTS_OFFSET + i * HASH_LENGTH:ROOTS_OFFSET + (i + 1) * HASH_LENGTH]
        for i in range(ROOT_HISTORY_SIZE)
    ]
    current_root_index = data[ROOT_INDEX_OFFSET]
    if current_root_index >= ROOT_HISTORY_SIZE:
        raise InvalidMixerStateError(f"Stored root index {current_root_index} is out of range")

    return PoolState(
        denomination=denomination,
        history=RootHistory(roots=roots, current_root_index=current_root_index),
    )


def write_state(buffer: bytearray, state: PoolState) -> None:
    """
    Overwrite the layout region of ``buffer`` in place.

    Raises:
        StorageTooSmallError: If the buffer is shorter than the layout;
            nothing is written in that case
    """
    if len(buffer) < STATE_LEN:
        raise StorageTooSmallError(
            f"State storage is {len(buffer)} bytes, layout requires {STATE_LEN}"
        )
    buffer[:STATE_LEN] = pack_state(state)
