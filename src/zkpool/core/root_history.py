"""Bounded history of accepted Merkle roots.

The pool does not build the deposit tree itself. Roots are computed
off-chain and pushed here; a withdrawal is only accepted against a root
that is still inside the window of the last ``ROOT_HISTORY_SIZE`` pushes.

Ring layout:

    slot:    0    1    2   ...  29
           [r30][r31][r2] ... [r29]      current_root_index = 1
                  ^ newest

``push_root`` advances the cursor first and then overwrites, so the slot
at ``current_root_index`` always holds the most recent root. A freshly
initialized ring is all zeros with the cursor at 0; the first push lands
in slot 1.
"""

from typing import List, Optional

from zkpool.utils.encoding import HASH_LENGTH

ROOT_HISTORY_SIZE = 30
ZERO_ROOT = bytes(HASH_LENGTH)


class RootHistory:
    """Fixed-size ring buffer of the most recent roots, oldest overwritten first."""

    def __init__(self, roots: Optional[List[bytes]] = None, current_root_index: int = 0):
        if roots is None:
            roots = [ZERO_ROOT] * ROOT_HISTORY_SIZE
        if len(roots) != ROOT_HISTORY_SIZE:
            raise ValueError(f"Root history must hold exactly {ROOT_HISTORY_SIZE} slots")
        if not 0 <= current_root_index < ROOT_HISTORY_SIZE:
            raise ValueError(f"Root index out of range: {current_root_index}")
        for root in roots:
            if len(root) != HASH_LENGTH:
                raise ValueError("Roots must be 32 bytes")

        self.roots: List[bytes] = [bytes(root) for root in roots]
        self.current_root_index = current_root_index

    def is_known_root(self, root: bytes) -> bool:
        """
        Check whether ``root`` is one of the retained roots.

        The all-zero value marks an unwritten slot and is never known.
        Slots are scanned from the newest backward so recent roots match
        first.
        """
        if root == ZERO_ROOT:
            return False

        idx = self.current_root_index
        for _ in range(ROOT_HISTORY_SIZE):
            if self.roots[idx] == root:
                return True
            idx = idx - 1 if idx > 0 else ROOT_HISTORY_SIZE - 1
        return False

    def push_root(self, root: bytes) -> int:
        """
        Record a new root, expiring the oldest one.

        Returns:
            int: Slot the root was written to
        """
        if len(root) != HASH_LENGTH:
            raise ValueError("Root must be 32 bytes")

        next_index = (self.current_root_index + 1) % ROOT_HISTORY_SIZE
        self.roots[next_index] = bytes(root)
        self.current_root_index = next_index
        return next_index

    def latest_root(self) -> bytes:
        """Root in the most recently written slot (zero if nothing pushed)."""
        return self.roots[self.current_root_index]

    def known_roots(self) -> List[bytes]:
        """Non-zero roots, newest first. Duplicates are reported once."""
        seen = []
        idx = self.current_root_index
        for _ in range(ROOT_HISTORY_SIZE):
            root = self.roots[idx]
            if root != ZERO_ROOT and root not in seen:
                seen.append(root)
            idx = idx - 1 if idx > 0 else ROOT_HISTORY_SIZE - 1
        return seen

    def __len__(self) -> int:
        return ROOT_HISTORY_SIZE

    def __eq__(self, other) -> bool:
        if not isinstance(other, RootHistory):
            return NotImplemented
        return self.roots == other.roots and self.current_root_index == other.current_root_index

    def __repr__(self) -> str:
        return f"RootHistory(current_root_index={self.current_root_index}, known={len(self.known_roots())})"
