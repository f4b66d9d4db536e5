"""Account metas and signed transactions submitted to the runtime."""

from dataclasses import dataclass, field
from typing import Dict, List

from zkpool.runtime.keys import Keypair
from zkpool.utils.hash import hash_concatenate


@dataclass(frozen=True)
class AccountMeta:
    """An account passed to an instruction, with its access flags."""

    address: bytes
    is_signer: bool = False
    is_writable: bool = False


@dataclass
class Transaction:
    """One instruction for one program, plus signatures over its message."""

    program_id: bytes
    accounts: List[AccountMeta]
    data: bytes
    signatures: Dict[bytes, bytes] = field(default_factory=dict)

    def message(self) -> bytes:
        """Bytes covered by every signature."""
        parts = [self.program_id, len(self.accounts).to_bytes(2, "little")]
        for meta in self.accounts:
            flags = (1 if meta.is_signer else 0) | (2 if meta.is_writable else 0)
            parts.append(meta.address + bytes([flags]))
        parts.append(len(self.data).to_bytes(4, "little"))
        parts.append(self.data)
        return b"".join(parts)

    def message_hash(self) -> bytes:
        return hash_concatenate(self.message())

    def sign(self, *keypairs: Keypair) -> "Transaction":
        """Add signatures from ``keypairs``; returns self for chaining."""
        message = self.message()
        for keypair in keypairs:
            self.signatures[keypair.address] = keypair.sign(message)
        return self

    def required_signers(self) -> List[bytes]:
        return [meta.address for meta in self.accounts if meta.is_signer]
