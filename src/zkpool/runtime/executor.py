"""Host runtime: signature checks, serialization and all-or-nothing execution.

Every submitted transaction runs under a single lock, so at most one
mutator touches the ledger at a time, and inside ``ledger.atomic()`` and
the nullifier registry's ``atomic()``. If the program raises at any step,
all balances, account data and markers written during the invocation are
discarded and the error is re-raised to the caller. Nothing is retried.
"""

import logging
import threading
from contextlib import ExitStack
from datetime import datetime
from typing import Optional

from zkpool.config import PoolSettings
from zkpool.core.processor import MixerProcessor
from zkpool.core.verifier import SchnorrProofVerifier
from zkpool.exceptions import ConfigurationError, InvalidArgumentError, SignatureError
from zkpool.runtime.keys import verify_signature
from zkpool.runtime.ledger import Ledger
from zkpool.runtime.system import SYSTEM_PROGRAM_ID, process_system_instruction
from zkpool.runtime.transaction import Transaction
from zkpool.storage.database import SqlNullifierRegistry, get_db_manager
from zkpool.utils.encoding import bytes_to_hex, hex_to_bytes

logger = logging.getLogger(__name__)


class ExecutionReceipt:
    """Receipt for a successfully executed transaction."""

    def __init__(self, signature: bytes, instruction: str, timestamp: datetime):
        self.signature = signature
        self.instruction = instruction
        self.timestamp = timestamp

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "signature": bytes_to_hex(self.signature),
            "instruction": self.instruction,
            "timestamp": self.timestamp.isoformat(),
        }


class Runtime:
    """Runs mixer and system transactions against a ledger one at a time."""

    def __init__(self, ledger: Ledger, processor: MixerProcessor):
        self.ledger = ledger
        self.processor = processor
        self._lock = threading.Lock()

    def send_transaction(self, transaction: Transaction) -> ExecutionReceipt:
        """
        Verify signatures and execute ``transaction`` atomically.

        Raises:
            SignatureError: If a declared signer has no valid signature
            InvalidArgumentError: If the transaction targets another program
            MixerProgramError: If the program rejects the instruction
            LedgerError: If a host primitive fails
        """
        if transaction.program_id not in (self.processor.program_id, SYSTEM_PROGRAM_ID):
            raise InvalidArgumentError(
                f"Unknown program {bytes_to_hex(transaction.program_id)}"
            )
        self._check_signatures(transaction)

        with self._lock:
            if transaction.program_id == SYSTEM_PROGRAM_ID:
                with self.ledger.atomic():
                    instruction = process_system_instruction(
                        self.ledger, transaction.accounts, transaction.data
                    )
                return self._receipt(transaction, instruction)

            registry = self.processor.registry_for(self.ledger)
            with ExitStack() as stack:
                stack.enter_context(self.ledger.atomic())
                stack.enter_context(registry.atomic())
                instruction = self.processor.process_instruction(
                    self.ledger, transaction.accounts, transaction.data
                )

        return self._receipt(transaction, instruction)

    @staticmethod
    def _receipt(transaction: Transaction, instruction) -> ExecutionReceipt:
        name = type(instruction).__name__
        logger.debug(f"{name} executed")
        return ExecutionReceipt(
            signature=transaction.message_hash(),
            instruction=name,
            timestamp=datetime.now(),
        )

    @staticmethod
    def _check_signatures(transaction: Transaction) -> None:
        message = transaction.message()
        for address in transaction.required_signers():
            signature: Optional[bytes] = transaction.signatures.get(address)
            if signature is None or not verify_signature(address, message, signature):
                raise SignatureError(f"Missing or invalid signature for {bytes_to_hex(address)}")


def build_runtime(settings: PoolSettings) -> Runtime:
    """
    Assemble ledger, verifier, registry and processor from settings.

    The ledger starts with the configured genesis balances.

    Raises:
        ConfigurationError: If no verifier public key is configured
    """
    if not settings.verifier_public_key:
        raise ConfigurationError("ZKPOOL_VERIFIER_PUBLIC_KEY is not set")

    registry = None
    if settings.nullifier_backend == "sql":
        registry = SqlNullifierRegistry(get_db_manager(settings.database_url))

    processor = MixerProcessor(
        program_id=settings.program_id_bytes,
        verifier=SchnorrProofVerifier(hex_to_bytes(settings.verifier_public_key)),
        verifier_program_id=settings.verifier_program_id_bytes,
        marker_ordering=settings.marker_ordering,
        authority=settings.authority_bytes,
        nullifier_registry=registry,
    )
    ledger = Ledger(
        lamports_per_byte_year=settings.lamports_per_byte_year,
        exemption_threshold=settings.exemption_threshold,
    )
    for address, lamports in settings.genesis_accounts.items():
        ledger.credit(hex_to_bytes(address), lamports)
    logger.info(f"Runtime ready for program {settings.program_id[:16]}...")
    return Runtime(ledger, processor)
