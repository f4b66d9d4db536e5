"""Mixer program: instruction dispatch and the three operation handlers.

Initialize:  [payer (signer), state (writable)]
PushRoot:    [authority (signer), state (writable)]
Withdraw:    [relayer, state, nullifier (writable), vault (writable),
              recipient (writable), verifier]

Withdraw checks, in order:
    1. root is in the root history                 -> UnknownRootError
    2. nullifier/vault/verifier accounts match
       their derived identities, recipient_field
       encodes the recipient account               -> InvalidArgumentError
    3. nullifier not spent                          -> NullifierAlreadyUsedError
    4. proof verifies for (root, nullifier_hash,
       recipient_field)                             -> VerificationFailedError
    5. marker created (before step 4 when
       MarkerOrdering.MARK_THEN_VERIFY)
    6. denomination moved from vault to recipient

Handlers raise on the first failure. They never undo their own writes;
the runtime discards every change of a failed invocation.
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence

from zkpool.core.addresses import (
    derive_nullifier_address,
    derive_state_address,
    derive_vault_address,
    recipient_field_for,
)
from zkpool.core.instruction import (
    Initialize,
    MixerInstruction,
    PushRoot,
    Withdraw,
    unpack_instruction,
)
from zkpool.core.nullifier import LedgerNullifierRegistry, NullifierRegistry
from zkpool.core.state import STATE_LEN, PoolState, pack_state, unpack_state
from zkpool.core.verifier import ProofVerifier, PublicInputs
from zkpool.exceptions import (
    InvalidArgumentError,
    NullifierAlreadyUsedError,
    StorageTooSmallError,
    UnauthorizedError,
    UnknownRootError,
    VerificationFailedError,
)
from zkpool.runtime.ledger import Ledger
from zkpool.runtime.transaction import AccountMeta
from zkpool.utils.encoding import bytes_to_hex

logger = logging.getLogger(__name__)


class MarkerOrdering(str, Enum):
    """When the nullifier marker is created relative to proof verification."""

    VERIFY_THEN_MARK = "verify_then_mark"
    MARK_THEN_VERIFY = "mark_then_verify"


class MixerProcessor:
    """
    Executes mixer instructions against a ledger.

    Args:
        program_id: Address of this program; owns the state and markers
        verifier: Proof verifier backend
        verifier_program_id: The only verifier account Withdraw accepts
        marker_ordering: Marker creation before or after verification
        authority: If set, the only key allowed to push roots
        nullifier_registry: Spent-set backend; defaults to ledger markers
    """

    def __init__(
        self,
        program_id: bytes,
        verifier: ProofVerifier,
        verifier_program_id: bytes,
        marker_ordering: MarkerOrdering = MarkerOrdering.VERIFY_THEN_MARK,
        authority: Optional[bytes] = None,
        nullifier_registry: Optional[NullifierRegistry] = None,
    ):
        self.program_id = program_id
        self.verifier = verifier
        self.verifier_program_id = verifier_program_id
        self.marker_ordering = MarkerOrdering(marker_ordering)
        self.authority = authority
        self.nullifier_registry = nullifier_registry

        self.state_address = derive_state_address(program_id)
        self.vault_address = derive_vault_address(program_id)

    def registry_for(self, ledger: Ledger) -> NullifierRegistry:
        if self.nullifier_registry is not None:
            return self.nullifier_registry
        return LedgerNullifierRegistry(ledger, self.program_id)

    def process_instruction(
        self, ledger: Ledger, accounts: Sequence[AccountMeta], data: bytes
    ) -> MixerInstruction:
        """
        Decode ``data`` and run the matching handler.

        Returns:
            The decoded instruction

        Raises:
            MixerProgramError: First program-level failure encountered
            LedgerError: If a host primitive fails (e.g. insufficient funds)
        """
        instruction = unpack_instruction(data)

        if isinstance(instruction, Initialize):
            self.process_initialize(ledger, accounts, instruction.denomination)
        elif isinstance(instruction, PushRoot):
            self.process_push_root(ledger, accounts, instruction.new_root)
        elif isinstance(instruction, Withdraw):
            self.process_withdraw(ledger, accounts, instruction)

        return instruction

    # Handlers
    def process_initialize(
        self, ledger: Ledger, accounts: Sequence[AccountMeta], denomination: int
    ) -> None:
        payer, state_account = _take_accounts(accounts, 2)

        if not payer.is_signer:
            raise UnauthorizedError("Payer must sign Initialize")
        if state_account.address != self.state_address:
            raise InvalidArgumentError("State account is not the derived state address")
        _require_writable(state_account, "state")

        if not ledger.is_allocated(state_account.address):
            logger.info("Creating mixer state account")
            ledger.create_storage(payer.address, state_account.address, STATE_LEN, self.program_id)
            ledger.write_data(
                self.program_id, state_account.address, 0, pack_state(PoolState(denomination))
            )
            logger.info(f"Mixer initialized with denomination {denomination}")
            return

        if ledger.owner_of(state_account.address) != self.program_id:
            raise InvalidArgumentError("State account is not owned by the mixer program")
        if len(ledger.read_data(state_account.address)) < STATE_LEN:
            raise StorageTooSmallError("Existing state account is too small")
        logger.info("Mixer state already exists; initialization skipped")

    def process_push_root(
        self, ledger: Ledger, accounts: Sequence[AccountMeta], new_root: bytes
    ) -> None:
        authority, state_account = _take_accounts(accounts, 2)

        if not authority.is_signer:
            raise UnauthorizedError("Authority must sign PushRoot")
        if self.authority is not None and authority.address != self.authority:
            raise UnauthorizedError("Signer is not the pool authority")
        _require_writable(state_account, "state")

        state = self._load_state(ledger, state_account)
        slot = state.push_root(new_root)
        self._store_state(ledger, state_account, state)
        logger.info(f"Root {bytes_to_hex(new_root)[:18]}... recorded in slot {slot}")

    def process_withdraw(
        self, ledger: Ledger, accounts: Sequence[AccountMeta], instruction: Withdraw
    ) -> None:
        (
            relayer,
            state_account,
            nullifier_account,
            vault,
            recipient,
            verifier_account,
        ) = _take_accounts(accounts, 6)

        state = self._load_state(ledger, state_account)
        if not state.is_known_root(instruction.root):
            logger.warning("Unknown root")
            raise UnknownRootError(f"Root {bytes_to_hex(instruction.root)} is not known")

        nullifier_hash = instruction.nullifier_hash
        if nullifier_account.address != derive_nullifier_address(self.program_id, nullifier_hash):
            raise InvalidArgumentError("Nullifier account does not match the nullifier hash")
        if vault.address != self.vault_address:
            raise InvalidArgumentError("Vault account is not the derived vault address")
        if verifier_account.address != self.verifier_program_id:
            raise InvalidArgumentError("Verifier account is not the configured verifier")
        if instruction.recipient_field != recipient_field_for(recipient.address):
            raise InvalidArgumentError("Recipient field does not encode the recipient account")
        for meta, name in ((nullifier_account, "nullifier"), (vault, "vault"), (recipient, "recipient")):
            _require_writable(meta, name)

        registry = self.registry_for(ledger)
        if registry.is_spent(nullifier_hash):
            logger.warning("Nullifier already used")
            raise NullifierAlreadyUsedError(
                f"Nullifier {bytes_to_hex(nullifier_hash)} already used"
            )

        payer = _marker_payer(recipient, relayer)
        expected = PublicInputs(
            root=instruction.root,
            nullifier_hash=nullifier_hash,
            recipient_field=instruction.recipient_field,
        )

        if self.marker_ordering is MarkerOrdering.MARK_THEN_VERIFY:
            registry.mark_spent(nullifier_hash, payer)
            self._verify(instruction.proof, expected)
        else:
            self._verify(instruction.proof, expected)
            registry.mark_spent(nullifier_hash, payer)

        ledger.transfer(vault.address, recipient.address, state.denomination)
        logger.info(
            f"Withdrew {state.denomination} to {bytes_to_hex(recipient.address)[:18]}..."
        )

    # Helpers
    def _verify(self, proof: bytes, expected: PublicInputs) -> None:
        try:
            accepted = self.verifier.verify(proof, expected)
        except Exception as e:
            raise VerificationFailedError(f"Verifier error: {e}") from e
        if not accepted:
            raise VerificationFailedError("Proof rejected by verifier")

    def _load_state(self, ledger: Ledger, state_account: AccountMeta) -> PoolState:
        if state_account.address != self.state_address:
            raise InvalidArgumentError("State account is not the derived state address")
        if ledger.owner_of(state_account.address) != self.program_id:
            raise InvalidArgumentError("State account is not owned by the mixer program")
        return unpack_state(ledger.read_data(state_account.address))

    def _store_state(self, ledger: Ledger, state_account: AccountMeta, state: PoolState) -> None:
        ledger.write_data(self.program_id, state_account.address, 0, pack_state(state))


def _take_accounts(accounts: Sequence[AccountMeta], count: int) -> List[AccountMeta]:
    if len(accounts) < count:
        raise InvalidArgumentError(f"Expected {count} accounts, got {len(accounts)}")
    return list(accounts[:count])


def _require_writable(meta: AccountMeta, name: str) -> None:
    if not meta.is_writable:
        raise InvalidArgumentError(f"The {name} account must be writable")


def _marker_payer(recipient: AccountMeta, relayer: AccountMeta) -> bytes:
    """The recipient funds the marker when it signs, otherwise the relayer."""
    if recipient.is_signer:
        return recipient.address
    if relayer.is_signer:
        return relayer.address
    raise UnauthorizedError("Withdraw needs a signer to fund the nullifier marker")
