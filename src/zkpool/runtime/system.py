"""Built-in system program: signed balance transfers between accounts.

    0x00 || amount:u64LE                                              Transfer

Accounts: [source (signer, writable), destination (writable)].

Deposits into a pool are Transfers from the depositor into the pool's
vault. Only accounts the system program still owns can be debited;
program storage is moved by the owning program alone.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from zkpool.exceptions import (
    IllegalOwnerError,
    InvalidArgumentError,
    InvalidInstructionError,
    UnauthorizedError,
)
from zkpool.runtime.ledger import SYSTEM_OWNER, Ledger
from zkpool.runtime.transaction import AccountMeta, Transaction
from zkpool.utils.encoding import bytes_to_hex

logger = logging.getLogger(__name__)

SYSTEM_PROGRAM_ID = SYSTEM_OWNER
TRANSFER_TAG = 0


@dataclass(frozen=True)
class Transfer:
    """Move ``amount`` base units from a signing source to a destination."""

    amount: int

    def pack(self) -> bytes:
        return bytes([TRANSFER_TAG]) + self.amount.to_bytes(8, "little")


def unpack_system_instruction(data: bytes) -> Transfer:
    """
    Decode a system instruction payload.

    Raises:
        InvalidInstructionError: On an unknown tag or wrong length
    """
    if len(data) != 9 or data[0] != TRANSFER_TAG:
        raise InvalidInstructionError("System program expects Transfer (9 bytes)")
    return Transfer(amount=int.from_bytes(data[1:], "little"))


def process_system_instruction(
    ledger: Ledger, accounts: Sequence[AccountMeta], data: bytes
) -> Transfer:
    """
    Execute a system instruction against ``ledger``.

    Raises:
        InvalidInstructionError: If the payload does not decode
        InvalidArgumentError: If accounts are missing or not writable
        UnauthorizedError: If the source did not sign
        IllegalOwnerError: If the source is owned by a program
        InsufficientFundsError: If the source cannot cover the amount
    """
    instruction = unpack_system_instruction(data)
    if len(accounts) < 2:
        raise InvalidArgumentError("Transfer expects source and destination accounts")
    source, destination = accounts[0], accounts[1]

    if not source.is_signer:
        raise UnauthorizedError("Transfer source must sign")
    if not (source.is_writable and destination.is_writable):
        raise InvalidArgumentError("Transfer accounts must be writable")
    if ledger.is_allocated(source.address):
        raise IllegalOwnerError(
            f"{bytes_to_hex(source.address)} is program storage and cannot be debited"
        )

    ledger.transfer(source.address, destination.address, instruction.amount)
    logger.debug(
        "Transferred %d from %s", instruction.amount, bytes_to_hex(source.address)
    )
    return instruction


def build_transfer_transaction(source: bytes, destination: bytes, amount: int) -> Transaction:
    return Transaction(
        program_id=SYSTEM_PROGRAM_ID,
        accounts=[
            AccountMeta(source, is_signer=True, is_writable=True),
            AccountMeta(destination, is_writable=True),
        ],
        data=Transfer(amount).pack(),
    )
