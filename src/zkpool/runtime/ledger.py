"""In-memory account ledger supplying the host primitives the pool relies on.

The ledger models the three capabilities the mixer program calls into:

    create_storage(payer, target, size, owner)
    transfer(source, destination, amount)
    minimum_balance(size)

An account "exists" when it holds a non-zero balance. It is "allocated"
once ``create_storage`` has assigned it to a program; plain transfers
never allocate, so a balance alone never makes an account look like
program storage. Every invocation is run inside ``atomic()`` by the
runtime so a failure at any step restores the ledger exactly as it was
before the invocation started.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from zkpool.exceptions import (
    AccountAlreadyInUseError,
    IllegalOwnerError,
    InsufficientFundsError,
)
from zkpool.utils.encoding import bytes_to_hex

logger = logging.getLogger(__name__)

SYSTEM_OWNER = bytes(32)

# Rent parameters of the reference ledger.
ACCOUNT_STORAGE_OVERHEAD = 128
DEFAULT_LAMPORTS_PER_BYTE_YEAR = 3480
DEFAULT_EXEMPTION_THRESHOLD = 2.0


@dataclass
class Account:
    """Balance, data and owning program of one address."""

    lamports: int = 0
    data: bytearray = field(default_factory=bytearray)
    owner: bytes = SYSTEM_OWNER

    @property
    def allocated(self) -> bool:
        return self.owner != SYSTEM_OWNER

    def copy(self) -> "Account":
        return Account(self.lamports, bytearray(self.data), self.owner)


class Ledger:
    """Account store with balance transfers, storage allocation and rollback."""

    def __init__(
        self,
        lamports_per_byte_year: int = DEFAULT_LAMPORTS_PER_BYTE_YEAR,
        exemption_threshold: float = DEFAULT_EXEMPTION_THRESHOLD,
    ):
        self.accounts: Dict[bytes, Account] = {}
        self.lamports_per_byte_year = lamports_per_byte_year
        self.exemption_threshold = exemption_threshold
        # Pre-invocation copies of touched accounts; None while not in atomic().
        self._journal: Optional[Dict[bytes, Optional[Account]]] = None

    # Queries
    def get_account(self, address: bytes) -> Optional[Account]:
        """Get account at ``address`` if it exists."""
        account = self.accounts.get(address)
        if account is None or account.lamports == 0:
            return None
        return account

    def exists(self, address: bytes) -> bool:
        return self.get_account(address) is not None

    def is_allocated(self, address: bytes) -> bool:
        """True once ``create_storage`` has assigned ``address`` to a program."""
        account = self.accounts.get(address)
        return account is not None and account.allocated

    def balance(self, address: bytes) -> int:
        account = self.accounts.get(address)
        return account.lamports if account else 0

    def owner_of(self, address: bytes) -> bytes:
        account = self.accounts.get(address)
        return account.owner if account else SYSTEM_OWNER

    def read_data(self, address: bytes) -> bytes:
        account = self.accounts.get(address)
        return bytes(account.data) if account else b""

    def minimum_balance(self, size: int) -> int:
        """Balance that makes an account of ``size`` data bytes rent-exempt."""
        return int(
            (ACCOUNT_STORAGE_OVERHEAD + size)
            * self.lamports_per_byte_year
            * self.exemption_threshold
        )

    # Mutations
    def credit(self, address: bytes, amount: int) -> None:
        """Mint ``amount`` into ``address`` (genesis funding and tests)."""
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        self._touch(address).lamports += amount

    def transfer(self, source: bytes, destination: bytes, amount: int) -> None:
        """
        Move ``amount`` base units between accounts.

        Raises:
            InsufficientFundsError: If ``source`` cannot cover the amount
        """
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        available = self.balance(source)
        if available < amount:
            raise InsufficientFundsError(
                f"{bytes_to_hex(source)} holds {available}, needs {amount}"
            )
        if amount == 0:
            return
        self._touch(source).lamports -= amount
        self._touch(destination).lamports += amount

    def create_storage(self, payer: bytes, target: bytes, size: int, owner: bytes) -> int:
        """
        Allocate ``size`` zeroed bytes at ``target`` owned by ``owner``.

        The payer tops the target up to the rent-exempt minimum. A target
        that only holds a balance from plain transfers is still
        allocatable; its balance counts toward the minimum.

        Returns:
            int: Lamports moved from the payer

        Raises:
            AccountAlreadyInUseError: If ``target`` is already allocated
            InsufficientFundsError: If the payer cannot fund the allocation
        """
        if self.is_allocated(target):
            raise AccountAlreadyInUseError(f"Account {bytes_to_hex(target)} already in use")

        lamports = max(self.minimum_balance(size) - self.balance(target), 0)
        self.transfer(payer, target, lamports)
        account = self._touch(target)
        account.data = bytearray(size)
        account.owner = owner
        logger.debug("Allocated %d bytes at %s", size, bytes_to_hex(target))
        return lamports

    def write_data(self, program_id: bytes, address: bytes, offset: int, data: bytes) -> None:
        """
        Write into an account's data on behalf of ``program_id``.

        Raises:
            IllegalOwnerError: If the account is not owned by ``program_id``
        """
        account = self.accounts.get(address)
        if account is None or account.owner != program_id:
            raise IllegalOwnerError(f"Program does not own {bytes_to_hex(address)}")
        if offset < 0 or offset + len(data) > len(account.data):
            raise ValueError("Write exceeds account data")
        self._touch(address).data[offset:offset + len(data)] = data

    @contextmanager
    def atomic(self) -> Iterator["Ledger"]:
        """
        Run a block all-or-nothing: any exception restores the prior accounts.

        Only accounts touched inside the block are copied. A nested block
        joins the outermost one.
        """
        if self._journal is not None:
            yield self
            return

        self._journal = {}
        try:
            yield self
        except BaseException:
            for address, original in self._journal.items():
                if original is None:
                    self.accounts.pop(address, None)
                else:
                    self.accounts[address] = original
            raise
        finally:
            self._journal = None

    def _touch(self, address: bytes) -> Account:
        """Account at ``address`` (created if missing), journaled before its first change."""
        account = self.accounts.get(address)
        if self._journal is not None and address not in self._journal:
            self._journal[address] = account.copy() if account is not None else None
        if account is None:
            account = self.accounts[address] = Account()
        return account
