"""Nullifier registry: the spent-set behind the anti-double-withdraw check.

A nullifier hash is spent once a marker exists for it. Markers are
created with an atomic insert-if-absent and are never removed, so the
second withdrawal presenting the same nullifier hash always fails with
``NullifierAlreadyUsedError``.

Backends:
    LedgerNullifierRegistry - marker is a zero-data, rent-exempt account
        allocated to the program at the nullifier's derived address and
        funded by a signing payer. A balance sent to that address by a
        plain transfer is not a marker.
    SqlNullifierRegistry (zkpool.storage.database) - marker is a row with a
        UNIQUE nullifier hash.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Protocol

from zkpool.core.addresses import derive_nullifier_address
from zkpool.exceptions import AccountAlreadyInUseError, NullifierAlreadyUsedError
from zkpool.runtime.ledger import Ledger
from zkpool.utils.encoding import bytes_to_hex

logger = logging.getLogger(__name__)


class NullifierRegistry(Protocol):
    def is_spent(self, nullifier_hash: bytes) -> bool: ...
    def mark_spent(self, nullifier_hash: bytes, payer: bytes) -> None: ...
    def atomic(self): ...


class LedgerNullifierRegistry:
    """Markers stored as ledger accounts; allocation to the program is the spent flag."""

    def __init__(self, ledger: Ledger, program_id: bytes):
        self.ledger = ledger
        self.program_id = program_id

    def marker_address(self, nullifier_hash: bytes) -> bytes:
        return derive_nullifier_address(self.program_id, nullifier_hash)

    def is_spent(self, nullifier_hash: bytes) -> bool:
        """Check if a nullifier has been spent."""
        return self.ledger.owner_of(self.marker_address(nullifier_hash)) == self.program_id

    def mark_spent(self, nullifier_hash: bytes, payer: bytes) -> None:
        """
        Create the marker for ``nullifier_hash``, funded by ``payer``.

        Raises:
            NullifierAlreadyUsedError: If the marker already exists
            InsufficientFundsError: If the payer cannot fund the marker
        """
        address = self.marker_address(nullifier_hash)
        try:
            self.ledger.create_storage(payer, address, 0, self.program_id)
        except AccountAlreadyInUseError:
            raise NullifierAlreadyUsedError(
                f"Nullifier {bytes_to_hex(nullifier_hash)} already used"
            ) from None
        logger.info(f"Nullifier marker created at {bytes_to_hex(address)}")

    @contextmanager
    def atomic(self) -> Iterator["LedgerNullifierRegistry"]:
        # Markers live in the ledger; ledger.atomic() covers them.
        yield self
